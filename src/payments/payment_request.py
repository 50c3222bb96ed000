"""Operator-triggered payment request."""

from typing import Any, Dict, Optional, Union

from loguru import logger

from src.config.settings import Settings, get_settings
from src.models.errors import ConfigurationError, MissingRecipient
from src.models.order import Order
from src.payments.invoice import build_payment_request_text
from src.telegram.gateway import TelegramGateway


class PaymentRequestInitiator:
    """
    Отправляет клиенту счёт на оплату по его заказу.

    Заказ не меняется: payment_status остаётся прежним, пока клиент
    не пришлёт скриншот.
    """

    def __init__(self, gateway: TelegramGateway, settings: Optional[Settings] = None):
        self.gateway = gateway
        self.settings = settings or get_settings()

    async def send_payment_request(self, order: Union[Order, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Сформировать и отправить запрос на оплату.

        Все проверки выполняются до сетевого вызова, в порядке:
        конфигурация → chat_id → позиции заказа.

        Args:
            order: Order или сырой dict заказа (как приходит из админки)

        Returns:
            Ответ Bot API как есть

        Raises:
            ConfigurationError: нет токена бота или реквизитов карты
            MissingRecipient: у заказа нет chat_id
            InvalidOrderData: позиции не парсятся или их нет
            DeliveryFailed: Telegram отклонил сообщение
        """
        if not self.gateway.is_configured:
            raise ConfigurationError("Telegram bot token not configured")

        if isinstance(order, dict):
            chat_id = order.get("chat_id")
            if chat_id is None or not str(chat_id).strip():
                raise MissingRecipient()
            order = Order.from_payload(order)

        if not order.chat_id:
            raise MissingRecipient()

        text = build_payment_request_text(order, self.settings)

        logger.info(f"📤 Sending payment request: order={order.id} #{order.order_number} chat={order.chat_id}")
        result = await self.gateway.send_message(order.chat_id, text)
        logger.info(f"✅ Payment request delivered for order #{order.order_number}")
        return result
