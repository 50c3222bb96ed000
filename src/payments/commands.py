"""Text commands the bot answers: /start, /help, /status."""

from typing import Optional

from loguru import logger

from src.database.store import OrderStore
from src.payments import messages
from src.payments.invoice import escape_markdown, format_amount
from src.telegram.gateway import TelegramGateway


class TextCommandHandler:
    """Лёгкий обработчик текстовых сообщений без фото."""

    def __init__(self, gateway: TelegramGateway, store: OrderStore):
        self.gateway = gateway
        self.store = store

    @staticmethod
    def parse_command(text: Optional[str]) -> Optional[str]:
        """'/status@shop_bot arg' → 'status'; не команда → None."""
        if not text or not text.startswith("/"):
            return None
        head = text.split(maxsplit=1)[0][1:]
        return head.split("@", 1)[0].lower() or None

    async def handle(self, chat_id: str, text: Optional[str]) -> bool:
        """
        Ответить на команду.

        Returns:
            True если команда распознана и ответ отправлен
        """
        command = self.parse_command(text)
        if command in ("start", "help"):
            reply = messages.HELP_TEXT
        elif command == "status":
            reply = await self._status_text(chat_id)
        else:
            return False

        await self.gateway.send_message(chat_id, reply)
        logger.debug(f"Command /{command} answered for chat {chat_id}")
        return True

    async def _status_text(self, chat_id: str) -> str:
        order = await self.store.find_latest_by_chat_id(chat_id)
        if order is None:
            return messages.STATUS_NO_ORDER
        return messages.STATUS_TEXT.format(
            order_number=escape_markdown(order.order_number or order.id),
            delivery_status=messages.DELIVERY_STATUS_LABELS[order.delivery_status.value],
            payment_status=messages.PAYMENT_STATUS_LABELS[order.payment_status.value],
            total=format_amount(order.grand_total),
        )
