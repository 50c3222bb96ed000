"""Screenshot correlation and payment reconciliation.

Each inbound webhook update is processed on its own:

    Received → Classified → {Correlated | Unmatched} → {Persisted → Confirmed}
                                                     | Rejected | Failed

An image event resolves the largest photo to a URL, finds the sender's most
recent order, writes ``payment_screenshot`` together with
``payment_status = paid`` in one update keyed by order id, and only then
sends the confirmation. Re-delivery of the same update re-resolves the same
order and overwrites the same fields, so the order converges to the same
state; confirmations may repeat unless ``suppress_duplicate_notifications``
is enabled.

Exactly one customer-facing message is attempted per image event:
confirmation, "order not found", or the generic apology. Customer and admin
message delivery is best-effort and never changes the outcome.
"""

from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from src.config.pause_gate import PauseGate
from src.config.settings import Settings, get_settings
from src.database.storage import SupabaseProofStorage
from src.database.store import OrderStore
from src.models.enums import ReconciliationOutcome
from src.models.errors import ConfigurationError, PaymentsError
from src.models.order import Order
from src.models.telegram import PhotoSize, TelegramMessage, TelegramUpdate
from src.monitoring.outcome_monitor import OutcomeMonitor
from src.payments import messages
from src.payments.commands import TextCommandHandler
from src.payments.invoice import build_admin_payment_text, with_support_contact
from src.telegram.gateway import TelegramGateway
from src.utils.logger import mask_token


@dataclass
class ReconciliationResult:
    """Итог обработки одного update."""
    outcome: ReconciliationOutcome
    update_id: int
    chat_id: Optional[str] = None
    order_id: Optional[Any] = None
    screenshot_url: Optional[str] = None
    error: Optional[Exception] = None
    customer_notified: bool = False

    @property
    def error_kind(self) -> Optional[str]:
        if self.error is None:
            return None
        return getattr(self.error, "code", type(self.error).__name__)


class ReconciliationEngine:
    """Обработка входящих событий webhook: скриншоты оплаты и текстовые команды."""

    def __init__(
        self,
        gateway: TelegramGateway,
        store: OrderStore,
        pause_gate: PauseGate,
        settings: Optional[Settings] = None,
        proof_storage: Optional[SupabaseProofStorage] = None,
        command_handler: Optional[TextCommandHandler] = None,
        monitor: Optional[OutcomeMonitor] = None,
    ):
        self.gateway = gateway
        self.store = store
        self.pause_gate = pause_gate
        self.settings = settings or get_settings()
        self.proof_storage = proof_storage
        self.command_handler = command_handler
        self.monitor = monitor or OutcomeMonitor()

    async def handle_update(self, update: TelegramUpdate) -> ReconciliationResult:
        """
        Обработать одно событие webhook.

        Никогда не бросает доменные ошибки: любой исход, включая сбой,
        возвращается как ReconciliationResult, чтобы webhook был подтверждён.
        """
        paused = self.pause_gate.is_paused()
        message = update.message

        if message is None:
            logger.debug(f"Update {update.update_id} has no message, ignoring")
            return self._finish(ReconciliationResult(ReconciliationOutcome.IGNORED, update.update_id))

        chat_id = str(message.chat.id)

        if not message.has_photo:
            return self._finish(await self._handle_text(update.update_id, chat_id, message))

        if paused:
            logger.info(f"⏸ Webhook paused, screenshot from chat {chat_id} acknowledged without processing")
            return self._finish(
                ReconciliationResult(ReconciliationOutcome.PAUSED, update.update_id, chat_id=chat_id)
            )

        return self._finish(await self._reconcile(update.update_id, chat_id, message))

    async def _handle_text(self, update_id: int, chat_id: str, message: TelegramMessage) -> ReconciliationResult:
        if self.command_handler is None:
            return ReconciliationResult(ReconciliationOutcome.IGNORED, update_id, chat_id=chat_id)

        try:
            handled = await self.command_handler.handle(chat_id, message.text)
        except PaymentsError as e:
            logger.warning(f"Text command failed for chat {chat_id}: {e}")
            self.monitor.record_error(e.code, chat_id=chat_id, detail=str(e))
            return ReconciliationResult(ReconciliationOutcome.TEXT_HANDLED, update_id, chat_id=chat_id, error=e)

        outcome = ReconciliationOutcome.TEXT_HANDLED if handled else ReconciliationOutcome.IGNORED
        return ReconciliationResult(outcome, update_id, chat_id=chat_id, customer_notified=handled)

    async def _reconcile(self, update_id: int, chat_id: str, message: TelegramMessage) -> ReconciliationResult:
        photo = message.largest_photo()
        order: Optional[Order] = None
        logger.info(f"📸 Processing screenshot: chat={chat_id} file_id={photo.file_id}")

        try:
            file_url = await self.gateway.resolve_file_url(photo.file_id)

            order = await self.store.find_latest_by_chat_id(chat_id)
            if order is None:
                logger.info(f"❌ No order found for chat_id {chat_id}")
                notified = await self._notify_customer(chat_id, with_support_contact(messages.ORDER_NOT_FOUND, self.settings))
                await self._record(update_id, chat_id, None, ReconciliationOutcome.UNMATCHED)
                return ReconciliationResult(
                    ReconciliationOutcome.UNMATCHED,
                    update_id,
                    chat_id=chat_id,
                    customer_notified=notified,
                )

            screenshot_url = await self._store_proof(chat_id, photo, file_url)
            order = await self.store.attach_payment_proof(order.id, screenshot_url)
            logger.info(f"✅ Payment screenshot saved for order #{order.order_number} (id={order.id})")

        except ConfigurationError as e:
            # Without a bot token there is no way to answer the customer
            self._log_failure(e, chat_id, order)
            return ReconciliationResult(
                ReconciliationOutcome.FAILED,
                update_id,
                chat_id=chat_id,
                order_id=order.id if order else None,
                error=e,
            )
        except Exception as e:
            self._log_failure(e, chat_id, order)
            notified = await self._notify_customer(chat_id, with_support_contact(messages.PROCESSING_FAILED, self.settings))
            return ReconciliationResult(
                ReconciliationOutcome.FAILED,
                update_id,
                chat_id=chat_id,
                order_id=order.id if order else None,
                error=e,
                customer_notified=notified,
            )

        return await self._confirm(update_id, chat_id, order, screenshot_url)

    async def _store_proof(self, chat_id: str, photo: PhotoSize, file_url: str) -> str:
        """URL скриншота: из Storage, если bucket настроен, иначе ссылка Telegram."""
        if self.proof_storage is None:
            return file_url

        content = await self.gateway.download_file(file_url)
        # Stable path per photo keeps re-delivered updates idempotent
        path = f"payments/{chat_id}/{photo.file_unique_id or photo.file_id}.jpg"
        return await self.proof_storage.store(path, content)

    async def _confirm(self, update_id: int, chat_id: str, order: Order, screenshot_url: str) -> ReconciliationResult:
        result = ReconciliationResult(
            ReconciliationOutcome.CONFIRMED,
            update_id,
            chat_id=chat_id,
            order_id=order.id,
            screenshot_url=screenshot_url,
        )

        if self.settings.suppress_duplicate_notifications and await self._already_confirmed(update_id):
            logger.info(f"Update {update_id} already confirmed, skipping notifications")
            return result

        result.customer_notified = await self._notify_customer(chat_id, messages.PAYMENT_CONFIRMED)
        await self._notify_admin(order, screenshot_url)
        await self._record(update_id, chat_id, order.id, ReconciliationOutcome.CONFIRMED)
        return result

    async def _already_confirmed(self, update_id: int) -> bool:
        try:
            return await self.store.has_confirmation(update_id)
        except PaymentsError as e:
            logger.warning(f"Notification ledger unavailable, sending confirmation anyway: {e}")
            return False

    async def _notify_customer(self, chat_id: str, text: str) -> bool:
        try:
            await self.gateway.send_message(chat_id, text)
            return True
        except PaymentsError as e:
            logger.error(f"Failed to message customer {chat_id}: {e}")
            self.monitor.record_error(e.code, chat_id=chat_id, detail=str(e))
            return False

    async def _notify_admin(self, order: Order, screenshot_url: str) -> None:
        admin_chat_id = self.settings.admin_chat_id
        if not admin_chat_id:
            return
        try:
            await self.gateway.send_message(admin_chat_id, build_admin_payment_text(order, screenshot_url))
        except PaymentsError as e:
            logger.warning(f"Admin notification for order {order.id} failed: {e}")
            self.monitor.record_error(e.code, order_id=order.id, detail=str(e))

    async def _record(
        self,
        update_id: int,
        chat_id: str,
        order_id: Optional[Any],
        outcome: ReconciliationOutcome,
    ) -> None:
        try:
            await self.store.record_notification(update_id, chat_id, order_id, outcome)
        except PaymentsError as e:
            logger.warning(f"Notification ledger write failed for update {update_id}: {e}")

    def _log_failure(self, error: Exception, chat_id: str, order: Optional[Order]) -> None:
        kind = getattr(error, "code", type(error).__name__)
        order_id = order.id if order else None
        detail = mask_token(str(error), getattr(self.gateway, "token", ""))
        if isinstance(error, PaymentsError):
            logger.error(f"❌ Screenshot processing failed [{kind}] chat={chat_id} order={order_id}: {detail}")
        else:
            logger.exception(f"❌ Unexpected error processing screenshot chat={chat_id} order={order_id}: {detail}")
        self.monitor.record_error(kind, chat_id=chat_id, order_id=order_id, detail=detail)

    def _finish(self, result: ReconciliationResult) -> ReconciliationResult:
        self.monitor.record_outcome(result.outcome)
        return result
