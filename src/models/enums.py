"""Enum для статусов заказа и исходов обработки webhook."""

from enum import Enum


class DeliveryStatus(str, Enum):
    """Статус доставки заказа."""

    NEW = "new"
    PROCESSING = "processing"
    DELIVERING = "delivering"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def list_all(cls) -> list[str]:
        """Вернуть все статусы как список строк."""
        return [s.value for s in cls]


class PaymentStatus(str, Enum):
    """Статус оплаты заказа."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"

    @classmethod
    def list_all(cls) -> list[str]:
        """Вернуть все статусы как список строк."""
        return [s.value for s in cls]


class StatusField(str, Enum):
    """Поле заказа, которое оператор может менять вручную."""

    DELIVERY = "delivery_status"
    PAYMENT = "payment_status"

    def parse_value(self, value: str) -> str:
        """Проверить значение против enum поля и вернуть его строковую форму."""
        enum_cls = DeliveryStatus if self is StatusField.DELIVERY else PaymentStatus
        return enum_cls(value).value


class ReconciliationOutcome(str, Enum):
    """Терминальный исход обработки одного входящего события."""

    IGNORED = "ignored"
    TEXT_HANDLED = "text_handled"
    PAUSED = "paused"
    UNMATCHED = "unmatched"
    CONFIRMED = "confirmed"
    FAILED = "failed"
