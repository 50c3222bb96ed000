"""Models module."""

from src.models.order import Order, LineItem
from src.models.telegram import TelegramUpdate, TelegramMessage, PhotoSize
from src.models.enums import DeliveryStatus, PaymentStatus, StatusField, ReconciliationOutcome

__all__ = [
    "Order",
    "LineItem",
    "TelegramUpdate",
    "TelegramMessage",
    "PhotoSize",
    "DeliveryStatus",
    "PaymentStatus",
    "StatusField",
    "ReconciliationOutcome",
]
