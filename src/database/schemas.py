"""SQLAlchemy ORM models for Supabase."""

from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Numeric,
    Text,
    Index,
    BigInteger,
    CheckConstraint,
)

from src.database.base import Base
from src.models.enums import DeliveryStatus, PaymentStatus, ReconciliationOutcome


def utcnow():
    """Get current UTC datetime with timezone."""
    return datetime.now(timezone.utc)


def _enum_check(column: str, values: list[str]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class Order(Base):
    """
    Таблица заказов магазина.
    Платёжный контур читает её и меняет только payment_screenshot,
    payment_status, delivery_status и updated_at.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(50), unique=True, nullable=True)
    chat_id = Column(String(50), nullable=True, index=True)
    client_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    tg_username = Column(String(255), nullable=True)
    items = Column(Text, nullable=False, default="[]")  # JSON-массив позиций
    total_price = Column(Numeric(14, 2), nullable=True)
    delivery_status = Column(String(20), nullable=False, default=DeliveryStatus.NEW.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(50), nullable=True)
    payment_screenshot = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_orders_chat_created", "chat_id", "created_at"),
        Index("ix_orders_payment_status", "payment_status"),
        CheckConstraint(
            _enum_check("delivery_status", DeliveryStatus.list_all()),
            name="ck_orders_delivery_status",
        ),
        CheckConstraint(
            _enum_check("payment_status", PaymentStatus.list_all()),
            name="ck_orders_payment_status",
        ),
    )

    def __repr__(self):
        return f"<Order {self.id} #{self.order_number} {self.payment_status}>"


class PaymentNotification(Base):
    """
    Журнал обработанных webhook-событий с фото (только append).
    По update_id можно понять, отправлялось ли уже подтверждение.
    """
    __tablename__ = "payment_notifications"

    id = Column(Integer, primary_key=True)
    update_id = Column(BigInteger, nullable=False, index=True)
    chat_id = Column(String(50), nullable=False, index=True)
    order_id = Column(Integer, nullable=True)
    outcome = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_payment_notifications_update_outcome", "update_id", "outcome"),
        CheckConstraint(
            _enum_check("outcome", [o.value for o in ReconciliationOutcome]),
            name="ck_payment_notifications_outcome",
        ),
    )

    def __repr__(self):
        return f"<PaymentNotification update={self.update_id} {self.outcome}>"
