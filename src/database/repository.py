"""Repository pattern for database access."""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Union
from loguru import logger
from sqlalchemy import select, update, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.schemas import Order, PaymentNotification, utcnow
from src.models.enums import (
    DeliveryStatus,
    PaymentStatus,
    ReconciliationOutcome,
    StatusField,
)


def _dump_items(items: Union[str, List[Any], None]) -> str:
    if items is None:
        return "[]"
    if isinstance(items, str):
        return items
    return json.dumps(items, ensure_ascii=False, default=str)


class OrderRepository:
    """Repository для работы с таблицей orders."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        order_number: str,
        chat_id: Optional[str],
        items: Union[str, List[Any], None],
        total_price: Optional[Decimal] = None,
        client_name: Optional[str] = None,
        phone: Optional[str] = None,
        tg_username: Optional[str] = None,
        payment_method: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Order:
        """
        Создать заказ.

        Заказы создаёт магазин, в платёжном контуре это нужно
        для CLI-сидинга и тестов.
        """
        now = created_at or utcnow()
        order = Order(
            order_number=order_number,
            chat_id=str(chat_id) if chat_id is not None else None,
            items=_dump_items(items),
            total_price=total_price,
            client_name=client_name,
            phone=phone,
            tg_username=tg_username,
            payment_method=payment_method,
            created_at=now,
            updated_at=now,
        )
        self.session.add(order)
        await self.session.flush()
        logger.info(f"Order created: #{order_number} for chat {chat_id}")
        return order

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        """Получить заказ по ID."""
        return await self.session.get(Order, order_id)

    async def find_latest_by_chat_id(self, chat_id: str) -> Optional[Order]:
        """
        Самый свежий заказ клиента.

        Порядок: created_at по убыванию, при равенстве больший id.
        """
        stmt = (
            select(Order)
            .where(Order.chat_id == str(chat_id))
            .order_by(desc(Order.created_at), desc(Order.id))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_status(
        self,
        delivery_status: Optional[DeliveryStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        limit: int = 100,
    ) -> List[Order]:
        """Заказы с заданными статусами, новые сначала."""
        stmt = select(Order)
        if delivery_status is not None:
            stmt = stmt.where(Order.delivery_status == DeliveryStatus(delivery_status).value)
        if payment_status is not None:
            stmt = stmt.where(Order.payment_status == PaymentStatus(payment_status).value)
        stmt = stmt.order_by(desc(Order.created_at), desc(Order.id)).limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def attach_payment_proof(self, order_id: int, screenshot_url: str) -> Optional[Order]:
        """
        Сохранить скриншот и отметить заказ оплаченным одним UPDATE по id.

        Returns:
            Обновлённый Order или None, если заказа с таким id нет
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id)
            .values(
                payment_screenshot=screenshot_url,
                payment_status=PaymentStatus.PAID.value,
                updated_at=utcnow(),
            )
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            return None

        logger.debug(f"Order {order_id} marked paid")
        return await self.session.get(Order, order_id, populate_existing=True)

    async def update_status(self, order_id: int, field: StatusField, value: str) -> Optional[Order]:
        """Ручная смена delivery_status / payment_status оператором."""
        field = StatusField(field)
        value = field.parse_value(value)

        stmt = (
            update(Order)
            .where(Order.id == order_id)
            .values({field.value: value, "updated_at": utcnow()})
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            return None

        logger.info(f"Order {order_id} {field.value} -> {value}")
        return await self.session.get(Order, order_id, populate_existing=True)


class NotificationRepository:
    """Repository для журнала payment_notifications."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        update_id: int,
        chat_id: str,
        order_id: Optional[int],
        outcome: ReconciliationOutcome,
    ) -> PaymentNotification:
        """Добавить запись в журнал."""
        entry = PaymentNotification(
            update_id=update_id,
            chat_id=str(chat_id),
            order_id=order_id,
            outcome=ReconciliationOutcome(outcome).value,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def was_confirmed(self, update_id: int) -> bool:
        """Было ли уже подтверждение для этого update_id."""
        stmt = select(func.count()).select_from(PaymentNotification).where(
            PaymentNotification.update_id == update_id,
            PaymentNotification.outcome == ReconciliationOutcome.CONFIRMED.value,
        )
        result = await self.session.execute(stmt)
        return result.scalar() > 0
