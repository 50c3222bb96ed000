"""Order store contract consumed by the payment flow, and its SQL rendition."""

from typing import Any, List, Optional, Protocol, Union

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from src.database.repository import NotificationRepository, OrderRepository
from src.models.enums import (
    DeliveryStatus,
    PaymentStatus,
    ReconciliationOutcome,
    StatusField,
)
from src.models.errors import OrderNotFound, PersistenceError
from src.models.order import Order

OrderId = Union[int, str]


class OrderStore(Protocol):
    """Что платёжный контур ожидает от хранилища заказов."""

    async def get_by_id(self, order_id: OrderId) -> Optional[Order]: ...

    async def find_latest_by_chat_id(self, chat_id: str) -> Optional[Order]: ...

    async def list_by_status(
        self,
        delivery_status: Optional[DeliveryStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        limit: int = 100,
    ) -> List[Order]: ...

    async def attach_payment_proof(self, order_id: OrderId, screenshot_url: str) -> Order: ...

    async def update_status(self, order_id: OrderId, field: StatusField, value: str) -> Order: ...

    async def has_confirmation(self, update_id: int) -> bool: ...

    async def record_notification(
        self,
        update_id: int,
        chat_id: str,
        order_id: Optional[OrderId],
        outcome: ReconciliationOutcome,
    ) -> None: ...

    async def close(self) -> None: ...


def _pk(order_id: OrderId) -> int:
    """Первичный ключ заказа; нечисловой id не может существовать в таблице."""
    try:
        return int(order_id)
    except (TypeError, ValueError):
        raise OrderNotFound(f"Order {order_id} not found")


def row_to_order(row: Any) -> Order:
    """ORM-строка → доменный Order (items парсятся здесь, один раз)."""
    data = {column.key: getattr(row, column.key) for column in row.__table__.columns}
    return Order.from_payload(data)


class SqlOrderStore:
    """
    OrderStore поверх SQLAlchemy.

    Каждый вызов выполняется отдельной короткой транзакцией; блокировок между
    чтением заказа и его обновлением нет.
    """

    def __init__(self, session_maker: async_sessionmaker):
        self._session_maker = session_maker

    async def get_by_id(self, order_id: OrderId) -> Optional[Order]:
        try:
            async with self._session_maker() as session:
                row = await OrderRepository(session).get_by_id(_pk(order_id))
                return row_to_order(row) if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load order", details=str(e)) from e

    async def find_latest_by_chat_id(self, chat_id: str) -> Optional[Order]:
        try:
            async with self._session_maker() as session:
                row = await OrderRepository(session).find_latest_by_chat_id(str(chat_id))
                return row_to_order(row) if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to find order by chat_id", details=str(e)) from e

    async def list_by_status(
        self,
        delivery_status: Optional[DeliveryStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        limit: int = 100,
    ) -> List[Order]:
        try:
            async with self._session_maker() as session:
                rows = await OrderRepository(session).list_by_status(
                    delivery_status=delivery_status,
                    payment_status=payment_status,
                    limit=limit,
                )
                return [row_to_order(row) for row in rows]
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to list orders", details=str(e)) from e

    async def attach_payment_proof(self, order_id: OrderId, screenshot_url: str) -> Order:
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    row = await OrderRepository(session).attach_payment_proof(_pk(order_id), screenshot_url)
                if row is None:
                    raise OrderNotFound(f"Order {order_id} not found")
                await session.refresh(row)
                return row_to_order(row)
        except SQLAlchemyError as e:
            logger.error(f"Failed to attach payment proof to order {order_id}: {e}")
            raise PersistenceError("Failed to update order", details=str(e)) from e

    async def update_status(self, order_id: OrderId, field: StatusField, value: str) -> Order:
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    row = await OrderRepository(session).update_status(_pk(order_id), field, value)
                if row is None:
                    raise OrderNotFound(f"Order {order_id} not found")
                await session.refresh(row)
                return row_to_order(row)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to update order status", details=str(e)) from e

    async def has_confirmation(self, update_id: int) -> bool:
        try:
            async with self._session_maker() as session:
                return await NotificationRepository(session).was_confirmed(update_id)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to read notification ledger", details=str(e)) from e

    async def record_notification(
        self,
        update_id: int,
        chat_id: str,
        order_id: Optional[OrderId],
        outcome: ReconciliationOutcome,
    ) -> None:
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    await NotificationRepository(session).record(
                        update_id=update_id,
                        chat_id=chat_id,
                        order_id=_pk(order_id) if order_id is not None else None,
                        outcome=outcome,
                    )
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to write notification ledger", details=str(e)) from e

    async def close(self) -> None:
        # Engine lifetime belongs to DatabaseManager
        return None
