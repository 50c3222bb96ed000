"""Shared fixtures: settings, fake Bot API gateway, SQLite and in-memory order stores."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.config.settings import Settings
from src.database import schemas  # noqa: F401  registers tables on Base.metadata
from src.database.base import Base
from src.database.repository import OrderRepository
from src.database.store import SqlOrderStore
from src.models.enums import PaymentStatus, ReconciliationOutcome, StatusField
from src.models.errors import ConfigurationError, DeliveryFailed, OrderNotFound
from src.models.order import Order

TOKEN = "123456:TEST-TOKEN"
CHAT_ID = "555"

SAMPLE_ITEMS = [
    {"product_id": 1, "name": "Box A", "gramm": 500, "quantity": 2, "price": 10000},
    {"product_id": 2, "name": "Box B", "gramm": 250, "quantity": 1, "price": 5000},
]

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeGateway:
    """Запоминает исходящие сообщения вместо обращения к Bot API."""

    def __init__(self, token: str = TOKEN, file_path: str = "photos/file_1.jpg"):
        self.token = token
        self.api_base = "https://api.telegram.org"
        self.file_path = file_path
        self.sent: List[tuple] = []
        self.resolved: List[str] = []
        self.failing_chats: set = set()
        self.resolve_error: Optional[Exception] = None
        self.webhook: Dict[str, Any] = {"url": ""}

    @property
    def is_configured(self) -> bool:
        return bool(self.token)

    def _require_token(self) -> None:
        if not self.token:
            raise ConfigurationError("Telegram bot token not configured")

    async def send_message(self, chat_id, text, parse_mode=None):
        self._require_token()
        self.sent.append((str(chat_id), text))
        if str(chat_id) in self.failing_chats:
            raise DeliveryFailed("Failed to send message to Telegram", details="Bad Request: chat not found")
        return {"ok": True, "result": {"message_id": len(self.sent), "chat": {"id": chat_id}, "text": text}}

    async def resolve_file_url(self, file_id: str) -> str:
        self._require_token()
        self.resolved.append(file_id)
        if self.resolve_error is not None:
            raise self.resolve_error
        return f"{self.api_base}/file/bot{self.token}/{self.file_path}"

    async def download_file(self, url: str) -> bytes:
        return b"\xff\xd8\xff\xe0fake-jpeg"

    async def set_webhook(self, url, secret_token=None):
        self.webhook = {"url": url, "secret_token": secret_token}
        return {"ok": True, "result": True, "description": "Webhook was set"}

    async def get_webhook_info(self):
        return {"ok": True, "result": {"url": self.webhook["url"], "pending_update_count": 0}}

    async def delete_webhook(self):
        self.webhook = {"url": ""}
        return {"ok": True, "result": True, "description": "Webhook was deleted"}

    async def close(self):
        return None

    def texts_to(self, chat_id: str) -> List[str]:
        return [text for chat, text in self.sent if chat == str(chat_id)]


class InMemoryOrderStore:
    """OrderStore на словаре: для тестов HTTP API."""

    def __init__(self, orders: Optional[List[Order]] = None):
        self.orders: Dict[str, Order] = {str(o.id): o for o in orders or []}
        self.notifications: List[Dict[str, Any]] = []

    async def get_by_id(self, order_id):
        return self.orders.get(str(order_id))

    async def find_latest_by_chat_id(self, chat_id):
        candidates = [o for o in self.orders.values() if o.chat_id == str(chat_id)]
        if not candidates:
            return None
        return max(candidates, key=lambda o: (o.created_at, int(o.id)))

    async def list_by_status(self, delivery_status=None, payment_status=None, limit=100):
        result = [
            o for o in self.orders.values()
            if (delivery_status is None or o.delivery_status == delivery_status)
            and (payment_status is None or o.payment_status == payment_status)
        ]
        result.sort(key=lambda o: (o.created_at, int(o.id)), reverse=True)
        return result[:limit]

    async def _update(self, order_id, values):
        order = self.orders.get(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found")
        order = Order.model_validate({**order.model_dump(), **values, "updated_at": datetime.now(timezone.utc)})
        self.orders[str(order_id)] = order
        return order

    async def attach_payment_proof(self, order_id, screenshot_url):
        return await self._update(
            order_id,
            {"payment_screenshot": screenshot_url, "payment_status": PaymentStatus.PAID},
        )

    async def update_status(self, order_id, field, value):
        field = StatusField(field)
        return await self._update(order_id, {field.value: field.parse_value(value)})

    async def has_confirmation(self, update_id):
        return any(
            n["update_id"] == update_id and n["outcome"] == ReconciliationOutcome.CONFIRMED
            for n in self.notifications
        )

    async def record_notification(self, update_id, chat_id, order_id, outcome):
        self.notifications.append(
            {"update_id": update_id, "chat_id": chat_id, "order_id": order_id, "outcome": outcome}
        )

    async def close(self):
        return None


def build_order(order_id: int, chat_id: Optional[str] = CHAT_ID, minutes: int = 0, **overrides) -> Order:
    data = {
        "id": order_id,
        "order_number": f"A-{order_id}",
        "chat_id": chat_id,
        "client_name": "Ivan",
        "phone": "+998901234567",
        "items": SAMPLE_ITEMS,
        "total_price": 25000,
        "created_at": T0 + timedelta(minutes=minutes),
        "updated_at": T0 + timedelta(minutes=minutes),
    }
    data.update(overrides)
    return Order.from_payload(data)


def photo_update(update_id: int = 1001, chat_id: str = CHAT_ID) -> Dict[str, Any]:
    """Webhook update с тремя вариантами фото (в перемешанном порядке)."""
    return {
        "update_id": update_id,
        "message": {
            "message_id": 77,
            "chat": {"id": int(chat_id), "type": "private"},
            "from": {"id": int(chat_id), "is_bot": False, "first_name": "Ivan"},
            "date": 1714564800,
            "photo": [
                {"file_id": "medium", "file_unique_id": "u-medium", "width": 320, "height": 240, "file_size": 9000},
                {"file_id": "large", "file_unique_id": "u-large", "width": 1280, "height": 960, "file_size": 90000},
                {"file_id": "small", "file_unique_id": "u-small", "width": 90, "height": 67, "file_size": 1200},
            ],
        },
    }


def text_update(text: str, update_id: int = 2001, chat_id: str = CHAT_ID) -> Dict[str, Any]:
    return {
        "update_id": update_id,
        "message": {
            "message_id": 78,
            "chat": {"id": int(chat_id), "type": "private"},
            "date": 1714564800,
            "text": text,
        },
    }


@pytest.fixture
def settings():
    """Настройки без .env: токен и реквизиты карты заданы, админ-чат пуст."""
    return Settings(
        _env_file=None,
        telegram_bot_token=TOKEN,
        payment_card_label="Uzcard",
        payment_card_number="8600 1234 5678 9012",
        payment_card_holder="Ivan Petrov",
        admin_chat_id="",
        support_contact="",
        order_store="sql",
        pause_state_file="",
        webhook_paused=False,
        suppress_duplicate_notifications=False,
        telegram_webhook_secret="",
        environment="test",
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
async def session_maker():
    """SQLite в памяти, одно соединение на все сессии теста."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def sql_store(session_maker):
    return SqlOrderStore(session_maker)


@pytest.fixture
def make_order(session_maker):
    """Фабрика заказов в SQLite; возвращает id."""

    async def _make(
        order_number: str = "A-1",
        chat_id: Optional[str] = CHAT_ID,
        items: Any = None,
        total_price: Optional[Decimal] = Decimal("25000"),
        created_at: Optional[datetime] = T0,
        **kwargs,
    ) -> int:
        async with session_maker() as session:
            async with session.begin():
                row = await OrderRepository(session).create(
                    order_number=order_number,
                    chat_id=chat_id,
                    items=SAMPLE_ITEMS if items is None else items,
                    total_price=total_price,
                    created_at=created_at,
                    **kwargs,
                )
            return row.id

    return _make
