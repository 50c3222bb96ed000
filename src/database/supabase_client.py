"""Supabase (PostgREST) rendition of the order store."""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
import httpx
from loguru import logger

from src.config.settings import Settings, get_settings
from src.database.store import OrderId
from src.models.enums import DeliveryStatus, PaymentStatus, ReconciliationOutcome, StatusField
from src.models.errors import ConfigurationError, OrderNotFound, PersistenceError
from src.models.order import Order


class SupabaseOrderStore:
    """OrderStore поверх Supabase REST API (таблицы orders и payment_notifications)."""

    ORDERS_TABLE = "/orders"
    NOTIFICATIONS_TABLE = "/payment_notifications"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Supabase client."""
        settings = settings or get_settings()
        self.url = settings.supabase_url.rstrip("/")
        self.key = settings.supabase_key

        if not self.url or not self.key:
            raise ConfigurationError("Supabase URL and key must be configured")

        self.client = httpx.AsyncClient(
            base_url=f"{self.url}/rest/v1",
            headers={
                "apikey": self.key,
                "Authorization": f"Bearer {self.key}",
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            },
            timeout=30.0,
            transport=transport,
        )
        logger.info(f"Supabase order store initialized: {self.url}")

    async def health_check(self) -> bool:
        """Check if Supabase connection is healthy."""
        try:
            response = await self.client.get("/")
            return response.status_code < 500
        except Exception as e:
            logger.error(f"Supabase health check failed: {e}")
            return False

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        try:
            response = await self.client.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Failed to {action}: {e.response.status_code} - {e.response.text}")
            raise PersistenceError(f"Failed to {action}", details=e.response.text[:500]) from e
        except httpx.HTTPError as e:
            logger.error(f"Error during {action}: {e}")
            raise PersistenceError(f"Failed to {action}", details=str(e)) from e

        if not response.content:
            return None
        return response.json()

    async def get_by_id(self, order_id: OrderId) -> Optional[Order]:
        rows = await self._request(
            "GET",
            self.ORDERS_TABLE,
            "load order",
            params={"id": f"eq.{order_id}", "select": "*", "limit": 1},
        )
        return Order.from_payload(rows[0]) if rows else None

    async def find_latest_by_chat_id(self, chat_id: str) -> Optional[Order]:
        """Самый свежий заказ клиента: created_at desc, затем id desc."""
        rows = await self._request(
            "GET",
            self.ORDERS_TABLE,
            "find order by chat_id",
            params={
                "chat_id": f"eq.{chat_id}",
                "select": "*",
                "order": "created_at.desc,id.desc",
                "limit": 1,
            },
        )
        return Order.from_payload(rows[0]) if rows else None

    async def list_by_status(
        self,
        delivery_status: Optional[DeliveryStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        limit: int = 100,
    ) -> List[Order]:
        params: Dict[str, Any] = {
            "select": "*",
            "order": "created_at.desc,id.desc",
            "limit": limit,
        }
        if delivery_status is not None:
            params["delivery_status"] = f"eq.{DeliveryStatus(delivery_status).value}"
        if payment_status is not None:
            params["payment_status"] = f"eq.{PaymentStatus(payment_status).value}"

        rows = await self._request("GET", self.ORDERS_TABLE, "list orders", params=params)
        return [Order.from_payload(row) for row in rows or []]

    async def _patch_order(self, order_id: OrderId, values: Dict[str, Any], action: str) -> Order:
        values = {**values, "updated_at": datetime.now(timezone.utc).isoformat()}
        rows = await self._request(
            "PATCH",
            self.ORDERS_TABLE,
            action,
            params={"id": f"eq.{order_id}"},
            json=values,
        )
        if not rows:
            raise OrderNotFound(f"Order {order_id} not found")
        return Order.from_payload(rows[0])

    async def attach_payment_proof(self, order_id: OrderId, screenshot_url: str) -> Order:
        """payment_screenshot + payment_status=paid + updated_at одним PATCH по id."""
        order = await self._patch_order(
            order_id,
            {
                "payment_screenshot": screenshot_url,
                "payment_status": PaymentStatus.PAID.value,
            },
            "update order",
        )
        logger.debug(f"Order {order_id} marked paid")
        return order

    async def update_status(self, order_id: OrderId, field: StatusField, value: str) -> Order:
        field = StatusField(field)
        value = field.parse_value(value)
        order = await self._patch_order(order_id, {field.value: value}, "update order status")
        logger.info(f"Order {order_id} {field.value} -> {value}")
        return order

    async def has_confirmation(self, update_id: int) -> bool:
        rows = await self._request(
            "GET",
            self.NOTIFICATIONS_TABLE,
            "read notification ledger",
            params={
                "update_id": f"eq.{update_id}",
                "outcome": f"eq.{ReconciliationOutcome.CONFIRMED.value}",
                "select": "id",
                "limit": 1,
            },
        )
        return bool(rows)

    async def record_notification(
        self,
        update_id: int,
        chat_id: str,
        order_id: Optional[OrderId],
        outcome: ReconciliationOutcome,
    ) -> None:
        await self._request(
            "POST",
            self.NOTIFICATIONS_TABLE,
            "write notification ledger",
            json={
                "update_id": update_id,
                "chat_id": str(chat_id),
                "order_id": order_id,
                "outcome": ReconciliationOutcome(outcome).value,
            },
        )

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
