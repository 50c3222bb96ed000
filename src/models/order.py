"""Order data models."""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.models.enums import DeliveryStatus, PaymentStatus
from src.models.errors import InvalidOrderData


class LineItem(BaseModel):
    """Одна позиция заказа."""
    model_config = ConfigDict(extra="ignore")

    product_id: Optional[Union[int, str]] = None
    name: str
    gramm: Optional[Union[int, float, str]] = None  # вес упаковки, как ввёл оператор
    quantity: int = Field(ge=0)
    price: Decimal = Field(ge=0)

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


def parse_items_payload(raw: Any) -> List[Any]:
    """
    Привести ``items`` к списку.

    В таблице orders встречаются оба представления: JSON-строка
    и нативный JSON-массив. Здесь они сводятся к одному списку, который
    затем валидируется как ``List[LineItem]``.
    """
    if raw is None:
        return []
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"items is not valid JSON: {e.msg}") from e
    if not isinstance(raw, list):
        raise ValueError(f"items must be a list, got {type(raw).__name__}")
    return raw


class Order(BaseModel):
    """Заказ магазина в том виде, в котором его видит платёжный контур."""
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: Optional[Union[int, str]] = None
    order_number: Optional[str] = None
    chat_id: Optional[str] = None
    client_name: Optional[str] = None
    phone: Optional[str] = None
    tg_username: Optional[str] = None
    items: List[LineItem] = Field(default_factory=list)
    total_price: Optional[Decimal] = None
    delivery_status: DeliveryStatus = DeliveryStatus.NEW
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[str] = None
    payment_screenshot: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("chat_id", "order_number", "phone", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Optional[str]:
        # Telegram chat ids arrive as ints, the table may store them as text
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError("identifier must not be a boolean")
        value = str(value).strip()
        return value or None

    @field_validator("items", mode="before")
    @classmethod
    def _parse_items(cls, value: Any) -> List[Any]:
        return parse_items_payload(value)

    @property
    def grand_total(self) -> Decimal:
        """total_price, либо сумма позиций если total_price не заполнен."""
        if self.total_price is not None:
            return self.total_price
        return sum((item.subtotal for item in self.items), Decimal("0"))

    @classmethod
    def from_payload(cls, data: Any) -> "Order":
        """
        Построить Order из входящего JSON/строки БД.

        Raises:
            InvalidOrderData: если данные заказа или его позиции не парсятся
        """
        if not isinstance(data, dict):
            raise InvalidOrderData("Order data must be an object")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            errors = _summarize_errors(e)
            if any(err["loc"].startswith("items") for err in errors):
                raise InvalidOrderData("Invalid order items format", details=errors) from e
            raise InvalidOrderData("Invalid order data", details=errors) from e


def _summarize_errors(error: ValidationError) -> List[Dict[str, str]]:
    return [
        {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
        for err in error.errors()
    ]
