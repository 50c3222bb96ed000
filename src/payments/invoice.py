"""Invoice message composition."""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from src.config.settings import Settings
from src.models.errors import ConfigurationError, InvalidOrderData
from src.models.order import Order
from src.payments import messages

THOUSANDS_SEPARATOR = " "
DECIMAL_SEPARATOR = ","
MAX_FRACTION_DIGITS = 3

_MARKDOWN_SPECIAL = re.compile(r"([_*`\[])")

Number = Union[Decimal, int, float, str]


def format_amount(value: Number) -> str:
    """
    Формат суммы как в ru-RU: "25 000", "1 234,5".

    Не больше трёх знаков после запятой, хвостовые нули отбрасываются.
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidOrderData(f"Not a number: {value!r}") from e
    if not amount.is_finite():
        raise InvalidOrderData(f"Not a finite number: {value!r}")
    try:
        amount = amount.quantize(Decimal(1).scaleb(-MAX_FRACTION_DIGITS), rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise InvalidOrderData(f"Amount out of range: {value!r}") from e

    sign = "-" if amount < 0 else ""
    integer_part, _, fraction = f"{abs(amount):f}".partition(".")
    fraction = fraction.rstrip("0")

    grouped = f"{int(integer_part):,}".replace(",", THOUSANDS_SEPARATOR)
    if fraction:
        return f"{sign}{grouped}{DECIMAL_SEPARATOR}{fraction}"
    return f"{sign}{grouped}"


def escape_markdown(text: object) -> str:
    """Экранировать символы legacy Markdown в пользовательских полях."""
    if text is None:
        return ""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", str(text))


def build_payment_request_text(order: Order, settings: Settings) -> str:
    """
    Текст запроса на оплату: номер заказа, позиции, итог и реквизиты карты.

    Raises:
        ConfigurationError: реквизиты карты не заданы
        InvalidOrderData: у заказа нет позиций
    """
    if not settings.payment_card_number or not settings.payment_card_holder:
        raise ConfigurationError("Payment card details not configured")
    if not order.items:
        raise InvalidOrderData("Order has no items")

    product_list = "\n".join(
        messages.PAYMENT_REQUEST_LINE.format(
            quantity=item.quantity,
            name=escape_markdown(item.name),
            price=format_amount(item.price),
        )
        for item in order.items
    )

    return messages.PAYMENT_REQUEST_TEMPLATE.format(
        order_number=escape_markdown(order.order_number or order.id or ""),
        product_list=product_list,
        total=format_amount(order.grand_total),
        card_label=escape_markdown(settings.payment_card_label),
        card_number=escape_markdown(settings.payment_card_number),
        card_holder=escape_markdown(settings.payment_card_holder),
    )


def build_admin_payment_text(order: Order, screenshot_url: str) -> str:
    """Уведомление администратору о новой оплате."""
    return messages.ADMIN_PAYMENT_RECEIVED.format(
        order_number=escape_markdown(order.order_number or order.id or ""),
        client_name=escape_markdown(order.client_name or "—"),
        phone=escape_markdown(order.phone or "—"),
        total=format_amount(order.grand_total),
        screenshot_url=escape_markdown(screenshot_url),
    )


def with_support_contact(text: str, settings: Settings) -> str:
    if settings.support_contact:
        return text + messages.SUPPORT_SUFFIX.format(contact=escape_markdown(settings.support_contact))
    return text
