"""Tests for invoice formatting."""

from decimal import Decimal

import pytest

from src.models.errors import ConfigurationError, InvalidOrderData
from src.models.order import Order
from src.payments.invoice import (
    build_admin_payment_text,
    build_payment_request_text,
    escape_markdown,
    format_amount,
    with_support_contact,
)
from tests.conftest import SAMPLE_ITEMS, build_order


class TestFormatAmount:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, "0"),
            (999, "999"),
            (5000, "5 000"),
            (10000, "10 000"),
            (25000, "25 000"),
            (1000000, "1 000 000"),
            (Decimal("1234.5"), "1 234,5"),
            (Decimal("1234.50"), "1 234,5"),
            (Decimal("0.1235"), "0,124"),
            ("15000.00", "15 000"),
            (-1500, "-1 500"),
        ],
    )
    def test_grouping_and_fraction(self, value, expected):
        assert format_amount(value) == expected

    def test_not_a_number(self):
        with pytest.raises(InvalidOrderData):
            format_amount("abc")

    def test_infinite(self):
        with pytest.raises(InvalidOrderData):
            format_amount("Infinity")

    def test_out_of_range(self):
        with pytest.raises(InvalidOrderData):
            format_amount("1e30")


def test_escape_markdown():
    assert escape_markdown("Box_A *new* [x] `y`") == "Box\\_A \\*new\\* \\[x] \\`y\\`"
    assert escape_markdown(None) == ""


class TestPaymentRequestText:
    def test_content(self, settings):
        text = build_payment_request_text(build_order(1), settings)

        assert "Ваш заказ №A-1" in text
        assert "• 2 x Box A - 10 000 сум" in text
        assert "• 1 x Box B - 5 000 сум" in text
        assert "*25 000 сум*" in text
        assert "Uzcard: 8600 1234 5678 9012" in text
        assert "Ivan Petrov" in text
        assert text.rstrip().endswith("отправьте сюда скриншот подтверждения оплаты.")

    def test_lines_keep_item_order(self, settings):
        text = build_payment_request_text(build_order(1), settings)
        assert text.index("Box A") < text.index("Box B")

    def test_total_from_items_when_total_missing(self, settings):
        order = Order.from_payload({"id": 1, "order_number": "A-1", "chat_id": "555", "items": SAMPLE_ITEMS})
        assert "*25 000 сум*" in build_payment_request_text(order, settings)

    def test_item_names_escaped(self, settings):
        order = build_order(1, items=[{"name": "Box_A", "quantity": 1, "price": 100}])
        assert "Box\\_A" in build_payment_request_text(order, settings)

    def test_missing_card_details(self, settings):
        settings.payment_card_number = ""
        with pytest.raises(ConfigurationError):
            build_payment_request_text(build_order(1), settings)

    def test_no_items(self, settings):
        with pytest.raises(InvalidOrderData):
            build_payment_request_text(build_order(1, items=[]), settings)


def test_admin_text():
    text = build_admin_payment_text(build_order(7), "https://example.com/p.jpg")
    assert "Заказ №A-7" in text
    assert "Сумма: 25 000 сум" in text
    assert "https://example.com/p.jpg" in text


def test_support_contact_suffix(settings):
    assert with_support_contact("Ошибка", settings) == "Ошибка"
    settings.support_contact = "@shop_support"
    assert with_support_contact("Ошибка", settings).endswith("Поддержка: @shop\\_support")
