"""Tests for the operator-triggered payment request."""

import json

import httpx
import pytest

from src.models.errors import (
    ConfigurationError,
    DeliveryFailed,
    InvalidOrderData,
    MissingRecipient,
)
from src.payments.payment_request import PaymentRequestInitiator
from src.telegram.gateway import TelegramGateway
from tests.conftest import SAMPLE_ITEMS, FakeGateway, build_order


def order_payload(**overrides):
    data = {
        "id": 42,
        "order_number": "A-42",
        "chat_id": "555",
        "items": json.dumps(SAMPLE_ITEMS),
        "total_price": 25000,
    }
    data.update(overrides)
    return data


@pytest.fixture
def initiator(gateway, settings):
    return PaymentRequestInitiator(gateway, settings)


class TestSendPaymentRequest:
    """Проверки выполняются до отправки сообщения."""

    async def test_sends_invoice_to_order_chat(self, initiator, gateway):
        result = await initiator.send_payment_request(order_payload())

        assert result["ok"] is True
        assert len(gateway.sent) == 1
        chat_id, text = gateway.sent[0]
        assert chat_id == "555"
        assert "• 2 x Box A - 10 000 сум" in text
        assert "*25 000 сум*" in text

    async def test_accepts_order_model(self, initiator, gateway):
        await initiator.send_payment_request(build_order(3))
        assert gateway.texts_to("555")

    async def test_integer_chat_id(self, initiator, gateway):
        await initiator.send_payment_request(order_payload(chat_id=555))
        assert gateway.sent[0][0] == "555"

    @pytest.mark.parametrize("chat_id", [None, "", "   "])
    async def test_missing_chat_id(self, initiator, gateway, chat_id):
        with pytest.raises(MissingRecipient) as exc_info:
            await initiator.send_payment_request(order_payload(chat_id=chat_id))

        assert exc_info.value.message == "Chat ID not found for this order"
        assert gateway.sent == []

    async def test_missing_chat_id_checked_before_items(self, initiator, gateway):
        with pytest.raises(MissingRecipient):
            await initiator.send_payment_request(order_payload(chat_id=None, items="broken"))

    async def test_malformed_items(self, initiator, gateway):
        with pytest.raises(InvalidOrderData) as exc_info:
            await initiator.send_payment_request(order_payload(items="[{broken"))

        assert exc_info.value.message == "Invalid order items format"
        assert gateway.sent == []

    async def test_empty_items(self, initiator, gateway):
        with pytest.raises(InvalidOrderData):
            await initiator.send_payment_request(order_payload(items="[]"))
        assert gateway.sent == []

    async def test_missing_token(self, settings):
        gateway = FakeGateway(token="")
        initiator = PaymentRequestInitiator(gateway, settings)

        with pytest.raises(ConfigurationError):
            await initiator.send_payment_request(order_payload())
        assert gateway.sent == []

    async def test_missing_card_details(self, initiator, gateway, settings):
        settings.payment_card_holder = ""
        with pytest.raises(ConfigurationError):
            await initiator.send_payment_request(order_payload())
        assert gateway.sent == []

    async def test_order_is_not_modified(self, initiator):
        order = build_order(5)
        await initiator.send_payment_request(order)
        assert order.payment_status.value == "pending"
        assert order.payment_screenshot is None


async def test_platform_rejection_surfaces_description(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"ok": False, "error_code": 400, "description": "Bad Request: chat not found"})

    gateway = TelegramGateway(settings, transport=httpx.MockTransport(handler))
    initiator = PaymentRequestInitiator(gateway, settings)

    with pytest.raises(DeliveryFailed) as exc_info:
        await initiator.send_payment_request(order_payload())

    assert exc_info.value.to_payload() == {
        "error": "Failed to send message to Telegram",
        "details": "Bad Request: chat not found",
    }
    await gateway.close()
