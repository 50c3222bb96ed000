"""HTTP endpoints: Telegram webhook, payment requests, webhook and pause management."""

import hmac
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ValidationError

from src.api.dependencies import Services, get_services
from src.models.enums import DeliveryStatus, PaymentStatus, StatusField
from src.models.errors import InvalidOrderData, OrderNotFound
from src.models.telegram import TelegramUpdate

router = APIRouter(prefix="/api")


class PauseToggle(BaseModel):
    paused: bool


class StatusUpdate(BaseModel):
    field: StatusField
    value: str


class WebhookRegistration(BaseModel):
    webhookUrl: Optional[str] = None


@router.post("/telegram-webhook")
async def telegram_webhook(
    request: Request,
    services: Services = Depends(get_services),
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
) -> JSONResponse:
    """
    Приём событий Telegram.

    200 {"ok": true} на любой обработанный исход (включая unmatched,
    paused и failed), чтобы Telegram не повторял доставку; 500 только если
    исключение вышло за пределы движка.
    """
    secret = services.settings.telegram_webhook_secret
    if secret and not hmac.compare_digest(x_telegram_bot_api_secret_token or "", secret):
        logger.warning("Webhook call with wrong secret token rejected")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid secret token")

    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Body must be JSON")

    try:
        update = TelegramUpdate.model_validate(payload)
    except ValidationError as e:
        # Unsupported update shapes are acknowledged so Telegram drops them
        logger.warning(f"Unsupported webhook payload acknowledged: {e.error_count()} validation errors")
        return JSONResponse({"ok": True})

    try:
        result = await services.engine.handle_update(update)
    except Exception:
        logger.exception(f"Webhook update {update.update_id} crashed")
        return JSONResponse(status_code=500, content={"ok": False, "error": "Internal server error"})

    logger.debug(f"Update {update.update_id} → {result.outcome.value}")
    return JSONResponse({"ok": True})


@router.post("/send-payment-request")
async def send_payment_request(
    body: Dict[str, Any] = Body(...),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    """Отправить клиенту запрос на оплату по данным заказа из админки."""
    logger.info("🔧 API: Received payment request")
    order = body.get("order")
    if not order:
        raise InvalidOrderData("Order data is required")
    if not isinstance(order, dict):
        raise InvalidOrderData("Order data must be an object")

    result = await services.initiator.send_payment_request(order)
    return {"success": True, "data": result}


@router.post("/orders/{order_id}/payment-request")
async def send_payment_request_by_id(
    order_id: str,
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    """То же самое, но заказ берётся из хранилища по id."""
    order = await services.store.get_by_id(order_id)
    if order is None:
        raise OrderNotFound(f"Order {order_id} not found")

    result = await services.initiator.send_payment_request(order)
    return {"success": True, "data": result}


@router.get("/orders")
async def list_orders(
    delivery_status: Optional[DeliveryStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    limit: int = 100,
    services: Services = Depends(get_services),
) -> List[Dict[str, Any]]:
    """Заказы с фильтром по статусам, новые сначала."""
    orders = await services.store.list_by_status(
        delivery_status=delivery_status,
        payment_status=payment_status,
        limit=max(1, min(limit, 500)),
    )
    return [order.model_dump(mode="json") for order in orders]


@router.patch("/orders/{order_id}/status")
async def update_order_status(
    order_id: str,
    body: StatusUpdate,
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    """Ручная смена статуса доставки или оплаты."""
    try:
        value = body.field.parse_value(body.value)
    except ValueError:
        raise InvalidOrderData(f"Invalid {body.field.value}: {body.value}")

    order = await services.store.update_status(order_id, body.field, value)
    return order.model_dump(mode="json")


@router.get("/set-webhook")
async def get_webhook_info(services: Services = Depends(get_services)) -> Dict[str, Any]:
    return await services.gateway.get_webhook_info()


@router.post("/set-webhook")
async def set_webhook(
    body: WebhookRegistration,
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    if not body.webhookUrl:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook URL is required")
    secret = services.settings.telegram_webhook_secret or None
    return await services.gateway.set_webhook(body.webhookUrl, secret_token=secret)


@router.delete("/set-webhook")
async def delete_webhook(services: Services = Depends(get_services)) -> Dict[str, Any]:
    return await services.gateway.delete_webhook()


@router.get("/webhook-pause")
async def get_pause(services: Services = Depends(get_services)) -> Dict[str, bool]:
    return {"paused": services.pause_gate.is_paused()}


@router.post("/webhook-pause")
async def set_pause(body: PauseToggle, services: Services = Depends(get_services)) -> Dict[str, bool]:
    return {"paused": services.pause_gate.set_paused(body.paused)}
