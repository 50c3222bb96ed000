"""Main entry point for the shop payments bot."""

import asyncio
import json
from typing import Optional

import typer
import uvicorn
from loguru import logger
from rich.console import Console
from rich.table import Table

from src.api.app import create_app
from src.api.dependencies import build_services
from src.config.pause_gate import build_pause_gate
from src.config.settings import get_settings
from src.database.base import db_manager
from src.models.enums import PaymentStatus
from src.models.errors import PaymentsError
from src.payments.invoice import format_amount
from src.payments.messages import DELIVERY_STATUS_LABELS, PAYMENT_STATUS_LABELS
from src.telegram.gateway import TelegramGateway
from src.utils.logger import setup_logger

# Create Typer app
app = typer.Typer(
    help="💳 Shop payments bot: payment requests and screenshot reconciliation",
    no_args_is_help=True,
)
webhook_app = typer.Typer(help="🔗 Telegram webhook registration")
pause_app = typer.Typer(help="⏸  Pause reconciliation of incoming screenshots")
orders_app = typer.Typer(help="📦 Orders")
admin_app = typer.Typer(help="⚙️  Admin commands")
app.add_typer(webhook_app, name="webhook")
app.add_typer(pause_app, name="pause")
app.add_typer(orders_app, name="orders")
app.add_typer(admin_app, name="admin")

console = Console()


def _fail(message: str) -> None:
    console.print(f"[red]❌ {message}[/]")
    raise typer.Exit(code=1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind host (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, help="Bind port (default: API_PORT)"),
):
    """
    ▶️  Запустить HTTP API: приём webhook от Telegram и ручки для админки.
    """
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_level=settings.log_level.lower(),
    )


# ============================================================================
# WEBHOOK COMMANDS
# ============================================================================

@webhook_app.command("set")
def webhook_set(
    url: str = typer.Argument(..., help="Public HTTPS URL of /api/telegram-webhook"),
):
    """Зарегистрировать webhook в Telegram."""
    async def _set():
        settings = get_settings()
        async with TelegramGateway(settings) as gateway:
            return await gateway.set_webhook(url, secret_token=settings.telegram_webhook_secret or None)

    try:
        result = asyncio.run(_set())
    except PaymentsError as e:
        _fail(str(e))
    if result.get("ok"):
        console.print(f"✓ Webhook set: {url}")
    else:
        _fail(f"Telegram refused: {result.get('description')}")


@webhook_app.command("info")
def webhook_info():
    """Показать текущую регистрацию webhook."""
    async def _info():
        async with TelegramGateway(get_settings()) as gateway:
            return await gateway.get_webhook_info()

    try:
        result = asyncio.run(_info())
    except PaymentsError as e:
        _fail(str(e))

    info = result.get("result") or {}
    table = Table(title="🔗 Webhook", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for key in ("url", "pending_update_count", "last_error_date", "last_error_message", "max_connections"):
        if key in info:
            table.add_row(key, str(info[key]))
    console.print(table)


@webhook_app.command("delete")
def webhook_delete():
    """Снять webhook."""
    async def _delete():
        async with TelegramGateway(get_settings()) as gateway:
            return await gateway.delete_webhook()

    try:
        result = asyncio.run(_delete())
    except PaymentsError as e:
        _fail(str(e))
    if result.get("ok"):
        console.print("✓ Webhook deleted")
    else:
        _fail(f"Telegram refused: {result.get('description')}")


# ============================================================================
# PAUSE COMMANDS
# ============================================================================

def _pause_gate():
    settings = get_settings()
    if not settings.pause_state_file:
        _fail("PAUSE_STATE_FILE is not set: pause state lives only inside the running API")
    return build_pause_gate(settings)


@pause_app.command("on")
def pause_on():
    """Поставить обработку скриншотов на паузу."""
    _pause_gate().set_paused(True)
    console.print("⏸  Reconciliation paused")


@pause_app.command("off")
def pause_off():
    """Снять паузу."""
    _pause_gate().set_paused(False)
    console.print("▶️  Reconciliation resumed")


@pause_app.command("status")
def pause_status():
    """Показать состояние паузы."""
    paused = _pause_gate().is_paused()
    console.print("⏸  paused" if paused else "▶️  active")


# ============================================================================
# ORDER COMMANDS
# ============================================================================

@app.command("request-payment")
def request_payment(
    order_id: str = typer.Argument(..., help="Order id"),
):
    """Отправить клиенту запрос на оплату заказа."""
    async def _request():
        services = await build_services(get_settings())
        try:
            order = await services.store.get_by_id(order_id)
            if order is None:
                _fail(f"Order {order_id} not found")
            await services.initiator.send_payment_request(order)
            return order
        finally:
            await services.close()

    try:
        order = asyncio.run(_request())
    except PaymentsError as e:
        _fail(str(e))
    console.print(f"✓ Payment request for order {order.order_number or order.id} sent to chat {order.chat_id}")


@orders_app.command("pending")
def orders_pending(
    limit: int = typer.Option(50, help="Max orders to show"),
):
    """Заказы, ожидающие оплаты."""
    async def _pending():
        services = await build_services(get_settings())
        try:
            return await services.store.list_by_status(payment_status=PaymentStatus.PENDING, limit=limit)
        finally:
            await services.close()

    try:
        orders = asyncio.run(_pending())
    except PaymentsError as e:
        _fail(str(e))

    if not orders:
        console.print("[yellow]No orders awaiting payment[/]")
        return

    table = Table(title="⏳ Awaiting payment", show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Order", style="green")
    table.add_column("Client", style="blue")
    table.add_column("Chat ID", style="magenta")
    table.add_column("Total", style="yellow")
    table.add_column("Delivery", style="white")
    table.add_column("Created", style="dim")

    for order in orders:
        table.add_row(
            str(order.id),
            order.order_number or "",
            order.client_name or "",
            order.chat_id or "—",
            format_amount(order.grand_total),
            DELIVERY_STATUS_LABELS[order.delivery_status.value],
            order.created_at.strftime("%Y-%m-%d %H:%M") if order.created_at else "N/A",
        )

    console.print(table)
    console.print(f"\n[dim]{PAYMENT_STATUS_LABELS[PaymentStatus.PENDING.value]}: {len(orders)}[/]")


# ============================================================================
# ADMIN COMMANDS
# ============================================================================

@admin_app.command()
def init_db():
    """Инициализировать БД (создать таблицы)."""
    async def _init_database():
        logger.info("Initializing database...")

        await db_manager.initialize(get_settings())
        try:
            await db_manager.create_tables()
        finally:
            await db_manager.close()

        logger.info("✓ Database initialized with all tables")

    settings = get_settings()
    setup_logger(log_level=settings.log_level, secrets=settings.log_secrets)
    asyncio.run(_init_database())


@admin_app.command()
def test_connection():
    """Проверить подключение к хранилищу заказов и к Bot API."""
    async def _check():
        settings = get_settings()
        report = {}
        services = await build_services(settings)
        try:
            if hasattr(services.store, "health_check"):
                report["order_store"] = await services.store.health_check()
            else:
                report["order_store"] = await db_manager.check_connection()
            if services.gateway.is_configured:
                me = await services.gateway.get_me()
                report["telegram"] = bool(me.get("ok"))
            else:
                report["telegram"] = False
        finally:
            await services.close()
        return report

    try:
        report = asyncio.run(_check())
    except PaymentsError as e:
        _fail(str(e))
    console.print(json.dumps(report, indent=2, ensure_ascii=False))
    if not all(report.values()):
        raise typer.Exit(code=1)


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    app()
