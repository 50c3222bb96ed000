"""Service wiring shared by the HTTP API and the CLI."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from loguru import logger

from src.config.pause_gate import PauseGate, build_pause_gate
from src.config.settings import Settings
from src.database.base import db_manager
from src.database.storage import SupabaseProofStorage
from src.database.store import OrderStore, SqlOrderStore
from src.database.supabase_client import SupabaseOrderStore
from src.models.errors import ConfigurationError
from src.monitoring.outcome_monitor import OutcomeMonitor
from src.payments.commands import TextCommandHandler
from src.payments.payment_request import PaymentRequestInitiator
from src.payments.reconciliation import ReconciliationEngine
from src.telegram.gateway import TelegramGateway


@dataclass
class Services:
    """Всё, что нужно обработчикам: шлюз, хранилище, флаг паузы, движок."""
    settings: Settings
    gateway: TelegramGateway
    store: OrderStore
    pause_gate: PauseGate
    engine: ReconciliationEngine
    initiator: PaymentRequestInitiator
    monitor: OutcomeMonitor
    proof_storage: Optional[SupabaseProofStorage] = None

    async def close(self) -> None:
        await self.gateway.close()
        await self.store.close()
        if self.proof_storage is not None:
            await self.proof_storage.close()
        if db_manager.is_initialized():
            await db_manager.close()


def assemble_services(
    settings: Settings,
    gateway: TelegramGateway,
    store: OrderStore,
    pause_gate: Optional[PauseGate] = None,
    proof_storage: Optional[SupabaseProofStorage] = None,
    monitor: Optional[OutcomeMonitor] = None,
) -> Services:
    """Собрать движок и инициатор поверх готовых зависимостей."""
    pause_gate = pause_gate or build_pause_gate(settings)
    monitor = monitor or OutcomeMonitor()
    engine = ReconciliationEngine(
        gateway=gateway,
        store=store,
        pause_gate=pause_gate,
        settings=settings,
        proof_storage=proof_storage,
        command_handler=TextCommandHandler(gateway, store),
        monitor=monitor,
    )
    return Services(
        settings=settings,
        gateway=gateway,
        store=store,
        pause_gate=pause_gate,
        engine=engine,
        initiator=PaymentRequestInitiator(gateway, settings),
        monitor=monitor,
        proof_storage=proof_storage,
    )


async def build_order_store(settings: Settings) -> OrderStore:
    """Хранилище заказов по ORDER_STORE: supabase (REST) или sql (SQLAlchemy)."""
    backend = settings.order_store.lower()
    if backend == "sql":
        await db_manager.initialize(settings)
        return SqlOrderStore(db_manager.session_maker)
    if backend == "supabase":
        return SupabaseOrderStore(settings)
    raise ConfigurationError(f"Unknown ORDER_STORE backend: {settings.order_store}")


async def build_services(settings: Settings) -> Services:
    """Собрать все сервисы из настроек."""
    gateway = TelegramGateway(settings)
    if not gateway.is_configured:
        logger.warning("TELEGRAM_BOT_TOKEN is not set: payment requests and replies will fail")

    store = await build_order_store(settings)
    proof_storage = SupabaseProofStorage(settings) if settings.screenshot_bucket else None

    return assemble_services(settings, gateway, store, proof_storage=proof_storage)


def get_services(request: Request) -> Services:
    """FastAPI dependency."""
    return request.app.state.services
