"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from src.api.dependencies import Services, build_services
from src.api.routes import router
from src.config.settings import Settings, get_settings
from src.models.errors import PaymentsError
from src.utils.logger import setup_logger


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Создать приложение.

    Args:
        settings: Настройки; по умолчанию из окружения
        services: Готовые сервисы (тесты). Если не переданы, собираются
            при старте и закрываются при остановке.
    """
    settings = settings or (services.settings if services else get_settings())
    setup_logger(log_level=settings.log_level, log_file=settings.log_file, secrets=settings.log_secrets)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_services = getattr(app.state, "services", None) is None
        if owns_services:
            app.state.services = await build_services(settings)
        logger.info("✓ Payment webhook API started")
        try:
            yield
        finally:
            if owns_services:
                await app.state.services.close()
                app.state.services = None
            logger.info("✓ Payment webhook API stopped")

    app = FastAPI(title="Shop payments bot", version="1.0.0", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(PaymentsError)
    async def payments_error_handler(request: Request, exc: PaymentsError) -> JSONResponse:
        logger.error(f"❌ {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=exc.http_status, content=exc.to_payload())

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(router)

    @app.get("/health", tags=["health"])
    async def health(request: Request) -> Dict[str, Any]:
        """Живость сервиса и счётчики исходов обработки."""
        services: Optional[Services] = request.app.state.services
        if services is None:
            return {"status": "starting"}
        return {
            "status": "ok",
            "paused": services.pause_gate.is_paused(),
            "telegram_configured": services.gateway.is_configured,
            "reconciliation": services.monitor.get_stats(),
        }

    return app
