"""Telegram Bot API gateway over httpx."""

from typing import Any, Dict, Optional, Union

import httpx
from loguru import logger

from src.config.settings import Settings, get_settings
from src.models.errors import (
    ConfigurationError,
    DeliveryFailed,
    FileResolutionError,
    GatewayError,
)
from src.utils.logger import mask_token


ChatId = Union[int, str]


class BotApiError(Exception):
    """Bot API answered with ok=false or a non-2xx status."""

    def __init__(self, method: str, status_code: int, description: str, body: Optional[Dict[str, Any]] = None):
        super().__init__(f"{method} failed [{status_code}]: {description}")
        self.method = method
        self.status_code = status_code
        self.description = description
        self.body = body or {}


class TelegramGateway:
    """
    Тонкая обёртка над Bot API: sendMessage, getFile, setWebhook и т.д.

    Бизнес-логики здесь нет, ретраев тоже: решение о повторе принимает
    вызывающий код.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = settings or get_settings()
        self.token = settings.telegram_bot_token
        self.api_base = settings.telegram_api_base.rstrip("/")
        self.parse_mode = settings.telegram_parse_mode or None

        self.client = httpx.AsyncClient(
            base_url=f"{self.api_base}/bot{self.token}",
            timeout=settings.telegram_timeout_seconds,
            transport=transport,
        )
        logger.info(f"Telegram gateway initialized (configured={self.is_configured})")

    @property
    def is_configured(self) -> bool:
        return bool(self.token)

    def _require_token(self) -> None:
        if not self.token:
            raise ConfigurationError("Telegram bot token not configured")

    async def _call(self, method: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Вызвать метод Bot API и вернуть JSON ответа, если ok=true."""
        self._require_token()
        try:
            if payload is None:
                response = await self.client.get(f"/{method}")
            else:
                response = await self.client.post(f"/{method}", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Bot API {method} transport error: {mask_token(str(e), self.token)}")
            raise GatewayError(f"Bot API {method} request failed", details=mask_token(str(e), self.token)) from e

        try:
            body = response.json()
        except ValueError:
            body = {"ok": False, "description": response.text[:500]}

        if response.is_error or not body.get("ok", False):
            description = body.get("description") or f"HTTP {response.status_code}"
            logger.error(f"Bot API {method} rejected: {response.status_code} - {description}")
            raise BotApiError(method, response.status_code, description, body)

        return body

    async def send_message(
        self,
        chat_id: ChatId,
        text: str,
        parse_mode: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Отправить текстовое сообщение.

        Returns:
            Сырой ответ Bot API ({"ok": true, "result": {...}})

        Raises:
            ConfigurationError: токен не задан
            DeliveryFailed: Bot API отклонил сообщение (description как есть)
                или сетевая ошибка (текст ошибки без токена)
        """
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        mode = parse_mode or self.parse_mode
        if mode:
            payload["parse_mode"] = mode

        try:
            result = await self._call("sendMessage", payload)
        except BotApiError as e:
            raise DeliveryFailed("Failed to send message to Telegram", details=e.description) from e
        except GatewayError as e:
            raise DeliveryFailed("Failed to send message to Telegram", details=e.details) from e

        logger.debug(f"Message sent to chat {chat_id}")
        return result

    async def resolve_file_url(self, file_id: str) -> str:
        """
        file_id → URL для скачивания файла.

        Raises:
            ConfigurationError: токен не задан
            FileResolutionError: getFile не вернул file_path
        """
        try:
            body = await self._call("getFile", {"file_id": file_id})
        except (BotApiError, GatewayError) as e:
            raise FileResolutionError("Failed to get file info from Telegram", details=str(e)) from e

        file_path = (body.get("result") or {}).get("file_path")
        if not file_path:
            raise FileResolutionError("Telegram returned no file_path", details={"file_id": file_id})

        return f"{self.api_base}/file/bot{self.token}/{file_path}"

    async def download_file(self, url: str) -> bytes:
        """Скачать файл по URL, полученному из resolve_file_url."""
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FileResolutionError(
                "Failed to download file from Telegram",
                details=mask_token(str(e), self.token),
            ) from e
        return response.content

    async def get_me(self) -> Dict[str, Any]:
        """Проверка токена: данные бота."""
        return await self._call("getMe")

    async def _passthrough(self, method: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        # Webhook management returns the platform answer unchanged, ok=false included
        try:
            return await self._call(method, payload)
        except BotApiError as e:
            return e.body or {"ok": False, "description": e.description}

    async def set_webhook(self, url: str, secret_token: Optional[str] = None) -> Dict[str, Any]:
        """Зарегистрировать webhook URL."""
        payload: Dict[str, Any] = {"url": url}
        if secret_token:
            payload["secret_token"] = secret_token
        result = await self._passthrough("setWebhook", payload)
        logger.info(f"setWebhook {url}: ok={result.get('ok')}")
        return result

    async def get_webhook_info(self) -> Dict[str, Any]:
        """URL, pending_update_count, last_error_message и т.д."""
        return await self._passthrough("getWebhookInfo")

    async def delete_webhook(self) -> Dict[str, Any]:
        """Снять регистрацию webhook."""
        result = await self._passthrough("deleteWebhook", {})
        logger.info(f"deleteWebhook: ok={result.get('ok')}")
        return result

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
