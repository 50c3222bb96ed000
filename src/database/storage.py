"""Supabase Storage client for payment screenshots."""

from typing import Optional
from urllib.parse import quote

import httpx
from loguru import logger

from src.config.settings import Settings, get_settings
from src.models.errors import ConfigurationError, PersistenceError


class SupabaseProofStorage:
    """
    Загрузка скриншотов оплаты в bucket Supabase Storage.

    Файл кладётся с x-upsert, поэтому повторная загрузка по тому же пути
    даёт тот же публичный URL.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = settings or get_settings()
        self.url = settings.supabase_url.rstrip("/")
        self.key = settings.supabase_key
        self.bucket = settings.screenshot_bucket

        if not self.url or not self.key or not self.bucket:
            raise ConfigurationError("Supabase URL, key and screenshot bucket must be configured")

        self.client = httpx.AsyncClient(
            base_url=f"{self.url}/storage/v1",
            headers={
                "apikey": self.key,
                "Authorization": f"Bearer {self.key}",
            },
            timeout=60.0,
            transport=transport,
        )

    def public_url(self, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    async def store(self, path: str, content: bytes, content_type: str = "image/jpeg") -> str:
        """
        Загрузить файл и вернуть его публичный URL.

        Raises:
            PersistenceError: Storage API вернул ошибку или недоступен
        """
        try:
            response = await self.client.post(
                f"/object/{self.bucket}/{quote(path)}",
                content=content,
                headers={"Content-Type": content_type, "x-upsert": "true"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Failed to upload {path}: {e.response.status_code} - {e.response.text}")
            raise PersistenceError("Failed to upload payment screenshot", details=e.response.text[:500]) from e
        except httpx.HTTPError as e:
            logger.error(f"Error uploading {path}: {e}")
            raise PersistenceError("Failed to upload payment screenshot", details=str(e)) from e

        logger.debug(f"Screenshot uploaded: {self.bucket}/{path}")
        return self.public_url(path)

    async def close(self):
        await self.client.aclose()
