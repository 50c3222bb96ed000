"""Webhook pause switch for automatic payment reconciliation."""

import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from src.config.settings import Settings


class PauseGate:
    """
    Узкий контракт: is_paused() / set_paused().

    Движок читает флаг один раз в начале обработки события; переключение
    влияет только на следующие события.
    """

    def is_paused(self) -> bool:
        raise NotImplementedError

    def set_paused(self, paused: bool) -> bool:
        raise NotImplementedError


class InMemoryPauseGate(PauseGate):
    """Флаг в памяти процесса (один worker, тесты)."""

    def __init__(self, paused: bool = False):
        self._paused = bool(paused)
        self._lock = threading.Lock()

    def is_paused(self) -> bool:
        return self._paused

    def set_paused(self, paused: bool) -> bool:
        with self._lock:
            self._paused = bool(paused)
        logger.info(f"Webhook processing {'paused' if paused else 'resumed'}")
        return self._paused


class FilePauseGate(PauseGate):
    """
    Флаг в JSON-файле: {"paused": bool, "updated_at": iso}.

    Файл читается при каждом запросе, так что все worker-процессы видят
    одно и то же состояние. Если файла нет, используется default.
    """

    def __init__(self, path: Union[str, Path], default: bool = False):
        self.path = Path(path)
        self.default = bool(default)
        self._lock = threading.Lock()

    def is_paused(self) -> bool:
        if not self.path.exists():
            return self.default
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            # Unreadable state must not silently resume processing
            logger.error(f"Cannot read pause state {self.path}: {e}; treating as paused")
            return True
        if not isinstance(data, dict):
            logger.error(f"Pause state {self.path} is not an object; treating as paused")
            return True
        return bool(data.get("paused", self.default))

    def set_paused(self, paused: bool) -> bool:
        paused = bool(paused)
        data = {"paused": paused, "updated_at": datetime.now(timezone.utc).isoformat()}

        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)

        logger.info(f"Webhook processing {'paused' if paused else 'resumed'} ({self.path})")
        return paused


def build_pause_gate(settings: Settings, path: Optional[str] = None) -> PauseGate:
    """Файловый флаг, если задан PAUSE_STATE_FILE, иначе флаг в памяти."""
    path = path or settings.pause_state_file
    if path:
        return FilePauseGate(path, default=settings.webhook_paused)
    return InMemoryPauseGate(paused=settings.webhook_paused)
