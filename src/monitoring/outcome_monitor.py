"""Counters for webhook outcomes and reconciliation errors."""

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from loguru import logger

from src.models.enums import ReconciliationOutcome


class OutcomeMonitor:
    """Счётчики исходов обработки событий и последние ошибки."""

    def __init__(self, history_size: int = 100, error_threshold: int = 10, time_window_minutes: int = 60):
        """
        Args:
            history_size: Сколько последних ошибок хранить
            error_threshold: Порог ошибок в окне для предупреждения в лог
            time_window_minutes: Окно для подсчёта ошибок
        """
        self.history_size = history_size
        self.error_threshold = error_threshold
        self.time_window = timedelta(minutes=time_window_minutes)

        self.outcomes: Dict[str, int] = defaultdict(int)
        self.errors_by_kind: Dict[str, int] = defaultdict(int)
        self.error_history: List[Dict[str, Any]] = []

    def record_outcome(self, outcome: ReconciliationOutcome) -> None:
        self.outcomes[ReconciliationOutcome(outcome).value] += 1

    def record_error(
        self,
        kind: str,
        chat_id: Optional[str] = None,
        order_id: Optional[Any] = None,
        detail: Optional[str] = None,
    ) -> None:
        """Записать ошибку обработки события."""
        now = datetime.now(timezone.utc)
        self.errors_by_kind[kind] += 1
        self.error_history.append({
            "timestamp": now.isoformat(),
            "kind": kind,
            "chat_id": chat_id,
            "order_id": order_id,
            "detail": detail,
        })
        if len(self.error_history) > self.history_size:
            self.error_history = self.error_history[-self.history_size:]

        recent = self._recent_errors(now)
        if len(recent) >= self.error_threshold:
            logger.warning(
                f"🚨 {len(recent)} reconciliation errors in the last "
                f"{int(self.time_window.total_seconds() // 60)} min, last: {kind}"
            )

    def _recent_errors(self, now: datetime) -> List[Dict[str, Any]]:
        cutoff = now - self.time_window
        return [e for e in self.error_history if datetime.fromisoformat(e["timestamp"]) > cutoff]

    def get_stats(self) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        return {
            "outcomes": dict(self.outcomes),
            "errors_by_kind": dict(self.errors_by_kind),
            "errors_in_window": len(self._recent_errors(now)),
            "recent_errors": self.error_history[-10:],
        }
