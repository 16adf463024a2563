"""
Conveyor settings repository - per-user configuration, usage counters and
learning state.

Counters (daily count, monthly spend, totals) are only ever changed through
the increment methods below; each increment is a single locked write so
concurrent scheduled and manual triggers cannot lose updates.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from app.core import get_logger
from app.models import ConveyorSettings
from .record_store import JsonRecordStore

logger = get_logger(__name__, component="settings_repository")

COUNTER_FIELDS = (
    "items_processed_today",
    "total_processed",
    "total_passed",
    "total_failed",
    "total_approved",
    "total_rejected",
)


class SettingsRepository:
    def __init__(self, data_dir: Path):
        self._store: JsonRecordStore[ConveyorSettings] = JsonRecordStore(
            Path(data_dir) / "settings", ConveyorSettings
        )

    def get(self, user_id: str) -> Optional[ConveyorSettings]:
        return self._store.load(user_id)

    def get_or_create(self, user_id: str) -> ConveyorSettings:
        with self._store.lock:
            settings = self._store.load(user_id)
            if settings is None:
                settings = self._store.save(user_id, ConveyorSettings(user_id=user_id))
            return settings

    def update(self, user_id: str, **fields) -> ConveyorSettings:
        protected = set(fields) & (set(COUNTER_FIELDS) | {"current_month_cost", "user_id"})
        if protected:
            raise ValueError(f"Counters cannot be set directly: {sorted(protected)}")
        self.get_or_create(user_id)

        def apply(settings: ConveyorSettings) -> None:
            for key, value in fields.items():
                setattr(settings, key, value)

        return self._store.mutate(user_id, apply)

    def modify(self, user_id: str, apply: Callable[[ConveyorSettings], None]) -> ConveyorSettings:
        """Atomic read-apply-write used by the learning service."""
        self.get_or_create(user_id)
        return self._store.mutate(user_id, apply)

    def list_enabled(self) -> List[ConveyorSettings]:
        return [settings for settings in self._store.iter_all() if settings.enabled]

    # === Atomic counters ===

    def increment(self, user_id: str, counter: str, amount: int = 1) -> ConveyorSettings:
        if counter not in COUNTER_FIELDS:
            raise ValueError(f"Unknown counter: {counter}")
        self.get_or_create(user_id)
        return self._store.mutate(
            user_id, lambda s: setattr(s, counter, getattr(s, counter) + amount)
        )

    def add_cost(self, user_id: str, amount: float) -> ConveyorSettings:
        self.get_or_create(user_id)
        return self._store.mutate(
            user_id, lambda s: setattr(s, "current_month_cost", round(s.current_month_cost + amount, 6))
        )

    def record_processed(self, user_id: str, cost: float) -> ConveyorSettings:
        """Count one admitted item against the daily cap and the monthly budget together."""
        self.get_or_create(user_id)

        def apply(settings: ConveyorSettings) -> None:
            settings.items_processed_today += 1
            settings.total_processed += 1
            settings.current_month_cost = round(settings.current_month_cost + cost, 6)

        return self._store.mutate(user_id, apply)

    def reset_daily_counts(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now()
        reset = 0
        with self._store.lock:
            for settings in self._store.all():
                settings.items_processed_today = 0
                settings.last_daily_reset = now
                self._store.save(settings.user_id, settings)
                reset += 1
        logger.info("Daily counters reset", extra={"users": reset})
        return reset

    def reset_monthly_costs(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now()
        reset = 0
        with self._store.lock:
            for settings in self._store.all():
                settings.current_month_cost = 0.0
                settings.last_monthly_reset = now
                self._store.save(settings.user_id, settings)
                reset += 1
        logger.info("Monthly budgets reset", extra={"users": reset})
        return reset
