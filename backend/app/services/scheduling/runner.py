"""
Scheduled runner - periodic, admission-controlled batch processing.

Users are processed one after another and, within a user, items one after
another. Before each user the monthly budget and the daily cap are checked;
after every single item both are re-read so a mid-batch breach stops the
batch immediately.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from app.config import RUNNER_ENABLED, RUNNER_INTERVAL_MINUTES, STUCK_TIMEOUT_MINUTES
from app.config.constants import ESTIMATED_COST_PER_ITEM
from app.core import LogTimer, get_logger
from app.models import ConveyorSettings
from app.services.infrastructure.storage import AuditLogRepository, ItemRepository, SettingsRepository
from app.services.pipeline import EventBus, Orchestrator, ProcessResult
from app.services.pipeline.agents import AgentContext, ScoutAgent, ScoutInput

logger = get_logger(__name__, component="scheduled_runner")

SCOUT_ITEM_ID = "scout-runner"


@dataclass
class UserRunSummary:
    user_id: str
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    found: int = 0
    stopped_reason: Optional[str] = None
    results: List[ProcessResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "found": self.found,
            "stopped_reason": self.stopped_reason,
        }


class ScheduledRunner:
    def __init__(
        self,
        items: ItemRepository,
        settings: SettingsRepository,
        audit: AuditLogRepository,
        scout: ScoutAgent,
        orchestrator: Orchestrator,
        bus: EventBus,
        interval_minutes: int = RUNNER_INTERVAL_MINUTES,
        stuck_timeout_minutes: int = STUCK_TIMEOUT_MINUTES,
        enabled: bool = RUNNER_ENABLED,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.items = items
        self.settings = settings
        self.audit = audit
        self.scout = scout
        self.orchestrator = orchestrator
        self.bus = bus
        self.interval_minutes = interval_minutes
        self.stuck_timeout_minutes = stuck_timeout_minutes
        self.enabled = enabled
        self._clock = clock
        self._running = False
        self._last_tick: Optional[datetime] = None

    # === Maintenance ===

    def sweep_stuck_items(self, now: Optional[datetime] = None) -> List[str]:
        """Fail items stuck in processing for longer than the timeout."""
        return self.items.mark_stuck_failed(self.stuck_timeout_minutes, now or self._clock())

    def reset_daily(self, now: Optional[datetime] = None) -> int:
        return self.settings.reset_daily_counts(now or self._clock())

    def reset_monthly(self, now: Optional[datetime] = None) -> int:
        return self.settings.reset_monthly_costs(now or self._clock())

    def _roll_over(self, now: datetime) -> None:
        """Reset counters when the date or month changed since the last tick."""
        last = self._last_tick
        self._last_tick = now
        if last is None:
            return
        if (now.year, now.month) != (last.year, last.month):
            self.reset_monthly(now)
        if now.date() != last.date():
            self.reset_daily(now)

    # === Batch processing ===

    def _limit_hit(self, settings: ConveyorSettings) -> Optional[str]:
        if settings.budget_reached:
            return "budget"
        if settings.daily_limit_reached:
            return "daily"
        return None

    def _record_limit(self, user_id: str, limit: str, settings: ConveyorSettings) -> None:
        self.audit.append(user_id, "limit_reached", details={
            "limit": limit,
            "items_processed_today": settings.items_processed_today,
            "daily_limit": settings.daily_limit,
            "current_month_cost": settings.current_month_cost,
            "monthly_budget_limit": settings.monthly_budget_limit,
        })
        logger.info("Limit reached", extra={"user_id": user_id, "limit": limit})

    async def run_for_user(self, user_id: str, settings: Optional[ConveyorSettings] = None) -> UserRunSummary:
        summary = UserRunSummary(user_id=user_id)
        settings = settings or self.settings.get_or_create(user_id)

        limit = self._limit_hit(settings)
        if limit:
            self._record_limit(user_id, limit, settings)
            summary.stopped_reason = limit
            return summary

        scout_result = await self.scout.process(
            ScoutInput(settings=settings, now=self._clock()),
            AgentContext(user_id=user_id, item_id=SCOUT_ITEM_ID, bus=self.bus),
        )
        if not scout_result.success:
            logger.error("Scout failed", extra={"user_id": user_id, "error": scout_result.error})
            summary.stopped_reason = "scout_failed"
            return summary

        found = scout_result.data.items
        summary.found = len(found)
        candidates = [s for s in found if not self.items.exists_for_source(user_id, s.type, s.item_id)]
        summary.skipped = len(found) - len(candidates)

        max_to_process = min(settings.remaining_daily, settings.affordable_items(ESTIMATED_COST_PER_ITEM), len(candidates))
        if not candidates:
            logger.info("No new items", extra={"user_id": user_id, "skipped": summary.skipped})
        elif max_to_process <= 0:
            summary.stopped_reason = "no_capacity"

        for source in candidates[:max(max_to_process, 0)]:
            # A manual trigger may have picked the same source up meanwhile
            if self.items.exists_for_source(user_id, source.type, source.item_id):
                summary.skipped += 1
                continue

            result = await self.orchestrator.process_item(user_id, source, settings)
            summary.results.append(result)
            if result.success:
                summary.processed += 1
                self.settings.record_processed(user_id, ESTIMATED_COST_PER_ITEM)
            else:
                summary.failed += 1
                logger.warning("Item failed", extra={
                    "user_id": user_id,
                    "item_id": result.item_id,
                    "source_item_id": source.item_id,
                    "error": result.error,
                })

            settings = self.settings.get_or_create(user_id)
            limit = self._limit_hit(settings)
            if limit:
                self._record_limit(user_id, limit, settings)
                summary.stopped_reason = limit
                break

        if summary.found and summary.skipped == summary.found:
            self.bus.stage_thinking(
                user_id, SCOUT_ITEM_ID, 1,
                f"All {summary.skipped} items found were processed before. Waiting for new material",
            )

        logger.info("User batch finished", extra=summary.to_dict())
        return summary

    async def run_once(self) -> dict:
        """One full pass: sweep stuck items, then every enabled user in turn."""
        if self._running:
            logger.info("Runner already running, skipping")
            return {"skipped": True}

        self._running = True
        try:
            try:
                swept = self.sweep_stuck_items()
            except Exception as e:
                logger.error("Stuck item sweep failed", extra={"error": str(e)}, exc_info=True)
                swept = []

            users = self.settings.list_enabled()
            summaries = []
            with LogTimer(logger, f"runner pass ({len(users)} users)"):
                for settings in users:
                    try:
                        summaries.append((await self.run_for_user(settings.user_id, settings)).to_dict())
                    except Exception as e:
                        logger.error("User processing error", extra={
                            "user_id": settings.user_id,
                            "error": str(e),
                        }, exc_info=True)
                        summaries.append({"user_id": settings.user_id, "error": str(e)})

            logger.info("Runner pass complete", extra={"users": len(users), "swept": len(swept)})
            return {"swept": swept, "users": summaries}
        finally:
            self._running = False

    async def run_periodic(self) -> None:
        """Run passes on a fixed interval until cancelled."""
        if not self.enabled:
            logger.info("Scheduled runner disabled by environment")
            return

        interval_seconds = self.interval_minutes * 60
        while True:
            try:
                self._roll_over(self._clock())
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("Scheduled runner loop failed", extra={"error": str(exc)}, exc_info=True)
            await asyncio.sleep(interval_seconds)
