"""
TriggerUseCase - manual conveyor operations: batch trigger, single item,
retry and cancel.

Admission control for a single item mirrors the scheduled runner: budget
first, then the daily cap, then duplicate detection.
"""

from typing import Optional

from app.config.constants import ESTIMATED_COST_PER_ITEM, MAX_RETRY_LIMIT
from app.core import get_logger
from app.core.exceptions import (
    InvalidStateError,
    LimitReachedError,
    NotFoundError,
    RetryLimitExceededError,
)
from app.models import ItemStatus, PipelineItem, SourceData
from app.services.infrastructure.storage import AuditLogRepository, ItemRepository, SettingsRepository
from app.services.pipeline import EventBus, Orchestrator, ProcessResult
from app.services.scheduling import ScheduledRunner, UserRunSummary

logger = get_logger(__name__, component="trigger_use_case")


class TriggerUseCase:
    def __init__(
        self,
        items: ItemRepository,
        settings: SettingsRepository,
        audit: AuditLogRepository,
        orchestrator: Orchestrator,
        runner: ScheduledRunner,
        bus: EventBus,
    ):
        self.items = items
        self.settings = settings
        self.audit = audit
        self.orchestrator = orchestrator
        self.runner = runner
        self.bus = bus

    async def trigger_for_user(self, user_id: str) -> UserRunSummary:
        """Run one batch for ``user_id`` right now, outside the schedule."""
        settings = self.settings.get(user_id)
        if settings is None:
            raise NotFoundError(f"No conveyor settings for user {user_id}")
        if not settings.enabled:
            raise InvalidStateError("Conveyor is disabled for this user")

        logger.info("Manual trigger", extra={"user_id": user_id})
        return await self.runner.run_for_user(user_id, settings)

    async def process_specific_item(self, user_id: str, source: SourceData) -> ProcessResult:
        settings = self.settings.get_or_create(user_id)
        if settings.budget_reached:
            self.audit.append(user_id, "limit_reached", details={"limit": "budget", "manual": True})
            raise LimitReachedError("budget", "Monthly budget limit reached")
        if settings.daily_limit_reached:
            self.audit.append(user_id, "limit_reached", details={"limit": "daily", "manual": True})
            raise LimitReachedError("daily", "Daily limit reached")
        if self.items.exists_for_source(user_id, source.type, source.item_id):
            raise InvalidStateError("Item already processed")

        result = await self.orchestrator.process_item(user_id, source, settings)
        if result.success:
            self.settings.record_processed(user_id, ESTIMATED_COST_PER_ITEM)
        return result

    def _require_item(self, item_id: str) -> PipelineItem:
        item = self.items.get(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        return item

    async def retry_item(self, item_id: str) -> ProcessResult:
        """
        Re-run a failed item with its stored data.

        A regular item runs again from stage 2; a revision item keeps its
        inherited stage 1-4 data and runs again from stage 5.

        Raises:
            NotFoundError: unknown item
            InvalidStateError: item is not failed, or was rejected on content
            RetryLimitExceededError: the item was already retried MAX_RETRY_LIMIT times
        """
        item = self._require_item(item_id)
        if item.status is not ItemStatus.FAILED:
            raise InvalidStateError(f"Only failed items can be retried, item is {item.status.value}")
        if item.rejected:
            raise InvalidStateError("Rejected items cannot be retried")
        if item.retry_count >= MAX_RETRY_LIMIT:
            raise RetryLimitExceededError(f"Maximum retry limit ({MAX_RETRY_LIMIT}) reached")

        item = self.items.reset_for_retry(item_id)
        logger.info("Retrying item", extra={
            "item_id": item_id,
            "retry_count": item.retry_count,
            "revision": item.is_revision,
        })
        if item.is_revision:
            return await self.orchestrator.process_revision_item(item_id)
        return await self.orchestrator.rerun_item(item_id)

    def cancel_item(self, item_id: str, user_id: Optional[str] = None) -> PipelineItem:
        item = self._require_item(item_id)
        if user_id is not None and item.user_id != user_id:
            raise NotFoundError(f"Item {item_id} not found")
        if item.status is not ItemStatus.PROCESSING:
            raise InvalidStateError(f"Item is already {item.status.value}")

        item = self.items.cancel(item_id)
        self.bus.item_failed(item.user_id, item.id, "cancelled", item.current_stage)
        logger.info("Item cancelled", extra={"item_id": item_id, "stage": item.current_stage})
        return item
