"""
Pipeline item repository.

The PipelineItem record is the only mutable resource shared between the
scheduled runner and manual triggers, so every write here is one atomic
store operation:

    - stage data writes go through the exhaustive stage->slot mapping and
      add the stage's cost in the same write
    - terminal transitions only apply to items still ``processing``
    - a cancelled item rejects further stage writes

Classes:
    ItemRepository: Abstract interface for pipeline item access
    FileBasedItemRepository: JSON file implementation
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel

from app.core import get_logger
from app.core.exceptions import InvalidStateError, ItemCancelledError
from app.models import (
    ItemStatus,
    PipelineItem,
    RevisionContext,
    SourceData,
    StageHistoryEntry,
)
from app.models.items import FORKED_STAGES, STAGE_SLOTS, slot_for_stage
from .record_store import JsonRecordStore

logger = get_logger(__name__, component="item_repository")


class ItemRepository(ABC):
    """
    Abstract repository for pipeline items.

    Implementations must make each method a single atomic operation with
    respect to concurrent callers in the same process.
    """

    @abstractmethod
    def create(self, user_id: str, source: SourceData) -> PipelineItem:
        """
        Create a new item in ``processing`` state at stage 1.

        Args:
            user_id: Owning user
            source: Source item the run is for (identity only; stage 1 data
                is written separately with ``save_stage_data``)
        """

    @abstractmethod
    def create_for_revision(self, parent: PipelineItem, context: RevisionContext) -> PipelineItem:
        """
        Fork ``parent`` into a revision item.

        Stage 1-4 slots are copied verbatim, the stage pointer is set to 5
        and ``parent_item_id`` points back at ``parent``.
        """

    @abstractmethod
    def get(self, item_id: str) -> Optional[PipelineItem]:
        """Retrieve an item by ID, or None."""

    @abstractmethod
    def list_by_user(self, user_id: str, status: Optional[ItemStatus] = None,
                     limit: Optional[int] = None) -> List[PipelineItem]:
        """List a user's items, newest first."""

    @abstractmethod
    def save_stage_data(self, item_id: str, stage: int, data: BaseModel, cost: float = 0.0) -> PipelineItem:
        """
        Store a stage's output in its slot and add its cost.

        Raises:
            UnknownStageError: stage has no slot
            ItemCancelledError: the item was cancelled meanwhile
            InvalidStateError: the item is no longer processing, or the write
                would overwrite a forked stage of a revision item
        """

    @abstractmethod
    def append_history(self, item_id: str, entry: StageHistoryEntry) -> None:
        """Append one stage history entry."""

    @abstractmethod
    def complete(self, item_id: str, script_id: Optional[str] = None) -> PipelineItem:
        """Mark a processing item completed."""

    @abstractmethod
    def fail(self, item_id: str, stage: Optional[int], message: str, rejected: bool = False) -> PipelineItem:
        """
        Mark a processing item failed with the failing stage and message.

        ``rejected`` marks a content rejection; those are final and never retried.
        """

    @abstractmethod
    def cancel(self, item_id: str) -> PipelineItem:
        """Mark a processing item cancelled."""

    @abstractmethod
    def reset_for_retry(self, item_id: str) -> PipelineItem:
        """
        Prepare a failed item for another run.

        Increments retry_count and clears error fields. A regular item has its
        stage 2-8 slots cleared and restarts at stage 1; a revision item keeps
        its inherited stage 1-4 slots and restarts at stage 5. Source data and
        stage history are kept.
        """

    @abstractmethod
    def count_by_status(self, user_id: str) -> Dict[str, int]:
        """Number of the user's items per status value."""

    @abstractmethod
    def exists_for_source(self, user_id: str, source_type: str, source_item_id: str) -> bool:
        """Whether the user already has a (non-revision) item for this source."""

    @abstractmethod
    def find_stuck(self, older_than: datetime) -> List[PipelineItem]:
        """Items still processing that started before ``older_than``."""

    @abstractmethod
    def mark_stuck_failed(self, timeout_minutes: int, now: Optional[datetime] = None) -> List[str]:
        """Fail items processing for longer than ``timeout_minutes``; return their IDs."""


class FileBasedItemRepository(ItemRepository):
    """Items stored as one JSON file each under ``<data_dir>/items``."""

    def __init__(self, data_dir: Path):
        self._store: JsonRecordStore[PipelineItem] = JsonRecordStore(Path(data_dir) / "items", PipelineItem)

    def create(self, user_id: str, source: SourceData) -> PipelineItem:
        item = PipelineItem(
            id=str(uuid.uuid4()),
            user_id=user_id,
            source_type=source.type,
            source_item_id=source.item_id,
        )
        self._store.save(item.id, item)
        logger.info("Pipeline item created", extra={"item_id": item.id, "user_id": user_id})
        return item

    def create_for_revision(self, parent: PipelineItem, context: RevisionContext) -> PipelineItem:
        payload = {
            "id": str(uuid.uuid4()),
            "user_id": parent.user_id,
            "source_type": parent.source_type,
            "source_item_id": parent.source_item_id,
            "current_stage": 5,
            "revision_context": context.model_dump(mode="json"),
            "parent_item_id": parent.id,
            **parent.forked_slots(),
        }
        item = PipelineItem.model_validate(payload)
        self._store.save(item.id, item)
        logger.info("Revision item forked", extra={
            "item_id": item.id,
            "parent_item_id": parent.id,
            "attempt": context.attempt,
        })
        return item

    def get(self, item_id: str) -> Optional[PipelineItem]:
        return self._store.load(item_id)

    def list_by_user(self, user_id: str, status: Optional[ItemStatus] = None,
                     limit: Optional[int] = None) -> List[PipelineItem]:
        items = [
            item for item in self._store.iter_all()
            if item.user_id == user_id and (status is None or item.status == status)
        ]
        items.sort(key=lambda item: item.started_at, reverse=True)
        return items[:limit] if limit is not None else items

    def count_by_status(self, user_id: str) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for item in self._store.iter_all():
            if item.user_id == user_id:
                counts[item.status.value] = counts.get(item.status.value, 0) + 1
        return counts

    def save_stage_data(self, item_id: str, stage: int, data: BaseModel, cost: float = 0.0) -> PipelineItem:
        slot = slot_for_stage(stage)
        expected_model = STAGE_SLOTS[stage][1]
        if not isinstance(data, expected_model):
            raise TypeError(f"Stage {stage} expects {expected_model.__name__}, got {type(data).__name__}")

        def apply(item: PipelineItem) -> None:
            if item.status is ItemStatus.CANCELLED:
                raise ItemCancelledError(item.id, stage)
            if item.status is not ItemStatus.PROCESSING:
                raise InvalidStateError(f"Item {item.id} is {item.status.value}, cannot store stage {stage}")
            if item.is_revision and stage in FORKED_STAGES:
                raise InvalidStateError(f"Stage {stage} of revision item {item.id} is inherited and read-only")
            setattr(item, slot, data.model_copy(deep=True))
            item.current_stage = max(item.current_stage, stage)
            if cost > 0:
                item.total_cost = round(item.total_cost + cost, 6)

        return self._store.mutate(item_id, apply)

    def append_history(self, item_id: str, entry: StageHistoryEntry) -> None:
        self._store.mutate(item_id, lambda item: item.stage_history.append(entry))

    def _finish(self, item_id: str, status: ItemStatus, **fields) -> PipelineItem:
        def apply(item: PipelineItem) -> None:
            if item.status is not ItemStatus.PROCESSING:
                raise InvalidStateError(f"Item {item.id} is already {item.status.value}")
            item.status = status
            item.completed_at = datetime.now()
            for key, value in fields.items():
                setattr(item, key, value)

        return self._store.mutate(item_id, apply)

    def complete(self, item_id: str, script_id: Optional[str] = None) -> PipelineItem:
        return self._finish(item_id, ItemStatus.COMPLETED, current_stage=9, script_id=script_id)

    def fail(self, item_id: str, stage: Optional[int], message: str, rejected: bool = False) -> PipelineItem:
        return self._finish(item_id, ItemStatus.FAILED, error_stage=stage, error_message=message, rejected=rejected)

    def cancel(self, item_id: str) -> PipelineItem:
        return self._finish(item_id, ItemStatus.CANCELLED)

    def reset_for_retry(self, item_id: str) -> PipelineItem:
        def apply(item: PipelineItem) -> None:
            if item.status is not ItemStatus.FAILED:
                raise InvalidStateError(f"Only failed items can be retried, item is {item.status.value}")
            if item.rejected:
                raise InvalidStateError("Rejected items cannot be retried")
            item.retry_count += 1
            item.status = ItemStatus.PROCESSING
            item.error_stage = None
            item.error_message = None
            item.completed_at = None
            item.started_at = datetime.now()
            if item.is_revision:
                item.current_stage = max(FORKED_STAGES) + 1
                cleared = range(item.current_stage, 9)
            else:
                item.current_stage = 1
                cleared = range(2, 9)
            for stage in cleared:
                setattr(item, slot_for_stage(stage), None)

        return self._store.mutate(item_id, apply)

    def exists_for_source(self, user_id: str, source_type: str, source_item_id: str) -> bool:
        source_type = getattr(source_type, "value", source_type)
        return any(
            item.user_id == user_id
            and item.source_type.value == source_type
            and item.source_item_id == source_item_id
            and item.parent_item_id is None
            for item in self._store.iter_all()
        )

    def find_stuck(self, older_than: datetime) -> List[PipelineItem]:
        return [
            item for item in self._store.iter_all()
            if item.status is ItemStatus.PROCESSING and item.started_at < older_than
        ]

    def mark_stuck_failed(self, timeout_minutes: int, now: Optional[datetime] = None) -> List[str]:
        now = now or datetime.now()
        cutoff = now - timedelta(minutes=timeout_minutes)
        message = f"Timeout: stuck in processing for more than {timeout_minutes} minutes"
        swept: List[str] = []

        with self._store.lock:
            for item in self.find_stuck(cutoff):
                item.status = ItemStatus.FAILED
                item.error_message = message
                item.error_stage = item.current_stage
                item.completed_at = now
                self._store.save(item.id, item)
                swept.append(item.id)

        if swept:
            logger.warning("Swept stuck items", extra={"count": len(swept), "timeout_minutes": timeout_minutes})
        return swept
