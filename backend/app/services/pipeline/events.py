"""
Pipeline event bus.

Every stage transition, thinking line and progress update is published as a
PipelineEvent. Live delivery to subscribers is best-effort: a subscriber
that raises is logged and skipped, and a slow live stream drops events
rather than blocking the pipeline. The DurableEventLog subscriber writes
every event to the event log repository, which is what clients replay after
reconnecting.
"""

import asyncio
from typing import Any, Callable, List, Optional

from app.core import get_logger
from app.models import EventType, PipelineEvent
from app.services.infrastructure.storage import EventLogRepository

logger = get_logger(__name__, component="event_bus")

EventHandler = Callable[[PipelineEvent], None]


class EventBus:
    """Synchronous fan-out of pipeline events to subscribers, in publish order."""

    def __init__(self):
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def publish(self, event: PipelineEvent) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error("Event subscriber failed", extra={
                    "event_type": event.type.value,
                    "item_id": event.item_id,
                    "error": str(e),
                }, exc_info=True)

    def subscribe_user(self, user_id: str, maxsize: int = 1000) -> "UserEventStream":
        return UserEventStream(self, user_id, maxsize)

    # === Emit helpers ===

    def _emit(self, event_type: EventType, user_id: str, item_id: str, stage: Optional[int] = None, **data: Any) -> None:
        if stage is not None:
            event = PipelineEvent.for_stage(event_type, user_id, item_id, stage, **data)
        else:
            event = PipelineEvent(type=event_type, user_id=user_id, item_id=item_id, data=data)
        self.publish(event)

    def item_started(self, user_id: str, item_id: str, message: Optional[str] = None) -> None:
        self._emit(EventType.ITEM_STARTED, user_id, item_id, message=message)

    def item_completed(self, user_id: str, item_id: str, result: Any = None) -> None:
        self._emit(EventType.ITEM_COMPLETED, user_id, item_id, result=result)

    def item_failed(self, user_id: str, item_id: str, error: str, stage: Optional[int] = None) -> None:
        self._emit(EventType.ITEM_FAILED, user_id, item_id, stage=stage, error=error)

    def stage_started(self, user_id: str, item_id: str, stage: int) -> None:
        self._emit(EventType.STAGE_STARTED, user_id, item_id, stage=stage)

    def stage_thinking(self, user_id: str, item_id: str, stage: int, thinking: str) -> None:
        self._emit(EventType.STAGE_THINKING, user_id, item_id, stage=stage, thinking=thinking)

    def stage_progress(self, user_id: str, item_id: str, stage: int, progress: float,
                       message: Optional[str] = None) -> None:
        self._emit(EventType.STAGE_PROGRESS, user_id, item_id, stage=stage, progress=progress, message=message)

    def stage_completed(self, user_id: str, item_id: str, stage: int, result: Any = None) -> None:
        self._emit(EventType.STAGE_COMPLETED, user_id, item_id, stage=stage, result=result)

    def stage_failed(self, user_id: str, item_id: str, stage: int, error: str) -> None:
        self._emit(EventType.STAGE_FAILED, user_id, item_id, stage=stage, error=error)

    def agent_message(self, user_id: str, item_id: str, stage: int, message: str) -> None:
        self._emit(EventType.AGENT_MESSAGE, user_id, item_id, stage=stage, message=message)


class DurableEventLog:
    """Bus subscriber that persists every event to the event log."""

    def __init__(self, repository: EventLogRepository):
        self.repository = repository
        self._unsubscribe: Optional[Callable[[], None]] = None

    def __call__(self, event: PipelineEvent) -> None:
        self.repository.append(event)

    def attach(self, bus: EventBus) -> "DurableEventLog":
        self._unsubscribe = bus.subscribe(self)
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None


class UserEventStream:
    """
    Live queue of one user's events.

    Usage:
        with bus.subscribe_user(user_id) as stream:
            event = await stream.get()
    """

    def __init__(self, bus: EventBus, user_id: str, maxsize: int = 1000):
        self.user_id = user_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self._unsubscribe = bus.subscribe(self._on_event)

    def _on_event(self, event: PipelineEvent) -> None:
        if event.user_id != self.user_id:
            return
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1

    async def get(self) -> PipelineEvent:
        return await self.queue.get()

    def close(self) -> None:
        self._unsubscribe()

    def __enter__(self) -> "UserEventStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
