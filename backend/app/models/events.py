"""
Pipeline event payloads published on the event bus and stored in the
durable event log.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from app.config.constants import STAGE_NAMES
from .status import EventType


class EventData(BaseModel):
    stage: Optional[int] = None
    stage_name: Optional[str] = None
    message: Optional[str] = None
    thinking: Optional[str] = None
    progress: Optional[float] = None
    result: Optional[Any] = None
    error: Optional[str] = None


class PipelineEvent(BaseModel):
    type: EventType
    user_id: str
    item_id: str
    timestamp: datetime = Field(default_factory=datetime.now)
    data: EventData = Field(default_factory=EventData)

    @classmethod
    def for_stage(cls, event_type: EventType, user_id: str, item_id: str, stage: int, **data: Any) -> "PipelineEvent":
        return cls(
            type=event_type,
            user_id=user_id,
            item_id=item_id,
            data=EventData(stage=stage, stage_name=STAGE_NAMES.get(stage), **data),
        )


class LoggedEvent(PipelineEvent):
    """A PipelineEvent as read back from the durable log"""
    sequence: int
