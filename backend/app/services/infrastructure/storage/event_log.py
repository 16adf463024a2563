"""
Durable pipeline event log and audit log.

The event log is the source of truth for rebuilding pipeline progress after
a client reconnects; it stores every bus event keyed by (user, item, stage)
in per-item JSON lines files, in emission order.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from app.models import EventType, LoggedEvent, PipelineEvent
from .record_store import JsonLinesLog


class EventLogRepository:
    def __init__(self, data_dir: Path):
        self._log = JsonLinesLog(Path(data_dir) / "events")

    @staticmethod
    def _partition(user_id: str, item_id: str) -> str:
        return f"{user_id}__{item_id}"

    def append(self, event: PipelineEvent) -> int:
        return self._log.append(
            self._partition(event.user_id, event.item_id),
            event.model_dump(mode="json"),
        )

    def list_for_item(self, user_id: str, item_id: str, stage: Optional[int] = None) -> List[LoggedEvent]:
        events = [LoggedEvent.model_validate(raw) for raw in self._log.read(self._partition(user_id, item_id))]
        if stage is not None:
            events = [event for event in events if event.data.stage == stage]
        return events

    def list_for_user(self, user_id: str, limit: int = 100) -> List[LoggedEvent]:
        prefix = f"{user_id}__"
        events: List[LoggedEvent] = []
        for partition in self._log.partitions():
            if partition.startswith(prefix):
                events.extend(LoggedEvent.model_validate(raw) for raw in self._log.read(partition))
        events.sort(key=lambda event: (event.timestamp, event.sequence), reverse=True)
        return events[:limit]

    def list_by_type(self, user_id: str, event_type: EventType, limit: int = 100) -> List[LoggedEvent]:
        return [event for event in self.list_for_user(user_id, limit=10_000) if event.type == event_type][:limit]


class AuditLogRepository:
    """Business audit entries: item_failed, script_created, script_revised, limit_reached."""

    def __init__(self, data_dir: Path):
        self._log = JsonLinesLog(Path(data_dir) / "audit")

    def append(self, user_id: str, event_type: str, item_id: Optional[str] = None,
               details: Optional[Dict[str, Any]] = None) -> int:
        return self._log.append(user_id, {
            "user_id": user_id,
            "item_id": item_id,
            "event_type": event_type,
            "details": details or {},
            "created_at": datetime.now().isoformat(),
        })

    def list_for_user(self, user_id: str, event_type: Optional[str] = None) -> List[Dict[str, Any]]:
        entries = self._log.read(user_id)
        if event_type is not None:
            entries = [entry for entry in entries if entry.get("event_type") == event_type]
        return entries
