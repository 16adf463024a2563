"""Storage layer - data persistence."""

from .record_store import JsonRecordStore, JsonLinesLog
from .item_repository import ItemRepository, FileBasedItemRepository
from .script_repository import ScriptRepository
from .settings_repository import SettingsRepository
from .event_log import EventLogRepository, AuditLogRepository
from .profile_repository import WritingProfileRepository

__all__ = [
    "JsonRecordStore",
    "JsonLinesLog",
    "ItemRepository",
    "FileBasedItemRepository",
    "ScriptRepository",
    "SettingsRepository",
    "EventLogRepository",
    "AuditLogRepository",
    "WritingProfileRepository",
]
