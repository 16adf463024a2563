"""
Generated script and script version persistence.
"""

import uuid
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Iterable, List, Optional

from app.core import get_logger
from app.core.exceptions import InvalidStateError
from app.models import (
    GeneratedScript,
    RejectionCategory,
    ScriptStatus,
    ScriptVersion,
)
from .record_store import JsonRecordStore

logger = get_logger(__name__, component="script_repository")

# Fields Delivery refreshes after an accepted revision
REVISION_FIELDS = (
    "scenes",
    "full_script",
    "estimated_duration",
    "initial_score",
    "final_score",
    "hook_score",
    "structure_score",
    "emotional_score",
    "cta_score",
    "gate_decision",
    "gate_confidence",
)


class ScriptRepository:
    """Scripts under ``<data_dir>/scripts``, versions under ``<data_dir>/script_versions``."""

    def __init__(self, data_dir: Path):
        # Scripts and versions share one lock so a revision update and its
        # version row are written together
        lock = RLock()
        self._scripts: JsonRecordStore[GeneratedScript] = JsonRecordStore(
            Path(data_dir) / "scripts", GeneratedScript, lock
        )
        self._versions: JsonRecordStore[ScriptVersion] = JsonRecordStore(
            Path(data_dir) / "script_versions", ScriptVersion, lock
        )
        self._lock = lock

    # === Scripts ===

    def create(self, **fields) -> GeneratedScript:
        script = GeneratedScript(id=str(uuid.uuid4()), **fields)
        self._scripts.save(script.id, script)
        logger.info("Script created", extra={"script_id": script.id, "user_id": script.user_id})
        return script

    def get(self, script_id: str) -> Optional[GeneratedScript]:
        return self._scripts.load(script_id)

    def get_by_item(self, item_id: str) -> Optional[GeneratedScript]:
        return next((s for s in self._scripts.iter_all() if s.item_id == item_id), None)

    def list_by_user(self, user_id: str, statuses: Optional[Iterable[ScriptStatus]] = None) -> List[GeneratedScript]:
        wanted = set(statuses) if statuses is not None else None
        scripts = [
            script for script in self._scripts.iter_all()
            if script.user_id == user_id and (wanted is None or script.status in wanted)
        ]
        scripts.sort(key=lambda script: script.created_at, reverse=True)
        return scripts

    def approve(self, script_id: str) -> GeneratedScript:
        def apply(script: GeneratedScript) -> None:
            if script.status is not ScriptStatus.PENDING:
                raise InvalidStateError(f"Script {script.id} is {script.status.value}, only pending scripts can be approved")
            script.status = ScriptStatus.APPROVED
            script.reviewed_at = script.updated_at = datetime.now()

        return self._scripts.mutate(script_id, apply)

    def reject(self, script_id: str, category: RejectionCategory, reason: Optional[str] = None) -> GeneratedScript:
        def apply(script: GeneratedScript) -> None:
            if not script.status.is_reviewable():
                raise InvalidStateError(f"Script {script.id} is {script.status.value} and cannot be rejected")
            script.status = ScriptStatus.REJECTED
            script.rejection_category = category
            script.rejection_reason = reason
            script.reviewed_at = script.updated_at = datetime.now()

        return self._scripts.mutate(script_id, apply)

    def mark_for_revision(self, script_id: str, notes: str) -> GeneratedScript:
        def apply(script: GeneratedScript) -> None:
            script.status = ScriptStatus.REVISION
            script.revision_notes = notes
            script.revision_count += 1
            script.updated_at = datetime.now()

        return self._scripts.mutate(script_id, apply)

    def update_after_revision(self, script_id: str, **fields) -> GeneratedScript:
        unknown = set(fields) - set(REVISION_FIELDS)
        if unknown:
            raise ValueError(f"Fields not updatable after revision: {sorted(unknown)}")

        def apply(script: GeneratedScript) -> None:
            for key, value in fields.items():
                setattr(script, key, value)
            script.status = ScriptStatus.PENDING
            script.revision_notes = None
            script.updated_at = datetime.now()

        return self._scripts.mutate(script_id, apply)

    def reset_revision(self, script_id: str) -> GeneratedScript:
        def apply(script: GeneratedScript) -> None:
            script.status = ScriptStatus.PENDING
            script.revision_notes = None
            script.revision_count = 0
            script.updated_at = datetime.now()

        return self._scripts.mutate(script_id, apply)

    # === Versions ===

    def create_version(self, script_id: str, **fields) -> ScriptVersion:
        version = ScriptVersion(id=str(uuid.uuid4()), script_id=script_id, **fields)
        self._versions.save(version.id, version)
        return version

    def list_versions(self, script_id: str, limit: Optional[int] = None) -> List[ScriptVersion]:
        """Versions of a script, newest first."""
        versions = [v for v in self._versions.iter_all() if v.script_id == script_id]
        versions.sort(key=lambda v: (v.version_number, v.created_at), reverse=True)
        return versions[:limit] if limit is not None else versions

    def count_versions(self, script_id: str) -> int:
        return len(self.list_versions(script_id))

    def record_revision(self, script_id: str, version_fields: dict, **script_fields) -> tuple[GeneratedScript, ScriptVersion]:
        """Update a script after a revision run and append its version row in one step."""
        with self._lock:
            script = self.update_after_revision(script_id, **script_fields)
            version = self.create_version(script_id, title=script.title, **version_fields)
        logger.info("Script revised", extra={
            "script_id": script_id,
            "version_number": version.version_number,
        })
        return script, version
