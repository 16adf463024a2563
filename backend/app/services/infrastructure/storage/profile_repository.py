"""
User writing profile persistence.
"""

from pathlib import Path
from typing import Optional

from app.models import FeedbackEntry, WritingProfile
from .record_store import JsonRecordStore


class WritingProfileRepository:
    def __init__(self, data_dir: Path):
        self._store: JsonRecordStore[WritingProfile] = JsonRecordStore(
            Path(data_dir) / "profiles", WritingProfile
        )

    def get(self, user_id: str) -> Optional[WritingProfile]:
        return self._store.load(user_id)

    def get_or_create(self, user_id: str) -> WritingProfile:
        with self._store.lock:
            profile = self._store.load(user_id)
            if profile is None:
                profile = self._store.save(user_id, WritingProfile(user_id=user_id))
            return profile

    def save(self, profile: WritingProfile) -> WritingProfile:
        return self._store.save(profile.user_id, profile)

    def add_feedback(self, user_id: str, entry: FeedbackEntry) -> WritingProfile:
        self.get_or_create(user_id)

        def apply(profile: WritingProfile) -> None:
            profile.feedback_entries.append(entry)
            profile.feedback_count += 1

        return self._store.mutate(user_id, apply)
