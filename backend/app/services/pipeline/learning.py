"""
Learning service - adapts per-user settings from review outcomes.

Each handler applies all of its settings changes in one atomic settings
write, so a review racing with the scheduled runner cannot lose counts.
"""

from typing import Dict, List, Optional

from app.config.constants import (
    LEARNED_THRESHOLD_CAP,
    LEARNED_THRESHOLD_FLOOR,
    LEARNED_THRESHOLD_STEP_DOWN,
    LEARNED_THRESHOLD_STEP_UP,
    QC_PASS_SCORE,
)
from app.core import get_logger
from app.models import ConveyorSettings, FeedbackEntry, GeneratedScript, RejectionCategory
from app.services.infrastructure.storage import AuditLogRepository, SettingsRepository, WritingProfileRepository

logger = get_logger(__name__, component="learning")

# Revision-note keywords that count towards a rejection pattern
NOTE_KEYWORDS: Dict[RejectionCategory, tuple] = {
    RejectionCategory.TOO_LONG: ("shorter", "shorten", "too long", "cut"),
    RejectionCategory.TOO_SHORT: ("longer", "more detail", "too short", "expand"),
    RejectionCategory.BORING_INTRO: ("intro", "opening", "hook", "beginning"),
    RejectionCategory.WEAK_CTA: ("call to action", "cta", "subscribe", "ending"),
    RejectionCategory.TOO_FORMAL: ("simpler", "conversational", "casual", "lighter"),
    RejectionCategory.TOO_COMPLEX: ("complex", "confusing", "hard to follow"),
}


def approval_rate(settings: ConveyorSettings) -> Optional[float]:
    reviewed = settings.total_approved + settings.total_rejected
    if reviewed == 0:
        return None
    return round(settings.total_approved / reviewed, 4)


def extract_patterns_from_notes(notes: str) -> List[RejectionCategory]:
    lowered = notes.lower()
    return [
        category for category, keywords in NOTE_KEYWORDS.items()
        if any(keyword in lowered for keyword in keywords)
    ]


class LearningService:
    def __init__(self, settings: SettingsRepository, profiles: WritingProfileRepository,
                 audit: AuditLogRepository):
        self.settings = settings
        self.profiles = profiles
        self.audit = audit

    def on_approve(self, user_id: str, script: GeneratedScript) -> ConveyorSettings:
        adjustment = {}

        def apply(settings: ConveyorSettings) -> None:
            settings.total_approved += 1
            settings.approval_rate = approval_rate(settings)
            if script.format_id and script.format_id not in settings.preferred_formats:
                settings.preferred_formats.append(script.format_id)
            rate = settings.approval_rate or 0.0
            if script.final_score < QC_PASS_SCORE and rate > 0.8:
                current = settings.score_threshold
                settings.learned_threshold = max(current - LEARNED_THRESHOLD_STEP_DOWN, LEARNED_THRESHOLD_FLOOR)
                adjustment.update(old=current, new=settings.learned_threshold)

        updated = self.settings.modify(user_id, apply)
        if adjustment:
            self._log_threshold(user_id, adjustment, "high_approval_rate")
        logger.info("Script approved", extra={
            "user_id": user_id,
            "script_id": script.id,
            "approval_rate": updated.approval_rate,
        })
        return updated

    def on_reject(self, user_id: str, script: GeneratedScript, category: RejectionCategory,
                  reason: Optional[str] = None) -> ConveyorSettings:
        adjustment = {}
        avoided = []

        def apply(settings: ConveyorSettings) -> None:
            settings.total_rejected += 1
            settings.approval_rate = approval_rate(settings)
            settings.rejection_patterns[category.value] = settings.rejection_patterns.get(category.value, 0) + 1
            if category is RejectionCategory.BORING_TOPIC and script.title and script.title not in settings.avoided_topics:
                settings.avoided_topics.append(script.title)
                avoided.append(script.title)
            rate = settings.approval_rate if settings.approval_rate is not None else 0.5
            if rate < 0.5:
                current = settings.score_threshold
                settings.learned_threshold = min(current + LEARNED_THRESHOLD_STEP_UP, LEARNED_THRESHOLD_CAP)
                adjustment.update(old=current, new=settings.learned_threshold)

        updated = self.settings.modify(user_id, apply)
        if avoided:
            self.audit.append(user_id, "topic_avoided", details={"topic": avoided[0]})
        if adjustment:
            self._log_threshold(user_id, adjustment, "low_approval_rate")
        self.audit.append(user_id, "script_rejected", details={
            "script_id": script.id,
            "category": category.value,
            "reason": reason,
        })
        logger.info("Script rejected", extra={
            "user_id": user_id,
            "script_id": script.id,
            "category": category.value,
            "approval_rate": updated.approval_rate,
        })
        return updated

    def on_revise(self, user_id: str, script: GeneratedScript, notes: str) -> None:
        self.profiles.add_feedback(user_id, FeedbackEntry(
            script_id=script.id,
            feedback_type="revision",
            text=notes,
        ))
        patterns = extract_patterns_from_notes(notes)
        if patterns:
            def apply(settings: ConveyorSettings) -> None:
                for category in patterns:
                    settings.rejection_patterns[category.value] = settings.rejection_patterns.get(category.value, 0) + 1

            self.settings.modify(user_id, apply)
        logger.info("Revision feedback recorded", extra={
            "user_id": user_id,
            "script_id": script.id,
            "patterns": [p.value for p in patterns],
        })

    def _log_threshold(self, user_id: str, adjustment: dict, reason: str) -> None:
        self.audit.append(user_id, "threshold_adjusted", details={
            "old_threshold": adjustment["old"],
            "new_threshold": adjustment["new"],
            "reason": reason,
        })
        logger.info("Learned threshold adjusted", extra={"user_id": user_id, **adjustment, "reason": reason})
