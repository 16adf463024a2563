"""
Status constants and enumerations.

Centralized status definitions for pipeline items, scripts, and gate
decisions to replace magic strings throughout the codebase.
"""

from enum import Enum


class ItemStatus(str, Enum):
    """Lifecycle of a pipeline item. Terminal values are set exactly once."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def is_terminal(self) -> bool:
        """Check if this status is a terminal state (no further progress)."""
        return self is not ItemStatus.PROCESSING


class SourceType(str, Enum):
    NEWS = "news"
    SOCIAL = "social"


class ScriptStatus(str, Enum):
    """Review state of a delivered script."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVISION = "revision"

    def is_reviewable(self) -> bool:
        return self in (ScriptStatus.PENDING, ScriptStatus.REVISION)


class GateDecision(str, Enum):
    PASS = "PASS"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    FAIL = "FAIL"

    def is_deliverable(self) -> bool:
        return self is not GateDecision.FAIL


class Severity(str, Enum):
    """Weak spot severity reported by quality control."""

    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"

    @classmethod
    def from_priority(cls, priority: object) -> "Severity":
        """
        Normalize free-form priority labels from the generation service.

        critical/high -> critical, major/medium -> major, anything else -> minor
        """
        value = str(priority or "").strip().lower()
        if value in ("critical", "high"):
            return cls.CRITICAL
        if value in ("major", "medium"):
            return cls.MAJOR
        return cls.MINOR

    def is_actionable(self) -> bool:
        """Only major and critical issues are worth an optimizer pass."""
        return self in (Severity.CRITICAL, Severity.MAJOR)


class RejectionCategory(str, Enum):
    TOO_LONG = "too_long"
    TOO_SHORT = "too_short"
    BORING_INTRO = "boring_intro"
    WEAK_CTA = "weak_cta"
    TOO_FORMAL = "too_formal"
    TOO_CASUAL = "too_casual"
    BORING_TOPIC = "boring_topic"
    WRONG_TONE = "wrong_tone"
    NO_HOOK = "no_hook"
    TOO_COMPLEX = "too_complex"
    OFF_TOPIC = "off_topic"
    OTHER = "other"


class EventType(str, Enum):
    ITEM_STARTED = "item:started"
    ITEM_COMPLETED = "item:completed"
    ITEM_FAILED = "item:failed"
    STAGE_STARTED = "stage:started"
    STAGE_THINKING = "stage:thinking"
    STAGE_PROGRESS = "stage:progress"
    STAGE_COMPLETED = "stage:completed"
    STAGE_FAILED = "stage:failed"
    AGENT_MESSAGE = "agent:message"


__all__ = [
    "ItemStatus",
    "SourceType",
    "ScriptStatus",
    "GateDecision",
    "Severity",
    "RejectionCategory",
    "EventType",
]
