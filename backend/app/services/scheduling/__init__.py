"""Periodic batch processing."""

from .runner import ScheduledRunner, UserRunSummary, SCOUT_ITEM_ID

__all__ = ["ScheduledRunner", "UserRunSummary", "SCOUT_ITEM_ID"]
