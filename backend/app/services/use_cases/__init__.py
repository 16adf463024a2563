"""
Use Cases package - Business logic layer.

Use cases are independent of HTTP: they raise domain exceptions from
app.core.exceptions and the routes translate them into responses.

Modules:
- trigger_use_case: Manual triggers, single items, retry and cancel
- script_review_use_case: Approve, reject, revise and reset scripts
"""

from .trigger_use_case import TriggerUseCase
from .script_review_use_case import ScriptReviewUseCase, RevisionRequestResult, REVISION_LIMIT_REASON

__all__ = [
    "TriggerUseCase",
    "ScriptReviewUseCase",
    "RevisionRequestResult",
    "REVISION_LIMIT_REASON",
]
