"""
Core Exceptions
Standardized base exceptions for the application.
"""

from typing import Optional


class ConveyorError(Exception):
    """Base exception for all application errors."""
    pass


class PipelineError(ConveyorError):
    """Base exception for processing pipeline errors."""
    pass


class StageFailedError(PipelineError):
    """A stage returned an operational failure; the run is aborted."""

    def __init__(self, stage: int, message: str):
        super().__init__(message)
        self.stage = stage
        self.message = message


class ContentRejectedError(StageFailedError):
    """A stage judged the content unsuitable; expected, not an operational error."""
    pass


class ItemCancelledError(PipelineError):
    """The item was cancelled while a stage was in flight."""

    def __init__(self, item_id: str, stage: Optional[int] = None):
        super().__init__(f"Item {item_id} was cancelled")
        self.item_id = item_id
        self.stage = stage


class UnknownStageError(PipelineError, KeyError):
    """A stage number has no output slot."""
    pass


class InfrastructureError(ConveyorError):
    """Base exception for infrastructure errors (LLM, Storage, etc)."""
    pass


class GenerationServiceError(InfrastructureError):
    """The text generation backend is unavailable or misconfigured."""
    pass


class StorageError(InfrastructureError):
    """A record could not be read or written."""
    pass


class NotFoundError(ConveyorError):
    """Requested record does not exist."""
    pass


class InvalidStateError(ConveyorError):
    """Operation is not allowed in the record's current status."""
    pass


class RetryLimitExceededError(InvalidStateError):
    pass


class MaxRevisionsReachedError(InvalidStateError):
    pass


class LimitReachedError(ConveyorError):
    """Daily cap or monthly budget prevents admitting more work."""

    def __init__(self, limit_type: str, message: Optional[str] = None):
        super().__init__(message or f"{limit_type} limit reached, try again later")
        self.limit_type = limit_type
