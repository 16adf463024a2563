"""
Core Module - Cross-cutting concerns and shared infrastructure

Organization:
    - logging.py: Structured logging configuration and utilities
    - exceptions.py: Application exception hierarchy

Usage:
    from app.core import get_logger, set_item_context
"""

from .logging import (
    setup_logging,
    get_logger,
    set_request_id,
    set_item_context,
    clear_context,
    LogTimer,
)

from .exceptions import (
    ConveyorError,
    PipelineError,
    StageFailedError,
    ContentRejectedError,
    ItemCancelledError,
    UnknownStageError,
    InfrastructureError,
    GenerationServiceError,
    StorageError,
    NotFoundError,
    InvalidStateError,
    RetryLimitExceededError,
    MaxRevisionsReachedError,
    LimitReachedError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_request_id",
    "set_item_context",
    "clear_context",
    "LogTimer",
    "ConveyorError",
    "PipelineError",
    "StageFailedError",
    "ContentRejectedError",
    "ItemCancelledError",
    "UnknownStageError",
    "InfrastructureError",
    "GenerationServiceError",
    "StorageError",
    "NotFoundError",
    "InvalidStateError",
    "RetryLimitExceededError",
    "MaxRevisionsReachedError",
    "LimitReachedError",
]
