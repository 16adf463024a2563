"""
Domain exception -> HTTP status translation shared by the route modules.
"""

from contextlib import contextmanager

from fastapi import HTTPException

from ..core.exceptions import (
    ConveyorError,
    InvalidStateError,
    LimitReachedError,
    NotFoundError,
)

STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (LimitReachedError, 429),
)


def to_http_exception(error: ConveyorError) -> HTTPException:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


@contextmanager
def domain_errors():
    """Re-raise domain exceptions from the wrapped block as HTTPException."""
    try:
        yield
    except ConveyorError as e:
        raise to_http_exception(e) from e
