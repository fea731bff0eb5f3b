"""
Domain error to HTTP translation shared by the routers
"""

from contextlib import contextmanager

from fastapi import HTTPException

from errors import (
    InsufficientBalance,
    InvalidStateTransition,
    ListingUnavailable,
    NotFound,
    PermissionDenied,
    SettlementError,
    SettlementFailed,
    ValidationError,
)

# Most specific first
STATUS_CODES = [
    (NotFound, 404),
    (PermissionDenied, 403),
    (ValidationError, 400),
    (InsufficientBalance, 400),
    (ListingUnavailable, 409),
    (InvalidStateTransition, 409),
    (SettlementFailed, 500),
]


def to_http_exception(error: SettlementError) -> HTTPException:
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.to_detail())
    return HTTPException(status_code=500, detail=SettlementFailed().to_detail())


@contextmanager
def domain_errors():
    """Raise domain errors from the wrapped block as HTTPException"""
    try:
        yield
    except SettlementError as e:
        raise to_http_exception(e) from e
