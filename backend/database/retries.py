"""
Retry loop for transactional operations that can lose a lock or
serialization race.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError

from config import SETTLEMENT_MAX_RETRIES, SETTLEMENT_RETRY_BACKOFF_SECONDS
from errors import ConcurrencyConflict, SettlementError, SettlementFailed

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL serialization_failure and deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}


def is_retryable_conflict(exc: BaseException) -> bool:
    """True for serialization failures, deadlocks and SQLite busy errors"""
    if not isinstance(exc, DBAPIError):
        return False
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    return "database is locked" in str(exc).lower()


async def run_with_retries(
    operation: Callable[[], Awaitable[T]],
    *,
    label: str,
    max_retries: int = SETTLEMENT_MAX_RETRIES,
    backoff_seconds: float = SETTLEMENT_RETRY_BACKOFF_SECONDS,
) -> T:
    """
    Run `operation` (one full transaction) until it commits.

    Retryable driver errors are treated as ConcurrencyConflict, as is a
    ConcurrencyConflict raised by the operation itself. Conflicts are retried
    with linear backoff and become SettlementFailed once attempts run out.
    Other domain errors propagate unchanged. Anything else is logged with its
    traceback and surfaced as SettlementFailed.
    """
    for attempt in range(1, max_retries + 1):
        try:
            return await operation()
        except ConcurrencyConflict as e:
            conflict = e
        except SettlementError:
            raise
        except DBAPIError as e:
            if not is_retryable_conflict(e):
                logger.exception(f"{label}: database error")
                raise SettlementFailed() from e
            conflict = ConcurrencyConflict(f"{label}: {e.orig or e}")
            conflict.__cause__ = e
        except Exception as e:
            logger.exception(f"{label}: unexpected failure")
            raise SettlementFailed() from e

        if attempt == max_retries:
            logger.error(f"{label}: conflict persisted after {max_retries} attempts: {conflict}")
            raise SettlementFailed() from conflict
        logger.warning(f"{label}: conflict on attempt {attempt}/{max_retries}, retrying")
        await asyncio.sleep(backoff_seconds * attempt)

    raise SettlementFailed()
