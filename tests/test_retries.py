"""
Retry loop around transactional operations
"""

import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from database.retries import is_retryable_conflict, run_with_retries
from errors import ConcurrencyConflict, InsufficientBalance, SettlementFailed


class SerializationFailure(Exception):
    """Stand-in for a driver error carrying a PostgreSQL SQLSTATE"""

    sqlstate = "40001"


def _locked():
    return OperationalError("UPDATE listings", {}, sqlite3.OperationalError("database is locked"))


class FlakyOperation:
    def __init__(self, failures, result="committed"):
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


class TestIsRetryableConflict:
    def test_sqlite_busy(self):
        assert is_retryable_conflict(_locked()) is True

    def test_serialization_failure(self):
        error = OperationalError("UPDATE", {}, SerializationFailure("could not serialize access"))
        assert is_retryable_conflict(error) is True

    def test_integrity_error_is_not_a_conflict(self):
        error = IntegrityError("INSERT", {}, sqlite3.IntegrityError("UNIQUE constraint failed"))
        assert is_retryable_conflict(error) is False

    def test_non_database_error(self):
        assert is_retryable_conflict(RuntimeError("boom")) is False


class TestRunWithRetries:
    async def test_retries_conflicts_until_commit(self):
        operation = FlakyOperation([_locked(), _locked()])

        result = await run_with_retries(operation, label="test", max_retries=3, backoff_seconds=0)

        assert result == "committed"
        assert operation.calls == 3

    async def test_exhausted_conflicts_become_settlement_failed(self):
        operation = FlakyOperation([_locked(), _locked(), _locked()])

        with pytest.raises(SettlementFailed) as exc_info:
            await run_with_retries(operation, label="test", max_retries=3, backoff_seconds=0)

        assert operation.calls == 3
        conflict = exc_info.value.__cause__
        assert isinstance(conflict, ConcurrencyConflict)
        assert isinstance(conflict.__cause__, OperationalError)

    async def test_domain_errors_propagate_unchanged(self):
        error = InsufficientBalance(required=10, available=5, currency="USD")
        operation = FlakyOperation([error])

        with pytest.raises(InsufficientBalance) as exc_info:
            await run_with_retries(operation, label="test", max_retries=3, backoff_seconds=0)

        assert exc_info.value is error
        assert operation.calls == 1

    async def test_unexpected_error_is_opaque(self):
        operation = FlakyOperation([KeyError("internal detail")])

        with pytest.raises(SettlementFailed) as exc_info:
            await run_with_retries(operation, label="test", max_retries=3, backoff_seconds=0)

        assert "internal detail" not in exc_info.value.message
        assert operation.calls == 1

    async def test_non_retryable_database_error_is_not_retried(self):
        error = IntegrityError("INSERT", {}, sqlite3.IntegrityError("UNIQUE constraint failed"))
        operation = FlakyOperation([error])

        with pytest.raises(SettlementFailed):
            await run_with_retries(operation, label="test", max_retries=3, backoff_seconds=0)

        assert operation.calls == 1

    async def test_raised_conflict_is_retried(self):
        """Operations may report a lost race themselves"""
        operation = FlakyOperation([ConcurrencyConflict("order payout already claimed")])

        result = await run_with_retries(operation, label="test", max_retries=3, backoff_seconds=0)

        assert result == "committed"
        assert operation.calls == 2

    async def test_uses_configured_limits_by_default(self):
        operation = FlakyOperation([_locked()])

        assert await run_with_retries(operation, label="test") == "committed"
        assert operation.calls == 2
