"""Tests for retry utility."""

import pytest

from claim_lifecycle.lifecycle.errors import ConflictError, InvalidTransition
from claim_lifecycle.utils.retry import RETRYABLE_EXCEPTIONS, with_conflict_retry


def test_only_conflicts_are_retryable():
    assert RETRYABLE_EXCEPTIONS == (ConflictError,)


def test_with_conflict_retry_succeeds_first_time():
    @with_conflict_retry(max_attempts=3)
    def ok():
        return 42
    assert ok() == 42


def test_with_conflict_retry_reraises_non_retryable():
    """Lifecycle errors are reraised immediately."""
    attempts = []

    @with_conflict_retry(max_attempts=3, min_wait=0.001, max_wait=0.01)
    def fail():
        attempts.append(1)
        raise InvalidTransition("not retryable")
    with pytest.raises(InvalidTransition, match="not retryable"):
        fail()
    assert len(attempts) == 1


def test_with_conflict_retry_retries_then_succeeds():
    attempts = []

    @with_conflict_retry(max_attempts=3, min_wait=0.001, max_wait=0.01)
    def flaky():
        attempts.append(1)
        if len(attempts) < 2:
            raise ConflictError("CLM-1", 1, 2)
        return "ok"

    assert flaky() == "ok"
    assert len(attempts) == 2


def test_with_conflict_retry_gives_up(monkeypatch):
    """Attempts default to CLAIM_CONFLICT_MAX_ATTEMPTS."""
    monkeypatch.setenv("CLAIM_CONFLICT_MAX_ATTEMPTS", "2")
    attempts = []

    @with_conflict_retry(min_wait=0.001, max_wait=0.01)
    def always_conflicts():
        attempts.append(1)
        raise ConflictError("CLM-1", 1, 2)

    with pytest.raises(ConflictError):
        always_conflicts()
    assert len(attempts) == 2
