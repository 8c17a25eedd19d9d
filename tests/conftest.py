"""Shared pytest fixtures for all test files."""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from claim_lifecycle.db.database import init_db
from claim_lifecycle.lifecycle.state_machine import ClaimLifecycle
from claim_lifecycle.lifecycle.timeline import TimelineRecorder

POLICY_NO = "6512345678"

COMPLETE_INTAKE = {
    "accident_type": "ACCIDENT",
    "accident_date_time": "2026-10-01T08:30:00",
    "accident_location": "Shanghai, Pudong",
    "accident_description": "Slipped on a wet floor at the warehouse and fractured a wrist.",
    "reporter_name": "Li Wei",
    "reporter_contact": "13800000000",
    "attachments": ["hospital-receipt.pdf"],
}


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture(autouse=True)
def temp_db():
    """Use a temporary SQLite DB for tests."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    init_db(path)
    prev = os.environ.get("CLAIMS_DB_PATH")
    os.environ["CLAIMS_DB_PATH"] = path
    try:
        yield path
    finally:
        if prev is None:
            os.environ.pop("CLAIMS_DB_PATH", None)
        else:
            os.environ["CLAIMS_DB_PATH"] = prev
        try:
            os.unlink(path)
        except OSError:
            pass


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def lifecycle(clock):
    return ClaimLifecycle(TimelineRecorder(clock))


@pytest.fixture
def draft(lifecycle):
    """Fresh DRAFT claim (not persisted)."""
    return lifecycle.create_draft(POLICY_NO, conversation_id="conv-1")


@pytest.fixture
def intake_payload():
    return dict(COMPLETE_INTAKE)
