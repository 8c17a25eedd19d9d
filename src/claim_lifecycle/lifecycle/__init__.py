"""Claim lifecycle: transition table, timeline recording, and error taxonomy.

ClaimService lives in claim_lifecycle.lifecycle.service; it is not re-exported
here because it depends on the db package, which depends on this one.
"""

from claim_lifecycle.lifecycle.errors import (
    ClaimLifecycleError,
    ClaimNotFoundError,
    ConflictError,
    InvalidEventData,
    InvalidTransition,
    NotFound,
    PayloadValidationFailed,
    TerminalStateViolation,
)
from claim_lifecycle.lifecycle.state_machine import (
    TRANSITIONS,
    ClaimLifecycle,
    allowed_actions,
    can_transition,
    is_terminal,
)
from claim_lifecycle.lifecycle.timeline import TimelineRecorder

__all__ = [
    "ClaimLifecycle",
    "ClaimLifecycleError",
    "ClaimNotFoundError",
    "ConflictError",
    "InvalidEventData",
    "InvalidTransition",
    "NotFound",
    "PayloadValidationFailed",
    "TRANSITIONS",
    "TerminalStateViolation",
    "TimelineRecorder",
    "allowed_actions",
    "can_transition",
    "is_terminal",
]
