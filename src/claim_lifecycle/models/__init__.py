"""Pydantic models for claim cases."""

from claim_lifecycle.models.claim import (
    AccidentType,
    Actor,
    ClaimAction,
    ClaimCase,
    ClaimPayload,
    ClaimState,
    ClaimTimelineEvent,
    TERMINAL_STATES,
)

__all__ = [
    "AccidentType",
    "Actor",
    "ClaimAction",
    "ClaimCase",
    "ClaimPayload",
    "ClaimState",
    "ClaimTimelineEvent",
    "TERMINAL_STATES",
]
