"""Error taxonomy for claim lifecycle and persistence failures.

All errors are recoverable by the caller. Each carries the offending
claim/state/action/field so the chat or agent layer can re-prompt or escalate.
"""

from typing import Any


class ClaimLifecycleError(Exception):
    """Base class for claim lifecycle errors."""

    def __init__(
        self,
        message: str,
        *,
        claim_id: str | None = None,
        state: Any = None,
        action: Any = None,
        field: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.claim_id = claim_id
        self.state = state
        self.action = action
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        """Diagnostic dict for logs and tool responses."""
        return {
            "error": self.message,
            "type": type(self).__name__,
            "claim_id": self.claim_id,
            "state": getattr(self.state, "value", self.state),
            "action": getattr(self.action, "value", self.action),
            "field": self.field,
        }


class InvalidTransition(ClaimLifecycleError):
    """Action is not allowed from the case's current state."""


class TerminalStateViolation(ClaimLifecycleError):
    """Case is CLOSED or REJECTED and accepts no further changes."""


class PayloadValidationFailed(ClaimLifecycleError):
    """A field required by the target state is missing or malformed."""


class InvalidEventData(ClaimLifecycleError):
    """Timeline event action or actor failed validation."""


class ConflictError(ClaimLifecycleError):
    """Stored revision differs from the one the caller read."""

    def __init__(
        self,
        claim_id: str,
        expected_revision: int,
        actual_revision: int | None,
    ):
        super().__init__(
            f"Claim {claim_id} changed since it was read "
            f"(expected revision {expected_revision}, found {actual_revision})",
            claim_id=claim_id,
        )
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision


class ClaimNotFoundError(ClaimLifecycleError):
    """No claim with the given ID exists."""

    def __init__(self, claim_id: str):
        super().__init__(f"Claim not found: {claim_id}", claim_id=claim_id)


NotFound = ClaimNotFoundError
