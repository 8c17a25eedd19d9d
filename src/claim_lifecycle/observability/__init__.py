"""Observability for the claim lifecycle: structured logging with claim context."""

from claim_lifecycle.observability.logger import (
    ClaimLogger,
    claim_context,
    get_logger,
    log_claim_event,
)

__all__ = [
    "ClaimLogger",
    "claim_context",
    "get_logger",
    "log_claim_event",
]
