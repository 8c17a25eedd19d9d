"""Structured logging with claim context for lifecycle auditing.

This module provides:
- ClaimLogger: a logger adapter that attaches claim_id/state to every record
- claim_context: a context manager scoping claim/policy/actor to a block
- log_claim_event: helper for named lifecycle events (claim_created, ...)
"""

import json
import logging
import os
import sys
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

_context = threading.local()

_CONTEXT_KEYS = ("claim_id", "policy_no", "actor", "state")


def _get_claim_context() -> dict[str, Any]:
    return getattr(_context, "claim_data", {})


def _set_claim_context(data: dict[str, Any]) -> None:
    _context.claim_data = data


def _record_value(record: logging.LogRecord, key: str) -> Any:
    return getattr(record, key, None) or _get_claim_context().get(key)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_timestamp:
            log_data["timestamp"] = datetime.now(timezone.utc).isoformat()

        for key in _CONTEXT_KEYS:
            value = _record_value(record, key)
            if value:
                log_data[key] = value

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_data["data"] = extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }
        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Single-line text with a [claim=..., state=...] prefix."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        ctx_parts = []
        claim_id = _record_value(record, "claim_id")
        if claim_id:
            ctx_parts.append(f"claim={claim_id}")
        state = _record_value(record, "state")
        if state:
            ctx_parts.append(f"state={state}")
        ctx_str = f" [{', '.join(ctx_parts)}]" if ctx_parts else ""

        message = record.getMessage()
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return f"{timestamp} {record.levelname:8}{ctx_str} {record.name}: {message}"


class ClaimLogger(logging.LoggerAdapter):
    """Logger adapter that adds claim context to all log messages."""

    def __init__(self, logger: logging.Logger, claim_id: str | None = None):
        super().__init__(logger, {})
        self._claim_id = claim_id
        self._state: str | None = None

    def set_claim_id(self, claim_id: str) -> None:
        self._claim_id = claim_id

    def set_state(self, state: Any) -> None:
        """Track the claim's current lifecycle state (enum or string)."""
        self._state = getattr(state, "value", state)

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        if self._claim_id and not extra.get("claim_id"):
            extra["claim_id"] = self._claim_id
        if self._state and not extra.get("state"):
            extra["state"] = self._state
        kwargs["extra"] = extra
        return msg, kwargs

    def log_event(self, event: str, level: int = logging.INFO, **data: Any) -> None:
        """Log a structured event with additional data."""
        log_claim_event(self, event, claim_id=self._claim_id, level=level, **data)


def get_logger(
    name: str,
    claim_id: str | None = None,
    structured: bool | None = None,
) -> ClaimLogger:
    """Get a ClaimLogger instance.

    Args:
        name: Logger name (typically __name__)
        claim_id: Optional claim ID to attach to all logs
        structured: If True, use JSON format. If False, use human-readable.
                   If None, use CLAIM_LIFECYCLE_LOG_FORMAT env var (default: human)

    Returns:
        ClaimLogger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        if structured is None:
            log_format = os.environ.get("CLAIM_LIFECYCLE_LOG_FORMAT", "human").lower()
            structured = log_format == "json"

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            StructuredFormatter() if structured else HumanReadableFormatter()
        )
        logger.addHandler(handler)

        log_level = os.environ.get("CLAIM_LIFECYCLE_LOG_LEVEL", "INFO").upper()
        logger.setLevel(getattr(logging, log_level, logging.INFO))

        # Handlers live on each named logger; avoid duplicates via the root
        logger.propagate = False

    return ClaimLogger(logger, claim_id)


@contextmanager
def claim_context(
    claim_id: str,
    policy_no: str | None = None,
    actor: str | None = None,
    state: str | None = None,
    **extra: Any,
):
    """Context manager for setting claim context on all logs within the block.

    Usage:
        with claim_context(claim_id="CLM-123", actor="AGENT"):
            logger.info("Applying transition")  # includes claim_id
    """
    old_context = _get_claim_context()
    _set_claim_context(
        {
            "claim_id": claim_id,
            "policy_no": policy_no,
            "actor": getattr(actor, "value", actor),
            "state": getattr(state, "value", state),
            **extra,
        }
    )
    try:
        yield
    finally:
        _set_claim_context(old_context)


def log_claim_event(
    logger: logging.Logger | ClaimLogger,
    event: str,
    claim_id: str | None = None,
    level: int = logging.INFO,
    **data: Any,
) -> None:
    """Log a claim event with structured data.

    Args:
        logger: Logger instance
        event: Event name (e.g., "claim_created", "claim_transitioned")
        claim_id: Claim ID (optional if using claim_context)
        level: Log level
        **data: Additional event data
    """
    message = f"[{event}]"
    if data:
        details = ", ".join(f"{k}={v}" for k, v in data.items())
        message = f"{message} {details}"

    extra = {"claim_id": claim_id, "extra_data": {"event": event, **data}}
    logger.log(level, message, extra=extra)
