"""Centralized configuration from environment variables with defaults."""

import os
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _float(key: str, default: float) -> float:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _tuple_str(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(key)
    if raw is None:
        return default
    parts = tuple(p for p in raw.replace(" ", "").split(",") if p)
    return parts or default


# ---------------------------------------------------------------------------
# Claim identity and policy references
# ---------------------------------------------------------------------------

def get_policy_prefixes() -> tuple[str, ...]:
    """Product-code prefixes a policy number must start with (default: 65, 66)."""
    return _tuple_str("CLAIM_POLICY_PREFIXES", ("65", "66"))


def get_claim_id_prefix() -> str:
    """Prefix for generated claim IDs (default: CLM)."""
    return os.environ.get("CLAIM_ID_PREFIX", "CLM").strip() or "CLM"


# ---------------------------------------------------------------------------
# Optimistic concurrency
# ---------------------------------------------------------------------------

def get_conflict_retry_config() -> dict[str, Any]:
    """Bounded retry for save conflicts (reload, re-validate, retry)."""
    return {
        "max_attempts": max(1, _int("CLAIM_CONFLICT_MAX_ATTEMPTS", 3)),
        "min_wait": _float("CLAIM_CONFLICT_MIN_WAIT", 0.05),
        "max_wait": _float("CLAIM_CONFLICT_MAX_WAIT", 0.5),
    }


# ---------------------------------------------------------------------------
# Free-text limits for payload sanitization
# ---------------------------------------------------------------------------

MAX_DESCRIPTION_LENGTH = _int("CLAIM_MAX_DESCRIPTION_LENGTH", 5000)
MAX_SHORT_FIELD_LENGTH = _int("CLAIM_MAX_SHORT_FIELD_LENGTH", 256)
