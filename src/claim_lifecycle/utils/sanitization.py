"""Input sanitization for claim payloads coming from chat and agent callers."""

import re
from typing import Any

from claim_lifecycle.config.settings import MAX_DESCRIPTION_LENGTH, MAX_SHORT_FIELD_LENGTH

# Free-text fields that may end up in an LLM prompt downstream
LONG_TEXT_FIELDS = ("accident_description", "note")

SHORT_TEXT_FIELDS = (
    "insured_entity_name",
    "accident_date_time",
    "accident_location",
    "reporter_name",
    "reporter_contact",
    "relationship_to_insured",
)

# Patterns that may indicate prompt injection attempts
INJECTION_PATTERNS = [
    re.compile(r"ignore\s+(?:all\s+)?(?:previous|above|prior)\s+instructions?", re.I),
    re.compile(r"disregard\s+(?:all\s+)?(?:previous|above|prior)", re.I),
    re.compile(r"you\s+are\s+now\s+", re.I),
    re.compile(r"new\s+instructions?\s*:", re.I),
    re.compile(r"system\s*:\s*", re.I),
    re.compile(r"<\|[a-z_]+\|>", re.I),  # special tokens
]


def _sanitize_text(text: Any, max_length: int) -> Any:
    """Strip control characters and truncate; non-strings pass through unchanged."""
    if not isinstance(text, str):
        return text
    cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text).strip()
    return cleaned[:max_length]


def _remove_injection_patterns(text: Any) -> Any:
    if not isinstance(text, str) or not text:
        return text
    for pattern in INJECTION_PATTERNS:
        text = pattern.sub("[redacted]", text)
    return text


def sanitize_payload(payload: dict[str, Any] | None) -> dict[str, Any]:
    """
    Clean a raw payload dict before it is validated into a ClaimPayload.

    - Strips control characters and surrounding whitespace
    - Truncates text fields to configured lengths
    - Neutralizes instruction-like patterns in long free-text fields
    - Strips attachment references; attachments=None becomes an empty list
    - Other None values are kept (meaning "unchanged")

    Returns a new dict; does not mutate the input.
    """
    if not payload or not isinstance(payload, dict):
        return {}

    out: dict[str, Any] = {}
    for key, value in payload.items():
        if key in LONG_TEXT_FIELDS:
            out[key] = _remove_injection_patterns(_sanitize_text(value, MAX_DESCRIPTION_LENGTH))
        elif key in SHORT_TEXT_FIELDS:
            out[key] = _sanitize_text(value, MAX_SHORT_FIELD_LENGTH)
        elif key == "attachments" and isinstance(value, list):
            out[key] = [_sanitize_text(v, MAX_SHORT_FIELD_LENGTH) for v in value]
        elif key == "attachments" and value is None:
            out[key] = []
        else:
            out[key] = value
    return out
