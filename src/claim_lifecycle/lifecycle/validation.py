"""Data requirements a claim must meet before entering certain states."""

import re

from claim_lifecycle.config.settings import get_policy_prefixes
from claim_lifecycle.lifecycle.errors import PayloadValidationFailed
from claim_lifecycle.models.claim import ClaimAction, ClaimState

# Fields that must be non-blank before a claim can be submitted for review
MANDATORY_INTAKE_FIELDS = (
    "accident_type",
    "accident_date_time",
    "accident_location",
    "accident_description",
    "reporter_name",
    "reporter_contact",
)

# Target states that require a complete intake (fields + at least one attachment)
INTAKE_REQUIRED_STATES = frozenset(
    {ClaimState.READY_TO_SUBMIT, ClaimState.SUBMITTED, ClaimState.IN_REVIEW}
)

# States only reachable after a complete intake; edits there must keep it complete
INTAKE_COMPLETE_STATES = INTAKE_REQUIRED_STATES | {ClaimState.NEEDS_MORE_INFO}


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_policy_no(policy_no: str | None) -> str:
    """Return the stripped policy number or raise if it lacks a known product code."""
    if _is_blank(policy_no):
        raise PayloadValidationFailed("Policy number is required", field="policy_no")
    value = str(policy_no).strip()
    prefixes = "|".join(re.escape(p) for p in get_policy_prefixes())
    if not re.fullmatch(rf"(?:{prefixes})\d+", value):
        raise PayloadValidationFailed(
            f"Invalid policy number {value!r}: must start with one of "
            f"{', '.join(get_policy_prefixes())} followed by digits",
            field="policy_no",
        )
    return value


def missing_intake_fields(fields: dict[str, object], attachments: tuple[str, ...]) -> list[str]:
    """Names of mandatory intake fields that are missing, in declaration order."""
    missing = [name for name in MANDATORY_INTAKE_FIELDS if _is_blank(fields.get(name))]
    if not attachments:
        missing.append("attachments")
    return missing


def check_target_requirements(
    claim_id: str,
    state: ClaimState,
    action: ClaimAction,
    target: ClaimState,
    fields: dict[str, object],
    attachments: tuple[str, ...],
) -> None:
    """Raise PayloadValidationFailed if the merged case cannot enter target."""
    if target not in INTAKE_REQUIRED_STATES:
        return
    missing = missing_intake_fields(fields, attachments)
    if missing:
        raise PayloadValidationFailed(
            f"Cannot {action.value} claim {claim_id}: missing {', '.join(missing)}",
            claim_id=claim_id,
            state=state,
            action=action,
            field=missing[0],
        )


def check_state_requirements(
    claim_id: str,
    state: ClaimState,
    action: str,
    fields: dict[str, object],
    attachments: tuple[str, ...],
) -> None:
    """Raise PayloadValidationFailed if an edit would leave state's intake incomplete."""
    if state not in INTAKE_COMPLETE_STATES:
        return
    missing = missing_intake_fields(fields, attachments)
    if missing:
        raise PayloadValidationFailed(
            f"Cannot update claim {claim_id} in {state.value}: "
            f"{', '.join(missing)} must stay filled in",
            claim_id=claim_id,
            state=state,
            action=action,
            field=missing[0],
        )
