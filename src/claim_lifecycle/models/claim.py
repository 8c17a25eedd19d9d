"""Pydantic models for claim cases, timeline events, and field updates."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ClaimState(str, Enum):
    """Lifecycle state of a claim case."""

    DRAFT = "DRAFT"
    READY_TO_SUBMIT = "READY_TO_SUBMIT"
    SUBMITTED = "SUBMITTED"
    IN_REVIEW = "IN_REVIEW"
    NEEDS_MORE_INFO = "NEEDS_MORE_INFO"
    CLOSED = "CLOSED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({ClaimState.CLOSED, ClaimState.REJECTED})


class ClaimAction(str, Enum):
    """Actions that move a claim between states."""

    COMPLETE_INTAKE = "complete-intake"
    SUBMIT = "submit"
    START_REVIEW = "start-review"
    REQUEST_INFO = "request-info"
    RESUBMIT = "resubmit"
    APPROVE = "approve"
    DENY = "deny"
    WITHDRAW = "withdraw"


class Actor(str, Enum):
    """Originator of a timeline event."""

    USER = "USER"
    SYSTEM = "SYSTEM"
    AGENT = "AGENT"


class AccidentType(str, Enum):
    """Kind of incident being reported."""

    LIFE = "LIFE"
    MEDICAL = "MEDICAL"
    ACCIDENT = "ACCIDENT"
    OTHER = "OTHER"


# Timeline actions that are not state transitions
EVENT_CREATED = "created"
EVENT_DETAILS_UPDATED = "details-updated"
EVENT_ATTACHMENT_ADDED = "attachment-added"

# Descriptive fields a payload may set while the case is non-terminal
DETAIL_FIELDS = (
    "insured_entity_name",
    "accident_type",
    "accident_date_time",
    "accident_location",
    "accident_description",
    "reporter_name",
    "reporter_contact",
    "relationship_to_insured",
)


class ClaimTimelineEvent(BaseModel):
    """Immutable audit entry describing one state-affecting action."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="Event creation time (UTC)")
    action: str = Field(..., description="Symbolic label, e.g. the transition name")
    description: str = Field(default="", description="Human-readable detail")
    actor: Actor = Field(..., description="Who or what caused the event")


class ClaimPayload(BaseModel):
    """Optional field updates carried by a transition or amendment."""

    model_config = ConfigDict(extra="forbid")

    insured_entity_name: Optional[str] = None
    accident_type: Optional[AccidentType] = None
    accident_date_time: Optional[str] = Field(
        default=None, description="Accident date/time (ISO 8601)"
    )
    accident_location: Optional[str] = None
    accident_description: Optional[str] = None
    reporter_name: Optional[str] = None
    reporter_contact: Optional[str] = None
    relationship_to_insured: Optional[str] = None
    attachments: list[str] = Field(
        default_factory=list, description="File references to append"
    )
    note: Optional[str] = Field(
        default=None, description="Free text recorded as the timeline description"
    )

    def detail_updates(self) -> dict[str, object]:
        """Descriptive fields this payload sets (None means unchanged)."""
        return {
            name: getattr(self, name)
            for name in DETAIL_FIELDS
            if getattr(self, name) is not None
        }

    def is_empty(self) -> bool:
        return not self.detail_updates() and not self.attachments


class ClaimCase(BaseModel):
    """Immutable snapshot of a claim case; transitions produce new snapshots."""

    model_config = ConfigDict(frozen=True)

    claim_id: str = Field(..., description="Globally unique claim ID")
    policy_no: str = Field(..., description="Underlying policy number")
    conversation_id: Optional[str] = Field(
        default=None, description="Originating chat session, if any"
    )
    state: ClaimState = Field(default=ClaimState.DRAFT)

    insured_entity_name: Optional[str] = None
    accident_type: Optional[AccidentType] = None
    accident_date_time: Optional[str] = None
    accident_location: Optional[str] = None
    accident_description: Optional[str] = None
    reporter_name: Optional[str] = None
    reporter_contact: Optional[str] = None
    relationship_to_insured: Optional[str] = None

    attachments: tuple[str, ...] = Field(default_factory=tuple)
    timeline: tuple[ClaimTimelineEvent, ...] = Field(default_factory=tuple)

    created_at: datetime
    updated_at: datetime
    revision: int = Field(
        default=0, ge=0, description="Persisted revision this snapshot was read at"
    )

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def to_json_dict(self) -> dict:
        """JSON-serializable dict (timestamps as ISO strings)."""
        return self.model_dump(mode="json")
