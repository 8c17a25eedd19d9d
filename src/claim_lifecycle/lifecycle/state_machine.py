"""
Claim State Machine

Owns the transition table for claim cases and applies validated transitions
as functional updates: every operation returns a new ClaimCase snapshot and
leaves its input untouched. Persistence is the caller's job.
"""
import uuid
from typing import Mapping

from claim_lifecycle.config.settings import get_claim_id_prefix
from claim_lifecycle.lifecycle.errors import (
    InvalidTransition,
    PayloadValidationFailed,
    TerminalStateViolation,
)
from claim_lifecycle.lifecycle.timeline import TimelineRecorder
from claim_lifecycle.lifecycle.validation import (
    check_state_requirements,
    check_target_requirements,
    validate_policy_no,
)
from claim_lifecycle.models.claim import (
    DETAIL_FIELDS,
    EVENT_ATTACHMENT_ADDED,
    EVENT_CREATED,
    EVENT_DETAILS_UPDATED,
    Actor,
    ClaimAction,
    ClaimCase,
    ClaimPayload,
    ClaimState,
)
from claim_lifecycle.observability import get_logger, log_claim_event

logger = get_logger(__name__)

# from_state -> {action: to_state}; withdraw is added for every non-terminal state below
_FORWARD_TRANSITIONS: dict[ClaimState, dict[ClaimAction, ClaimState]] = {
    ClaimState.DRAFT: {ClaimAction.COMPLETE_INTAKE: ClaimState.READY_TO_SUBMIT},
    ClaimState.READY_TO_SUBMIT: {ClaimAction.SUBMIT: ClaimState.SUBMITTED},
    ClaimState.SUBMITTED: {ClaimAction.START_REVIEW: ClaimState.IN_REVIEW},
    ClaimState.IN_REVIEW: {
        ClaimAction.REQUEST_INFO: ClaimState.NEEDS_MORE_INFO,
        ClaimAction.APPROVE: ClaimState.CLOSED,
        ClaimAction.DENY: ClaimState.REJECTED,
    },
    ClaimState.NEEDS_MORE_INFO: {ClaimAction.RESUBMIT: ClaimState.IN_REVIEW},
    ClaimState.CLOSED: {},
    ClaimState.REJECTED: {},
}

TRANSITIONS: Mapping[ClaimState, Mapping[ClaimAction, ClaimState]] = {
    state: (
        edges
        if state.is_terminal
        else {**edges, ClaimAction.WITHDRAW: ClaimState.REJECTED}
    )
    for state, edges in _FORWARD_TRANSITIONS.items()
}

_DEFAULT_DESCRIPTIONS: dict[ClaimAction, str] = {
    ClaimAction.COMPLETE_INTAKE: "Required information complete; ready to submit",
    ClaimAction.SUBMIT: "Claim submitted for processing",
    ClaimAction.START_REVIEW: "Claim review started",
    ClaimAction.REQUEST_INFO: "Additional information requested",
    ClaimAction.RESUBMIT: "Requested information provided; back in review",
    ClaimAction.APPROVE: "Claim approved and closed",
    ClaimAction.DENY: "Claim denied",
    ClaimAction.WITHDRAW: "Claim withdrawn",
}


def allowed_actions(state: ClaimState) -> list[ClaimAction]:
    """Actions permitted from state, in table order."""
    return list(TRANSITIONS[ClaimState(state)])


def is_terminal(state: ClaimState) -> bool:
    return ClaimState(state).is_terminal


def can_transition(state: ClaimState, action: ClaimAction | str) -> bool:
    try:
        action = ClaimAction(action)
    except ValueError:
        return False
    return action in TRANSITIONS[ClaimState(state)]


def generate_claim_id(prefix: str | None = None) -> str:
    """Generate a unique claim ID."""
    return f"{prefix or get_claim_id_prefix()}-{uuid.uuid4().hex[:12].upper()}"


def _coerce_payload(payload: ClaimPayload | Mapping | None) -> ClaimPayload:
    if payload is None:
        return ClaimPayload()
    if isinstance(payload, ClaimPayload):
        return payload
    return ClaimPayload.model_validate(dict(payload))


class ClaimLifecycle:
    """Validates and applies claim transitions.

    Guards run in a fixed order before anything is built: terminal state,
    allowed action, target-state data requirements, event data. A failed
    guard raises and no snapshot is produced.
    """

    def __init__(self, recorder: TimelineRecorder | None = None):
        self.recorder = recorder or TimelineRecorder()

    def create_draft(
        self,
        policy_no: str,
        conversation_id: str | None = None,
        actor: Actor | str = Actor.USER,
        claim_id: str | None = None,
    ) -> ClaimCase:
        """New DRAFT case whose timeline starts with a creation event."""
        policy_no = validate_policy_no(policy_no)
        now = self.recorder.now()
        case = ClaimCase(
            claim_id=claim_id or generate_claim_id(),
            policy_no=policy_no,
            conversation_id=conversation_id or None,
            state=ClaimState.DRAFT,
            created_at=now,
            updated_at=now,
        )
        event = self.recorder.record(
            case, EVENT_CREATED, actor, "Draft claim initialized", at=now
        )
        case = self.recorder.append(case, event)
        log_claim_event(
            logger,
            "claim_created",
            claim_id=case.claim_id,
            policy_no=policy_no,
            actor=event.actor.value,
        )
        return case

    def transition(
        self,
        case: ClaimCase,
        action: ClaimAction | str,
        actor: Actor | str,
        payload: ClaimPayload | Mapping | None = None,
    ) -> ClaimCase:
        """Apply action to case and return the new snapshot.

        Raises:
            TerminalStateViolation: case is CLOSED or REJECTED.
            InvalidTransition: action is not allowed from the current state.
            PayloadValidationFailed: the merged case lacks data the target state requires,
                or a closing action carries field changes.
            InvalidEventData: actor or action failed event validation.
        """
        if case.is_terminal:
            self._reject(case, action, "terminal")
            raise TerminalStateViolation(
                f"Claim {case.claim_id} is {case.state.value}; no further transitions allowed",
                claim_id=case.claim_id,
                state=case.state,
                action=action,
            )
        try:
            action = ClaimAction(action)
        except ValueError:
            self._reject(case, action, "unknown_action")
            raise InvalidTransition(
                f"Unknown action {action!r}",
                claim_id=case.claim_id,
                state=case.state,
                action=action,
            ) from None
        target = TRANSITIONS[case.state].get(action)
        if target is None:
            self._reject(case, action, "not_allowed")
            allowed = ", ".join(a.value for a in allowed_actions(case.state))
            raise InvalidTransition(
                f"Cannot {action.value} claim {case.claim_id} from {case.state.value}. "
                f"Allowed actions: {allowed}",
                claim_id=case.claim_id,
                state=case.state,
                action=action,
            )

        try:
            payload = _coerce_payload(payload)
        except ValueError as e:
            raise PayloadValidationFailed(
                f"Malformed payload for {action.value}: {e}",
                claim_id=case.claim_id,
                state=case.state,
                action=action,
                field="payload",
            ) from e
        if target.is_terminal and not payload.is_empty():
            self._reject(case, action, "payload", field="payload")
            raise PayloadValidationFailed(
                f"Cannot change claim fields on {action.value}; only a note is accepted",
                claim_id=case.claim_id,
                state=case.state,
                action=action,
                field="payload",
            )
        changes = self._merge(case, payload, action)
        fields = {name: changes.get(name, getattr(case, name)) for name in DETAIL_FIELDS}
        try:
            check_target_requirements(
                case.claim_id,
                case.state,
                action,
                target,
                fields,
                changes.get("attachments", case.attachments),
            )
        except PayloadValidationFailed as e:
            self._reject(case, action, "payload", field=e.field)
            raise

        event = self.recorder.record(
            case,
            action.value,
            actor,
            payload.note or _DEFAULT_DESCRIPTIONS[action],
        )
        updated = self.recorder.append(case, event, state=target, **changes)
        log_claim_event(
            logger,
            "claim_transitioned",
            claim_id=case.claim_id,
            action=action.value,
            from_state=case.state.value,
            to_state=target.value,
            actor=event.actor.value,
        )
        return updated

    def amend(
        self,
        case: ClaimCase,
        payload: ClaimPayload | Mapping,
        actor: Actor | str,
    ) -> ClaimCase:
        """Update descriptive fields / attachments without changing state.

        Past DRAFT the mandatory intake data must stay complete.
        """
        self._ensure_mutable(case, EVENT_DETAILS_UPDATED)
        try:
            payload = _coerce_payload(payload)
        except ValueError as e:
            raise PayloadValidationFailed(
                f"Malformed payload: {e}",
                claim_id=case.claim_id,
                state=case.state,
                field="payload",
            ) from e
        if payload.is_empty():
            raise PayloadValidationFailed(
                "Payload contains no field updates",
                claim_id=case.claim_id,
                state=case.state,
                field="payload",
            )
        changes = self._merge(case, payload, EVENT_DETAILS_UPDATED)
        fields = {name: changes.get(name, getattr(case, name)) for name in DETAIL_FIELDS}
        try:
            check_state_requirements(
                case.claim_id,
                case.state,
                EVENT_DETAILS_UPDATED,
                fields,
                changes.get("attachments", case.attachments),
            )
        except PayloadValidationFailed as e:
            self._reject(case, EVENT_DETAILS_UPDATED, "payload", field=e.field)
            raise
        updated_fields = sorted(k for k in changes if k != "attachments")
        description = payload.note or (
            f"Updated {', '.join(updated_fields)}" if updated_fields else "Attachments added"
        )
        event = self.recorder.record(case, EVENT_DETAILS_UPDATED, actor, description)
        log_claim_event(
            logger,
            "claim_amended",
            claim_id=case.claim_id,
            fields=",".join(updated_fields),
            actor=event.actor.value,
        )
        return self.recorder.append(case, event, **changes)

    def add_attachment(
        self, case: ClaimCase, reference: str, actor: Actor | str
    ) -> ClaimCase:
        """Append one file reference to the case."""
        self._ensure_mutable(case, EVENT_ATTACHMENT_ADDED)
        reference = self._clean_reference(case, reference, EVENT_ATTACHMENT_ADDED)
        event = self.recorder.record(
            case, EVENT_ATTACHMENT_ADDED, actor, f"Attachment added: {reference}"
        )
        return self.recorder.append(
            case, event, attachments=(*case.attachments, reference)
        )

    def _merge(
        self, case: ClaimCase, payload: ClaimPayload, action: ClaimAction | str
    ) -> dict[str, object]:
        changes: dict[str, object] = dict(payload.detail_updates())
        if payload.attachments:
            refs = tuple(
                self._clean_reference(case, ref, action) for ref in payload.attachments
            )
            changes["attachments"] = (*case.attachments, *refs)
        return changes

    @staticmethod
    def _clean_reference(case: ClaimCase, reference: str, action: ClaimAction | str) -> str:
        if not isinstance(reference, str) or not reference.strip():
            raise PayloadValidationFailed(
                "Attachment reference must be a non-empty string",
                claim_id=case.claim_id,
                state=case.state,
                action=action,
                field="attachments",
            )
        return reference.strip()

    def _ensure_mutable(self, case: ClaimCase, action: str) -> None:
        if case.is_terminal:
            self._reject(case, action, "terminal")
            raise TerminalStateViolation(
                f"Claim {case.claim_id} is {case.state.value}; fields can no longer change",
                claim_id=case.claim_id,
                state=case.state,
                action=action,
            )

    @staticmethod
    def _reject(case: ClaimCase, action: object, reason: str, **data: object) -> None:
        log_claim_event(
            logger,
            "transition_rejected",
            claim_id=case.claim_id,
            state=case.state.value,
            action=getattr(action, "value", action),
            reason=reason,
            **data,
        )
