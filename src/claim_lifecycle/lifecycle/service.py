"""Claim service: load, apply a lifecycle operation, save, retrying on conflict."""

from typing import Any, Callable, Mapping

from claim_lifecycle.db.repository import ClaimRepository
from claim_lifecycle.lifecycle.state_machine import ClaimLifecycle
from claim_lifecycle.models.claim import (
    Actor,
    ClaimAction,
    ClaimCase,
    ClaimPayload,
    ClaimTimelineEvent,
)
from claim_lifecycle.observability import claim_context, get_logger
from claim_lifecycle.utils.retry import with_conflict_retry
from claim_lifecycle.utils.sanitization import sanitize_payload

logger = get_logger(__name__)


def _prepare_payload(payload: ClaimPayload | Mapping[str, Any] | None) -> ClaimPayload | dict | None:
    if payload is None or isinstance(payload, ClaimPayload):
        return payload
    return sanitize_payload(dict(payload))


class ClaimService:
    """Entry point for transports (CLI, MCP tools, chat layer).

    Each mutating call is one atomic unit: the case is loaded fresh, the
    lifecycle validates against that state, and the result is saved with
    optimistic concurrency. A ConflictError restarts the unit, up to a bounded
    number of attempts; lifecycle errors are never retried.
    """

    def __init__(
        self,
        repository: ClaimRepository | None = None,
        lifecycle: ClaimLifecycle | None = None,
        max_attempts: int | None = None,
        min_wait: float | None = None,
        max_wait: float | None = None,
    ):
        self.repository = repository or ClaimRepository()
        self.lifecycle = lifecycle or ClaimLifecycle()
        self._retry = with_conflict_retry(
            max_attempts=max_attempts, min_wait=min_wait, max_wait=max_wait
        )

    def open_claim(
        self,
        policy_no: str,
        conversation_id: str | None = None,
        actor: Actor | str = Actor.USER,
    ) -> ClaimCase:
        """Create and persist a DRAFT claim."""
        case = self.lifecycle.create_draft(policy_no, conversation_id, actor)
        return self.repository.add(case)

    def apply_action(
        self,
        claim_id: str,
        action: ClaimAction | str,
        actor: Actor | str,
        payload: ClaimPayload | Mapping[str, Any] | None = None,
    ) -> ClaimCase:
        """Transition a stored claim and persist the result."""
        payload = _prepare_payload(payload)
        return self._mutate(
            claim_id,
            actor,
            lambda case: self.lifecycle.transition(case, action, actor, payload),
        )

    def amend_claim(
        self,
        claim_id: str,
        payload: ClaimPayload | Mapping[str, Any],
        actor: Actor | str,
    ) -> ClaimCase:
        """Update descriptive fields of a stored, non-terminal claim."""
        payload = _prepare_payload(payload)
        return self._mutate(
            claim_id,
            actor,
            lambda case: self.lifecycle.amend(case, payload, actor),
        )

    def attach(self, claim_id: str, reference: str, actor: Actor | str) -> ClaimCase:
        """Append a file reference to a stored, non-terminal claim."""
        return self._mutate(
            claim_id,
            actor,
            lambda case: self.lifecycle.add_attachment(case, reference, actor),
        )

    def get_claim(self, claim_id: str) -> ClaimCase:
        return self.repository.load(claim_id)

    def list_claims(self, policy_no: str) -> list[ClaimCase]:
        return self.repository.list_by_policy(policy_no)

    def history(self, claim_id: str) -> list[ClaimTimelineEvent]:
        return self.repository.get_timeline(claim_id)

    def _mutate(
        self,
        claim_id: str,
        actor: Actor | str,
        operation: Callable[[ClaimCase], ClaimCase],
    ) -> ClaimCase:
        @self._retry
        def attempt() -> ClaimCase:
            case = self.repository.load(claim_id)
            with claim_context(
                claim_id=case.claim_id,
                policy_no=case.policy_no,
                actor=actor,
                state=case.state,
            ):
                updated = operation(case)
                saved = self.repository.save(updated)
                logger.debug(
                    "Saved claim at revision %s (%s)", saved.revision, saved.state.value
                )
                return saved

        return attempt()
