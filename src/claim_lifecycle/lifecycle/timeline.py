"""Timeline recorder: builds validated audit events and appends them to a case."""

from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import ValidationError

from claim_lifecycle.lifecycle.errors import InvalidEventData
from claim_lifecycle.models.claim import Actor, ClaimCase, ClaimTimelineEvent


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimelineRecorder:
    """Creates and appends timeline events.

    The recorder is the single source of "now" for a mutation: the event
    timestamp and the case's new ``updated_at`` are the same value. Events are
    kept in append order and never edited or removed.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock

    def now(self, case: ClaimCase | None = None) -> datetime:
        """Current time, never earlier than the case's last update."""
        current = self._clock()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        if case is not None:
            last = case.updated_at
            if last.tzinfo is None:
                last = last.replace(tzinfo=timezone.utc)
            if last > current:
                return last
        return current

    def record(
        self,
        case: ClaimCase | None,
        action: str,
        actor: Actor | str,
        description: str = "",
        at: datetime | None = None,
    ) -> ClaimTimelineEvent:
        """Build a validated event; raises InvalidEventData on bad action or actor."""
        claim_id = case.claim_id if case is not None else None
        if not isinstance(action, str) or not action.strip():
            raise InvalidEventData(
                "Timeline action must be a non-empty string",
                claim_id=claim_id,
                action=action,
                field="action",
            )
        try:
            actor = Actor(actor.upper()) if isinstance(actor, str) else Actor(actor)
        except ValueError:
            raise InvalidEventData(
                f"Unknown actor {actor!r}; expected one of "
                f"{', '.join(a.value for a in Actor)}",
                claim_id=claim_id,
                action=action,
                field="actor",
            ) from None
        try:
            return ClaimTimelineEvent(
                timestamp=at or self.now(case),
                action=action.strip(),
                description=description or "",
                actor=actor,
            )
        except ValidationError as e:
            raise InvalidEventData(
                f"Invalid timeline event: {e}", claim_id=claim_id, action=action
            ) from e

    def append(
        self, case: ClaimCase, event: ClaimTimelineEvent, **changes: Any
    ) -> ClaimCase:
        """Return a new snapshot with event appended and updated_at set to its timestamp."""
        return case.model_copy(
            update={
                **changes,
                "timeline": (*case.timeline, event),
                "updated_at": event.timestamp,
            }
        )
