"""Claim repository: persistence with optimistic concurrency and timeline storage."""

import json
import logging
import sqlite3
from typing import Any

from claim_lifecycle.db.database import get_connection
from claim_lifecycle.lifecycle.errors import ClaimNotFoundError, ConflictError
from claim_lifecycle.models.claim import ClaimCase, ClaimTimelineEvent
from claim_lifecycle.observability import get_logger, log_claim_event

logger = get_logger(__name__)

# Columns kept outside the JSON data blob
_EXCLUDED_FROM_DATA = {"timeline", "revision"}


def _case_data(case: ClaimCase) -> str:
    return json.dumps(case.model_dump(mode="json", exclude=_EXCLUDED_FROM_DATA))


def _event_row(claim_id: str, seq: int, event: ClaimTimelineEvent) -> tuple:
    return (
        claim_id,
        seq,
        event.timestamp.isoformat(),
        event.action,
        event.description,
        event.actor.value,
    )


def _event_from_row(row: sqlite3.Row) -> ClaimTimelineEvent:
    return ClaimTimelineEvent(
        timestamp=row["timestamp"],
        action=row["action"],
        description=row["description"] or "",
        actor=row["actor"],
    )


class ClaimRepository:
    """Repository for claim cases and their timelines.

    Every stored case carries a revision. save() only succeeds when the
    caller's snapshot was read at the stored revision; otherwise it raises
    ConflictError and the caller reloads and retries.
    """

    def __init__(self, db_path: str | None = None):
        self._db_path = db_path

    def add(self, case: ClaimCase) -> ClaimCase:
        """Insert a never-saved case. Returns the snapshot at revision 1."""
        if case.revision != 0:
            raise ConflictError(case.claim_id, case.revision, None)
        try:
            with get_connection(self._db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO claims (
                        id, policy_no, conversation_id, state, data, revision,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, 1, ?, ?)
                    """,
                    (
                        case.claim_id,
                        case.policy_no,
                        case.conversation_id,
                        case.state.value,
                        _case_data(case),
                        case.created_at.isoformat(),
                        case.updated_at.isoformat(),
                    ),
                )
                conn.executemany(
                    """
                    INSERT INTO claim_timeline
                        (claim_id, seq, timestamp, action, description, actor)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        _event_row(case.claim_id, seq, event)
                        for seq, event in enumerate(case.timeline)
                    ],
                )
        except sqlite3.IntegrityError:
            actual = self._stored_revision(case.claim_id)
            log_claim_event(
                logger,
                "save_conflict",
                claim_id=case.claim_id,
                level=logging.WARNING,
                expected_revision=0,
                actual_revision=actual,
            )
            raise ConflictError(case.claim_id, 0, actual) from None
        return case.model_copy(update={"revision": 1})

    def load(self, claim_id: str) -> ClaimCase:
        """Fetch claim by ID. Raises ClaimNotFoundError if absent."""
        with get_connection(self._db_path) as conn:
            row = conn.execute(
                "SELECT data, revision FROM claims WHERE id = ?", (claim_id,)
            ).fetchone()
            if row is None:
                raise ClaimNotFoundError(claim_id)
            events = conn.execute(
                "SELECT * FROM claim_timeline WHERE claim_id = ? ORDER BY seq ASC",
                (claim_id,),
            ).fetchall()
        return self._case_from_row(row, events)

    def get_claim(self, claim_id: str) -> ClaimCase | None:
        """Fetch claim by ID, or None."""
        try:
            return self.load(claim_id)
        except ClaimNotFoundError:
            return None

    def save(self, case: ClaimCase) -> ClaimCase:
        """Persist a snapshot read at the currently stored revision.

        Unchanged snapshots are acknowledged without a write. The claim row and
        new timeline events are written in one transaction.
        """
        with get_connection(self._db_path) as conn:
            row = conn.execute(
                "SELECT revision, updated_at FROM claims WHERE id = ?",
                (case.claim_id,),
            ).fetchone()
            if row is None:
                raise ClaimNotFoundError(case.claim_id)
            if row["revision"] != case.revision:
                self._log_conflict(case, row["revision"])
                raise ConflictError(case.claim_id, case.revision, row["revision"])
            stored_len = conn.execute(
                "SELECT COUNT(*) FROM claim_timeline WHERE claim_id = ?",
                (case.claim_id,),
            ).fetchone()[0]
            if stored_len > len(case.timeline):
                # Timeline may only grow
                self._log_conflict(case, row["revision"])
                raise ConflictError(case.claim_id, case.revision, row["revision"])
            if (
                stored_len == len(case.timeline)
                and row["updated_at"] == case.updated_at.isoformat()
            ):
                return case

            cur = conn.execute(
                """
                UPDATE claims
                SET state = ?, data = ?, updated_at = ?, revision = revision + 1
                WHERE id = ? AND revision = ?
                """,
                (
                    case.state.value,
                    _case_data(case),
                    case.updated_at.isoformat(),
                    case.claim_id,
                    case.revision,
                ),
            )
            if cur.rowcount != 1:
                actual = conn.execute(
                    "SELECT revision FROM claims WHERE id = ?", (case.claim_id,)
                ).fetchone()
                actual_revision = actual["revision"] if actual else None
                self._log_conflict(case, actual_revision)
                raise ConflictError(case.claim_id, case.revision, actual_revision)
            conn.executemany(
                """
                INSERT INTO claim_timeline
                    (claim_id, seq, timestamp, action, description, actor)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                [
                    _event_row(case.claim_id, seq, event)
                    for seq, event in enumerate(case.timeline)
                    if seq >= stored_len
                ],
            )
        return case.model_copy(update={"revision": case.revision + 1})

    def list_by_policy(self, policy_no: str) -> list[ClaimCase]:
        """All claims for a policy, newest first."""
        policy_no = (policy_no or "").strip()
        if not policy_no:
            return []
        with get_connection(self._db_path) as conn:
            rows = conn.execute(
                """
                SELECT id, data, revision FROM claims
                WHERE policy_no = ?
                ORDER BY created_at DESC, id ASC
                """,
                (policy_no,),
            ).fetchall()
            cases = []
            for row in rows:
                events = conn.execute(
                    "SELECT * FROM claim_timeline WHERE claim_id = ? ORDER BY seq ASC",
                    (row["id"],),
                ).fetchall()
                cases.append(self._case_from_row(row, events))
        return cases

    def get_timeline(self, claim_id: str) -> list[ClaimTimelineEvent]:
        """Timeline events in append order. Raises ClaimNotFoundError if absent."""
        return list(self.load(claim_id).timeline)

    def _stored_revision(self, claim_id: str) -> int | None:
        with get_connection(self._db_path) as conn:
            row = conn.execute(
                "SELECT revision FROM claims WHERE id = ?", (claim_id,)
            ).fetchone()
        return row["revision"] if row else None

    @staticmethod
    def _case_from_row(row: sqlite3.Row, events: list[sqlite3.Row]) -> ClaimCase:
        data: dict[str, Any] = json.loads(row["data"])
        data["timeline"] = [_event_from_row(e) for e in events]
        data["revision"] = row["revision"]
        return ClaimCase.model_validate(data)

    @staticmethod
    def _log_conflict(case: ClaimCase, actual_revision: int | None) -> None:
        log_claim_event(
            logger,
            "save_conflict",
            claim_id=case.claim_id,
            level=logging.WARNING,
            expected_revision=case.revision,
            actual_revision=actual_revision,
        )
