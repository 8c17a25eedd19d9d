"""SQLite connection and schema initialization."""

import os
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path

# Tracks which database paths have had schema applied (avoid running on every connection)
_schema_initialized: set[str] = set()
_schema_lock = threading.Lock()

SCHEMA_SQL = """
-- Claim cases (current snapshot; full JSON shape kept in data)
CREATE TABLE IF NOT EXISTS claims (
    id TEXT PRIMARY KEY,
    policy_no TEXT NOT NULL,
    conversation_id TEXT,
    state TEXT NOT NULL,
    data TEXT NOT NULL,
    revision INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Timeline (append-only audit trail; seq is the append position)
CREATE TABLE IF NOT EXISTS claim_timeline (
    claim_id TEXT NOT NULL,
    seq INTEGER NOT NULL,
    timestamp TEXT NOT NULL,
    action TEXT NOT NULL,
    description TEXT,
    actor TEXT NOT NULL,
    PRIMARY KEY (claim_id, seq),
    FOREIGN KEY (claim_id) REFERENCES claims(id)
);
CREATE INDEX IF NOT EXISTS idx_claims_policy_no ON claims(policy_no);
"""


def get_db_path() -> str:
    """Return path to SQLite database from CLAIMS_DB_PATH env or default data/claims.db."""
    return os.environ.get("CLAIMS_DB_PATH", "data/claims.db")


def init_db(path: str | None = None) -> None:
    """Create tables if they do not exist."""
    db_path = path or get_db_path()
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.executescript(SCHEMA_SQL)
    with _schema_lock:
        _schema_initialized.add(db_path)


def _ensure_schema(db_path: str) -> None:
    """Run schema once per path. Thread-safe."""
    with _schema_lock:
        if db_path in _schema_initialized:
            return
    init_db(db_path)


@contextmanager
def get_connection(path: str | None = None):
    """Yield a connection inside one transaction.

    Commits when the block exits normally and rolls back if it raises, so a
    claim row and its timeline rows are written together or not at all.
    """
    db_path = path or get_db_path()
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    _ensure_schema(db_path)
    conn = sqlite3.connect(db_path, timeout=10.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
