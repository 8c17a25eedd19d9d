"""SQLite persistence for claim cases and their timelines."""

from claim_lifecycle.db.database import get_connection, get_db_path, init_db
from claim_lifecycle.db.repository import ClaimRepository

__all__ = [
    "ClaimRepository",
    "get_connection",
    "get_db_path",
    "init_db",
]
