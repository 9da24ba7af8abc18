"""
Infrastructure module: database sessions and request correlation.

Provides:
- Database sessions and transactions (db.py)
- Correlation IDs for log grouping (correlation.py)
"""

from shared.infrastructure.db import (
    enable_sqlite_savepoints,
    engine,
    SessionLocal,
    get_db,
    get_db_context,
    safe_commit,
)

__all__ = [
    "enable_sqlite_savepoints",
    "engine",
    "SessionLocal",
    "get_db",
    "get_db_context",
    "safe_commit",
]
