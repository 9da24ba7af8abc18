"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns: one Session per request, explicit commits.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import DATABASE_URL, settings


def enable_sqlite_savepoints(sqlite_engine: Engine) -> Engine:
    """
    Let SQLAlchemy own BEGIN on pysqlite connections.

    The driver otherwise issues its own transaction statements, which breaks
    Session.begin_nested() (SAVEPOINT), used by the lot upserter.
    """

    @event.listens_for(sqlite_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine


def _build_engine(url: str) -> Engine:
    """
    Create the engine with pool settings suited to the backend.
    SQLite (local development) gets neither pool sizing nor a connect timeout.
    """
    if url.startswith("sqlite"):
        return enable_sqlite_savepoints(
            create_engine(url, connect_args={"check_same_thread": False})
        )

    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=30,  # Wait max 30s for connection from pool
        pool_recycle=1800,  # Recycle connections after 30 minutes
        connect_args={"connect_timeout": 10},
        echo=False,  # Set to True for SQL logging in development
    )


engine = _build_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.scalars(select(Item)).all()

    The session is automatically closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context() as db:
            db.scalars(select(Item)).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Commit with automatic rollback on failure.

    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
