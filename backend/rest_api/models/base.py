"""
Base class and shared column types for all SQLAlchemy ORM models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Integer, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

# SQLite only autoincrements INTEGER PRIMARY KEY columns
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")


class Amount(TypeDecorator):
    """
    Quantities, percentages and prices.

    Always read back as float: SQLite hands back integral values as int,
    and history strings must not depend on the backend.
    """

    impl = Numeric(12, 2, asdecimal=False)
    cache_ok = True

    def process_result_value(self, value, dialect):
        return float(value) if value is not None else None


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TimestampMixin:
    """
    Mixin providing created/updated timestamps.

    Fields added:
    - created_at: set by the database on insert
    - updated_at: refreshed by the database on every UPDATE
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        id_val = getattr(self, "id", None)
        return f"<{class_name}(id={id_val})>"
