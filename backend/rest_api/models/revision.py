"""
Revision Models: RecipeVersion (immutable snapshots), RecipeHistory (append-only audit trail).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BigIntPK, Base

if TYPE_CHECKING:
    from .recipe import Recipe


class RecipeVersion(Base):
    """
    Point-in-time snapshot of a recipe.

    Created when a production starts and whenever an edit made during a
    production changes something. Never updated after insert.
    version_number is allocated as max + 1 per recipe.
    """

    __tablename__ = "recipe_version"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("recipe.id", ondelete="CASCADE"), nullable=False
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # JSON: recipe columns plus oven_temperatures and mixing_times
    recipe_snapshot: Mapped[str] = mapped_column(Text, nullable=False)
    # JSON: list of ingredient rows
    ingredients_snapshot: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("recipe_id", "version_number", name="uq_recipe_version_number"),
    )

    recipe: Mapped["Recipe"] = relationship(back_populates="versions")


class RecipeHistory(Base):
    """
    One detected change to a recipe.

    Append-only. recipe_version_id is set before insert when the edit that
    produced the record also created a version.
    """

    __tablename__ = "recipe_history"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("recipe.id", ondelete="CASCADE"), nullable=False
    )
    recipe_version_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("recipe_version.id", ondelete="SET NULL")
    )
    production_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("production.id", ondelete="SET NULL")
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    change_type: Mapped[str] = mapped_column(String(20), nullable=False)  # admin, production, version_created
    field_name: Mapped[Optional[str]] = mapped_column(String(255))
    old_value: Mapped[Optional[str]] = mapped_column(Text)
    new_value: Mapped[Optional[str]] = mapped_column(Text)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_recipe_history_recipe_created", "recipe_id", "created_at"),
        Index("ix_recipe_history_recipe_type", "recipe_id", "change_type"),
    )
