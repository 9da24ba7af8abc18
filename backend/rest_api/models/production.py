"""
Production Models: Production, ProductionIngredient.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import PENDING_PRODUCTION_LOT, ProductionStatus

from .base import BigIntPK, Base, TimestampMixin

if TYPE_CHECKING:
    from .recipe import Recipe
    from .revision import RecipeVersion


class Production(TimestampMixin, Base):
    """
    A production run of a recipe.

    While a run is in_progress, recipe edits submitted against it are
    recorded as production changes and fork a new RecipeVersion.
    The lot code is generated when the run finishes.
    """

    __tablename__ = "production"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("recipe.id", ondelete="CASCADE"), nullable=False
    )
    # Version the run started from
    recipe_version_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("recipe_version.id", ondelete="SET NULL")
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    production_lot: Mapped[str] = mapped_column(
        String(255), nullable=False, default=PENDING_PRODUCTION_LOT
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProductionStatus.IN_PROGRESS
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("ix_production_recipe_status", "recipe_id", "status"),
    )

    recipe: Mapped["Recipe"] = relationship(back_populates="productions")
    recipe_version: Mapped[Optional["RecipeVersion"]] = relationship()
    ingredient_overrides: Mapped[list["ProductionIngredient"]] = relationship(
        back_populates="production", cascade="all, delete-orphan", passive_deletes=True
    )


class ProductionIngredient(Base):
    """
    Per-run override of an ingredient's sourcing data (lot, supplier, ...).
    One row per (production, ingredient).
    """

    __tablename__ = "production_ingredient"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    production_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("production.id", ondelete="CASCADE"), nullable=False
    )
    ingredient_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("recipe_ingredient.id", ondelete="CASCADE"), nullable=False
    )
    lot: Mapped[Optional[str]] = mapped_column(String(255))
    product_name_override: Mapped[Optional[str]] = mapped_column(String(255))
    mp_sku_override: Mapped[Optional[str]] = mapped_column(String(100))
    supplier_override: Mapped[Optional[str]] = mapped_column(String(255))
    warehouse_location_override: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("production_id", "ingredient_id", name="uq_production_ingredient"),
    )

    production: Mapped["Production"] = relationship(back_populates="ingredient_overrides")
