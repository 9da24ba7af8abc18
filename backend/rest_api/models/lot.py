"""
Ingredient Lot Model: lookup table of lot codes seen per ingredient SKU.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import BigIntPK, Base


class IngredientLot(Base):
    """
    Lot code previously used for an ingredient SKU.
    Feeds lot autocomplete; maintained as a side effect of recipe edits.
    """

    __tablename__ = "ingredient_lot"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    lot: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("sku", "lot", name="uq_ingredient_lot_sku_lot"),
        Index("ix_ingredient_lot_sku_last_used", "sku", "last_used_at"),
    )
