"""
Ingredient lot lookup table.

The table is a convenience index for lot autocomplete. Writes to it are best
effort: a failure is logged and swallowed so it never aborts a recipe edit.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import IngredientLot
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.utils.validators import clean_optional_text, escape_like_pattern, sanitize_search_term

logger = get_logger(__name__)


def _touch_lot(db: Session, sku: str, lot: str) -> None:
    """Refresh last_used_at for (sku, lot), inserting the row if it is new."""
    now = datetime.now(timezone.utc)
    existing = db.scalar(
        select(IngredientLot).where(IngredientLot.sku == sku, IngredientLot.lot == lot)
    )
    if existing:
        existing.last_used_at = now
    else:
        db.add(IngredientLot(sku=sku, lot=lot, created_at=now, last_used_at=now))
    db.flush()


def upsert_lot(db: Session, sku: Optional[str], lot: Optional[str]) -> None:
    """
    Record that ``lot`` was used for ``sku``.

    Runs inside a SAVEPOINT; any error rolls back only the savepoint and is
    logged, never raised.
    """
    sku = clean_optional_text(sku)
    lot = clean_optional_text(lot)
    if not sku or not lot:
        return

    try:
        with db.begin_nested():
            _touch_lot(db, sku, lot)
    except Exception:
        logger.warning("Ingredient lot upsert failed", sku=sku, lot=lot, exc_info=True)


def search_lots(
    db: Session,
    sku: str,
    query: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[IngredientLot]:
    """Lots used for ``sku``, most recently used first, optionally filtered by substring."""
    if limit is None:
        limit = settings.lot_search_limit

    stmt = select(IngredientLot).where(IngredientLot.sku == sku.strip())
    term = sanitize_search_term(query or "")
    if term:
        stmt = stmt.where(IngredientLot.lot.ilike(f"%{escape_like_pattern(term)}%", escape="\\"))

    stmt = stmt.order_by(IngredientLot.last_used_at.desc(), IngredientLot.id.desc()).limit(limit)
    return list(db.scalars(stmt).all())
