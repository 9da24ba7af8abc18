"""
Ingredient lots router.
Lot autocomplete for the recipe editor.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rest_api.services.revisions import search_lots
from shared.infrastructure.db import get_db
from shared.security.auth import Actor, current_actor
from shared.utils.schemas import LotOutput


router = APIRouter(prefix="/api/ingredient-lots", tags=["ingredient-lots"])


@router.get("", response_model=list[LotOutput])
def list_ingredient_lots(
    sku: str = Query(..., min_length=1, max_length=100),
    q: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
) -> list[LotOutput]:
    """Lots previously used for an ingredient SKU, most recent first."""
    return [LotOutput.model_validate(lot) for lot in search_lots(db, sku, q)]
