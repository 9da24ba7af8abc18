"""
Production router.
Start, finish and look up production runs of a recipe, and decode
production lots back to the run they were stamped on.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.services.domain import ProductionService
from shared.infrastructure.db import get_db
from shared.security.auth import Actor, current_actor
from shared.utils.schemas import (
    LotDecodeOutput,
    LotDecodeRequest,
    ProductionFinishRequest,
    ProductionOutput,
    ProductionStartRequest,
)


router = APIRouter(prefix="/api/recipes/{recipe_id}/production", tags=["production"])
lot_router = APIRouter(prefix="/api/production", tags=["production"])


@router.post("/start", response_model=ProductionOutput, status_code=status.HTTP_201_CREATED)
def start_production(
    recipe_id: int,
    body: ProductionStartRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
) -> ProductionOutput:
    """
    Start a production run.

    Snapshots the recipe as a new version. Fails with 409 if another run
    of the same recipe is still in progress.
    """
    body = body or ProductionStartRequest()
    production = ProductionService(db).start_production(
        recipe_id, actor.id, started_at=body.started_at, notes=body.notes
    )
    return ProductionOutput.model_validate(production)


@router.post("/{production_id}/finish", response_model=ProductionOutput)
def finish_production(
    recipe_id: int,
    production_id: int,
    body: ProductionFinishRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
) -> ProductionOutput:
    """Finish an in-progress run and assign its lot code."""
    body = body or ProductionFinishRequest()
    production = ProductionService(db).finish_production(
        recipe_id,
        production_id,
        actor.id,
        operator_name=actor.name or "",
        finished_at=body.finished_at,
        notes=body.notes,
    )
    return ProductionOutput.model_validate(production)


@router.get("/active", response_model=ProductionOutput | None)
def get_active_production(
    recipe_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
) -> ProductionOutput | None:
    """The in-progress run of the recipe, or null."""
    production = ProductionService(db).get_active_production(recipe_id)
    return ProductionOutput.model_validate(production) if production else None


@lot_router.post("/lot-decode", response_model=LotDecodeOutput)
def decode_production_lot(
    body: LotDecodeRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
) -> LotDecodeOutput:
    """
    Decode a production lot.

    Returns the recipe and operator initials and the start/finish times held
    in the lot, plus the completed production it matches. Without a match,
    recipes whose initials fit are listed in possible_recipes.
    """
    result = ProductionService(db).decode_lot(body.lot)
    production = result.production
    return LotDecodeOutput(
        lot=result.lot,
        recipe_initials=result.recipe_initials,
        operator_initials=result.operator_initials,
        started_at=result.started_at,
        finished_at=result.finished_at,
        production_id=production.id if production else None,
        recipe_id=production.recipe_id if production else None,
        recipe_name=result.recipe_name,
        user_id=production.user_id if production else None,
        possible_recipes=result.possible_recipes,
    )
