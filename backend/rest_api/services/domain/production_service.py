"""
Production Domain Service.

Starts and finishes production runs of a recipe. Starting a run snapshots
the recipe as a new version; finishing it stamps the production lot code,
which can later be decoded back to the run it came from.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rest_api.models import Production, Recipe
from rest_api.services.revisions.snapshots import load_image
from rest_api.services.revisions.versions import allocate_version
from shared.config.constants import PENDING_PRODUCTION_LOT, ProductionStatus
from shared.config.logging import production_logger as logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import (
    ConflictError,
    DatabaseError,
    InvalidStateError,
    NotFoundError,
    RecipeNotFoundError,
    ValidationError,
)
from shared.utils.lot_code import (
    LOT_TIME_SPAN,
    decode_production_lot,
    generate_production_lot,
    initials,
    is_valid_lot_format,
)

# Lot times are whole minutes; stored times may lie up to a minute either side
LOT_MATCH_TOLERANCE = timedelta(minutes=1)
MAX_RECIPE_SUGGESTIONS = 10


@dataclass
class LotDecodeResult:
    """A decoded lot and, when found, the completed production it belongs to."""

    lot: str
    recipe_initials: str
    operator_initials: str
    started_at: datetime
    finished_at: datetime
    production: Production | None = None
    recipe_name: str | None = None
    possible_recipes: list[str] = field(default_factory=list)


class ProductionService:
    """
    Domain service for production runs.

    At most one run per recipe is in progress at a time.
    """

    def __init__(self, db: Session):
        self._db = db

    def get_active_production(self, recipe_id: int) -> Production | None:
        """The in-progress run of a recipe, if any."""
        if self._db.get(Recipe, recipe_id) is None:
            raise RecipeNotFoundError(recipe_id)
        return self._db.scalar(
            select(Production)
            .where(
                Production.recipe_id == recipe_id,
                Production.status == ProductionStatus.IN_PROGRESS,
            )
            .order_by(Production.started_at.desc())
        )

    def start_production(
        self,
        recipe_id: int,
        actor_id: int,
        started_at: datetime | None = None,
        notes: str | None = None,
    ) -> Production:
        """
        Start a run from the current state of the recipe.

        Raises ConflictError if another run of the recipe is still in progress.
        """
        recipe = self._db.scalar(
            select(Recipe).where(Recipe.id == recipe_id).with_for_update()
        )
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)

        active = self.get_active_production(recipe_id)
        if active is not None:
            raise ConflictError(
                "There is already an active production for this recipe",
                recipe_id=recipe_id,
                production_id=active.id,
            )

        try:
            version = allocate_version(self._db, recipe_id, actor_id, load_image(self._db, recipe))
            production = Production(
                recipe_id=recipe_id,
                recipe_version_id=version.id,
                user_id=actor_id,
                production_lot=PENDING_PRODUCTION_LOT,
                started_at=started_at or datetime.now(timezone.utc),
                status=ProductionStatus.IN_PROGRESS,
                notes=notes,
            )
            self._db.add(production)
            safe_commit(self._db)
        except SQLAlchemyError as exc:
            raise DatabaseError("production start", recipe_id=recipe_id) from exc

        self._db.refresh(production)
        logger.info(
            "Production started",
            recipe_id=recipe_id,
            production_id=production.id,
            version_id=version.id,
            user_id=actor_id,
        )
        return production

    def finish_production(
        self,
        recipe_id: int,
        production_id: int,
        actor_id: int,
        operator_name: str,
        finished_at: datetime | None = None,
        notes: str | None = None,
    ) -> Production:
        """
        Complete an in-progress run and assign its lot code.

        Raises:
            NotFoundError: no such production for this recipe
            InvalidStateError: production is not in progress
        """
        production = self._db.scalar(
            select(Production).where(
                Production.id == production_id,
                Production.recipe_id == recipe_id,
            )
        )
        if production is None:
            raise NotFoundError("Production", production_id, recipe_id=recipe_id)
        if production.status != ProductionStatus.IN_PROGRESS:
            raise InvalidStateError(
                "Production",
                production.status,
                [ProductionStatus.IN_PROGRESS],
                production_id=production_id,
            )

        recipe = self._db.get(Recipe, recipe_id)
        finished_at = finished_at or datetime.now(timezone.utc)
        production.production_lot = generate_production_lot(
            recipe.name, operator_name, production.started_at, finished_at
        )
        production.finished_at = finished_at
        production.status = ProductionStatus.COMPLETED
        if notes is not None:
            production.notes = notes

        try:
            safe_commit(self._db)
        except SQLAlchemyError as exc:
            raise DatabaseError("production finish", production_id=production_id) from exc

        self._db.refresh(production)
        logger.info(
            "Production finished",
            recipe_id=recipe_id,
            production_id=production_id,
            production_lot=production.production_lot,
            user_id=actor_id,
        )
        return production

    # =========================================================================
    # Lot decoding
    # =========================================================================

    def decode_lot(self, lot: str | None) -> LotDecodeResult:
        """
        Decode a production lot and find the completed run it was stamped on.

        A run matches when its start and finish are each within a minute of
        the decoded times. Without a match, recipes whose initials fit the
        lot are suggested instead.

        Raises:
            ValidationError: empty or malformed lot
        """
        code = (lot or "").strip().upper()
        if not code:
            raise ValidationError("Lot is required")
        decoded = decode_production_lot(code) if is_valid_lot_format(code) else None
        if decoded is None:
            raise ValidationError(
                "Invalid lot format. Lot must be 12 alphanumeric characters.", lot=code
            )

        started_at, finished_at = decoded.started_at, decoded.finished_at
        if finished_at < started_at:
            # Finish time wrapped past the end of the span
            finished_at += LOT_TIME_SPAN
        result = LotDecodeResult(
            lot=code,
            recipe_initials=decoded.recipe_initials,
            operator_initials=decoded.operator_initials,
            started_at=started_at,
            finished_at=finished_at,
        )

        latest = datetime.now(timezone.utc) + LOT_MATCH_TOLERANCE
        while started_at <= latest:
            production = self._find_completed_production(started_at, finished_at)
            if production is not None:
                recipe = self._db.get(Recipe, production.recipe_id)
                result.started_at, result.finished_at = started_at, finished_at
                result.production = production
                result.recipe_name = recipe.name if recipe else None
                logger.info("Lot decoded", lot=code, production_id=production.id)
                return result
            started_at += LOT_TIME_SPAN
            finished_at += LOT_TIME_SPAN

        result.possible_recipes = self._recipes_with_initials(decoded.recipe_initials)
        logger.info("Lot decoded without a matching production", lot=code)
        return result

    def _find_completed_production(
        self, started_at: datetime, finished_at: datetime
    ) -> Production | None:
        return self._db.scalar(
            select(Production)
            .where(
                Production.status == ProductionStatus.COMPLETED,
                Production.started_at.between(
                    started_at - LOT_MATCH_TOLERANCE, started_at + LOT_MATCH_TOLERANCE
                ),
                Production.finished_at.between(
                    finished_at - LOT_MATCH_TOLERANCE, finished_at + LOT_MATCH_TOLERANCE
                ),
            )
            .order_by(Production.id)
            .limit(1)
        )

    def _recipes_with_initials(self, recipe_initials: str) -> list[str]:
        names = self._db.scalars(select(Recipe.name).order_by(Recipe.name)).all()
        return [name for name in names if initials(name) == recipe_initials][
            :MAX_RECIPE_SUGGESTIONS
        ]
