"""
Recipe Revision Service.

Applies one recipe edit as a single unit of work:

    validate -> mutate -> diff -> (version) -> history -> commit

Validation failures raise before anything is written. Any error after that
rolls the whole edit back; only ingredient lot bookkeeping is allowed to fail
on its own (see lots.upsert_lot).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import Boolean, Numeric, delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rest_api.models import (
    Production,
    ProductionIngredient,
    Recipe,
    RecipeCost,
    RecipeIngredient,
    RecipeMixingTime,
    RecipeOvenTemperature,
)
from rest_api.models.base import Amount
from rest_api.services.revisions.diff import (
    ChangeDescriptor,
    diff_children,
    diff_opaque_collection,
    diff_scalars,
    diff_settings,
    is_absent,
    parse_number,
)
from rest_api.services.revisions.history import AuditContext, AuditRecordBuilder
from rest_api.services.revisions.lots import upsert_lot
from rest_api.services.revisions.snapshots import RecipeImage, load_image
from rest_api.services.revisions.versions import allocate_version
from shared.config.constants import (
    DEPOSITOR_SETTINGS,
    INGREDIENT_WATCHED_FIELDS,
    MIXING_TIMES,
    OVEN_TEMPERATURES,
    RECIPE_WATCHED_FIELDS,
    STEP_KEYS,
    ProductionStatus,
)
from shared.config.logging import revisions_logger as logger
from shared.utils.exceptions import (
    DatabaseError,
    InvalidProductionContextError,
    RecipeNotFoundError,
    ValidationError,
)
from shared.utils.schemas import (
    CostOverrideInput,
    IngredientInput,
    IngredientOverrideInput,
    IngredientRef,
    RecipeEditRequest,
)
from shared.utils.validators import clean_optional_text

# Recipe columns a patch may set; depositor_settings has its own request field
_READ_ONLY_COLUMNS = frozenset({"id", "created_at", "updated_at", DEPOSITOR_SETTINGS})
EDITABLE_RECIPE_FIELDS = frozenset(
    c.name for c in Recipe.__table__.columns if c.name not in _READ_ONLY_COLUMNS
)

_TRUE_TEXT = {"true", "1", "yes"}
_FALSE_TEXT = {"false", "0", "no"}


@dataclass
class RevisionResult:
    """Outcome of a committed edit."""

    recipe: dict[str, Any]
    version_id: Optional[int]
    audit_record_count: int


def detect_changes(pre: RecipeImage, post: RecipeImage) -> list[ChangeDescriptor]:
    """Every change between two images, in history order."""
    return (
        diff_scalars(pre.recipe, post.recipe, RECIPE_WATCHED_FIELDS)
        + diff_children(pre.ingredients, post.ingredients, INGREDIENT_WATCHED_FIELDS)
        + diff_opaque_collection(
            OVEN_TEMPERATURES,
            pre.oven_temperatures,
            post.oven_temperatures,
            STEP_KEYS[OVEN_TEMPERATURES],
        )
        + diff_opaque_collection(
            MIXING_TIMES, pre.mixing_times, post.mixing_times, STEP_KEYS[MIXING_TIMES]
        )
        + diff_settings(
            DEPOSITOR_SETTINGS,
            pre.recipe.get(DEPOSITOR_SETTINGS),
            post.recipe.get(DEPOSITOR_SETTINGS),
        )
    )


class RecipeRevisionService:
    """
    Domain service for recipe edits with history and production versioning.
    """

    def __init__(self, db: Session):
        self._db = db
        self._audit = AuditRecordBuilder()

    # =========================================================================
    # Entry point
    # =========================================================================

    def submit_edit(
        self,
        recipe_id: int,
        request: RecipeEditRequest,
        actor_id: int,
    ) -> RevisionResult:
        """
        Apply an edit, record what changed and, during a production, fork a version.

        Raises:
            RecipeNotFoundError: recipe does not exist
            InvalidProductionContextError: is_production without an in-progress
                production of this recipe
            ValidationError: malformed patch or unknown ingredient
            DatabaseError: store failure (already rolled back)
        """
        production = self._validate(recipe_id, request)
        patch = self._coerce_patch(request.recipe_patch)
        context = AuditContext(
            recipe_id=recipe_id,
            actor_id=actor_id,
            is_production=request.is_production,
            production_id=production.id if production else None,
        )

        logger.info(
            "Recipe edit started",
            recipe_id=recipe_id,
            actor_id=actor_id,
            is_production=request.is_production,
            production_id=context.production_id,
        )

        try:
            recipe = self._lock_recipe(recipe_id)
            pre = load_image(self._db, recipe)

            self._apply_mutations(recipe, patch, request, production)

            self._db.flush()
            self._db.expire_all()
            post = load_image(self._db, recipe)
            descriptors = detect_changes(pre, post)

            records = self._audit.build_records(descriptors, context)
            version_id = None
            if request.is_production and descriptors:
                version = allocate_version(self._db, recipe_id, actor_id, post)
                records = self._audit.attach_version(records, version, context)
                version_id = version.id

            count = self._audit.persist(self._db, records)
            self._db.commit()
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.error("Recipe edit rolled back", recipe_id=recipe_id, exc_info=True)
            raise DatabaseError("recipe edit", recipe_id=recipe_id) from exc
        except Exception:
            self._db.rollback()
            logger.warning("Recipe edit aborted", recipe_id=recipe_id)
            raise

        logger.info(
            "Recipe edit committed",
            recipe_id=recipe_id,
            changes=len(descriptors),
            version_id=version_id,
            audit_records=count,
        )
        return RevisionResult(recipe=post.as_dict(), version_id=version_id, audit_record_count=count)

    # =========================================================================
    # Validation (no writes)
    # =========================================================================

    def _validate(self, recipe_id: int, request: RecipeEditRequest) -> Optional[Production]:
        if request.id is not None and request.id != recipe_id:
            raise ValidationError(
                "Body id does not match route id", recipe_id=recipe_id, body_id=request.id
            )

        if self._db.get(Recipe, recipe_id) is None:
            raise RecipeNotFoundError(recipe_id)

        if not request.is_production:
            return None

        production_id = request.production_id
        if production_id is None:
            raise InvalidProductionContextError(recipe_id, None, "production_id is required")

        production = self._db.get(Production, production_id)
        if production is None:
            raise InvalidProductionContextError(recipe_id, production_id, "production not found")
        if production.recipe_id != recipe_id:
            raise InvalidProductionContextError(
                recipe_id, production_id, "production belongs to another recipe"
            )
        if production.status != ProductionStatus.IN_PROGRESS:
            raise InvalidProductionContextError(
                recipe_id, production_id, f"production is {production.status}"
            )
        return production

    def _coerce_patch(self, patch: dict[str, Any]) -> dict[str, Any]:
        """Check patch keys and convert values to the column types."""
        unknown = sorted(set(patch) - EDITABLE_RECIPE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown or read-only recipe fields: {', '.join(unknown)}", fields=unknown
            )

        columns = Recipe.__table__.columns
        coerced = {}
        for name, value in patch.items():
            column = columns[name]
            if isinstance(column.type, (Amount, Numeric)):
                coerced[name] = self._coerce_number(name, value)
            elif isinstance(column.type, Boolean):
                coerced[name] = self._coerce_bool(name, value)
            else:
                coerced[name] = None if value is None else str(value)

            if coerced[name] is None and not column.nullable:
                raise ValidationError(f"Field '{name}' is required", field=name)
            if name == "name" and is_absent(coerced[name]):
                raise ValidationError("Recipe name cannot be empty", field=name)
        return coerced

    @staticmethod
    def _coerce_number(name: str, value: Any) -> Optional[float]:
        if is_absent(value):
            return None
        if isinstance(value, bool):
            raise ValidationError(f"Field '{name}' must be a number", field=name)
        number = parse_number(value)
        if number is None:
            raise ValidationError(f"Field '{name}' must be a number", field=name, value=value)
        return number

    @staticmethod
    def _coerce_bool(name: str, value: Any) -> Optional[bool]:
        if value is None:
            return None
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_TEXT:
            return True
        if text in _FALSE_TEXT:
            return False
        raise ValidationError(f"Field '{name}' must be a boolean", field=name, value=value)

    # =========================================================================
    # Mutations (inside the transaction)
    # =========================================================================

    def _lock_recipe(self, recipe_id: int) -> Recipe:
        recipe = self._db.scalar(
            select(Recipe)
            .where(Recipe.id == recipe_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if recipe is None:
            raise RecipeNotFoundError(recipe_id)
        return recipe

    def _apply_mutations(
        self,
        recipe: Recipe,
        patch: dict[str, Any],
        request: RecipeEditRequest,
        production: Optional[Production],
    ) -> None:
        for name, value in patch.items():
            setattr(recipe, name, value)

        self._remove_ingredients(recipe.id, request.ingredients_to_remove)
        self._add_ingredients(recipe.id, request.ingredients_to_add)
        self._update_ingredients(recipe.id, request.ingredients_to_update)

        steps = request.sub_collections
        if steps.oven_temperatures is not None:
            self._replace_steps(
                recipe.id,
                RecipeOvenTemperature,
                [s.model_dump() for s in steps.oven_temperatures],
            )
        if steps.mixing_times is not None:
            self._replace_steps(
                recipe.id,
                RecipeMixingTime,
                [s.model_dump() for s in steps.mixing_times],
            )

        if DEPOSITOR_SETTINGS in request.model_fields_set:
            settings_value = request.depositor_settings
            recipe.depositor_settings = (
                json.dumps(settings_value) if settings_value is not None else None
            )

        self._upsert_costs(recipe.id, request.costs)

        if request.is_production and production is not None:
            self._upsert_ingredient_overrides(recipe.id, production.id, request.ingredient_overrides)

    def _find_ingredient(self, recipe_id: int, sku: str) -> Optional[RecipeIngredient]:
        return self._db.scalar(
            select(RecipeIngredient).where(
                RecipeIngredient.recipe_id == recipe_id,
                RecipeIngredient.sku == sku.strip(),
            )
        )

    def _remove_ingredients(self, recipe_id: int, refs: list[IngredientRef]) -> None:
        if not refs:
            return
        ids = [r.id for r in refs if r.id is not None]
        skus = [r.sku.strip() for r in refs if r.id is None and r.sku]

        ingredients = self._db.scalars(
            select(RecipeIngredient).where(
                RecipeIngredient.recipe_id == recipe_id,
                or_(RecipeIngredient.id.in_(ids), RecipeIngredient.sku.in_(skus)),
            )
        ).all()
        for ingredient in ingredients:
            self._db.delete(ingredient)

        # Removed SKUs may be re-added below; the unique (recipe_id, sku) needs the delete first
        self._db.flush()

    @staticmethod
    def _ingredient_values(item: IngredientInput) -> dict[str, Any]:
        values = item.model_dump()
        values["sku"] = item.sku.strip()
        values["name"] = item.name.strip()
        for key in ("supplier", "warehouse_location", "mp_sku", "product_name", "lot"):
            values[key] = clean_optional_text(values[key])
        return values

    def _add_ingredients(self, recipe_id: int, items: list[IngredientInput]) -> None:
        for item in items:
            values = self._ingredient_values(item)
            if self._find_ingredient(recipe_id, values["sku"]) is not None:
                raise ValidationError(
                    f"Ingredient with SKU {values['sku']} already exists in this recipe",
                    recipe_id=recipe_id,
                    sku=values["sku"],
                )
            self._db.add(RecipeIngredient(recipe_id=recipe_id, **values))
            self._db.flush()
            if values["lot"]:
                upsert_lot(self._db, values["sku"], values["lot"])

    def _update_ingredients(self, recipe_id: int, items: list[IngredientInput]) -> None:
        for item in items:
            values = self._ingredient_values(item)
            ingredient = self._find_ingredient(recipe_id, values["sku"])
            if ingredient is None:
                raise ValidationError(
                    f"Ingredient with SKU {values['sku']} not found in this recipe",
                    recipe_id=recipe_id,
                    sku=values["sku"],
                )
            for key, value in values.items():
                if key != "sku":
                    setattr(ingredient, key, value)
            self._db.flush()
            if values["lot"]:
                upsert_lot(self._db, values["sku"], values["lot"])

    def _replace_steps(self, recipe_id: int, model: type, steps: list[dict[str, Any]]) -> None:
        self._db.execute(delete(model).where(model.recipe_id == recipe_id))
        for step in steps:
            self._db.add(model(recipe_id=recipe_id, **step))

    def _upsert_costs(self, recipe_id: int, costs: list[CostOverrideInput]) -> None:
        for cost in costs:
            cost_type = cost.cost_type.value
            existing = self._db.scalar(
                select(RecipeCost).where(
                    RecipeCost.recipe_id == recipe_id,
                    RecipeCost.cost_type == cost_type,
                )
            )
            if existing:
                existing.value = cost.value
            else:
                self._db.add(RecipeCost(recipe_id=recipe_id, cost_type=cost_type, value=cost.value))

    def _upsert_ingredient_overrides(
        self,
        recipe_id: int,
        production_id: int,
        overrides: list[IngredientOverrideInput],
    ) -> None:
        for override in overrides:
            ingredient = self._find_ingredient(recipe_id, override.sku)
            if ingredient is None:
                raise ValidationError(
                    f"Ingredient with SKU {override.sku.strip()} not found in this recipe",
                    recipe_id=recipe_id,
                    production_id=production_id,
                )
            values = {
                key: clean_optional_text(value)
                for key, value in override.model_dump(exclude={"sku"}).items()
            }
            existing = self._db.scalar(
                select(ProductionIngredient).where(
                    ProductionIngredient.production_id == production_id,
                    ProductionIngredient.ingredient_id == ingredient.id,
                )
            )
            if existing:
                for key, value in values.items():
                    setattr(existing, key, value)
            else:
                self._db.add(
                    ProductionIngredient(
                        production_id=production_id, ingredient_id=ingredient.id, **values
                    )
                )
