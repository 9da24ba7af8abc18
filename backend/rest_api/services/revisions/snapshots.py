"""
Recipe images: plain-dict reads of a recipe and everything it owns.

An image is what the diff engine compares and what a version stores.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import (
    Recipe,
    RecipeIngredient,
    RecipeMixingTime,
    RecipeOvenTemperature,
    RecipeVersion,
)
from shared.config.constants import MIXING_TIMES, OVEN_TEMPERATURES, STEP_KEYS
from shared.utils.exceptions import InternalError


def serialize_model(obj: Any, exclude: Optional[list[str]] = None) -> dict:
    """
    Serialize a SQLAlchemy model to a dictionary.

    Args:
        obj: SQLAlchemy model instance
        exclude: Fields to exclude from serialization

    Returns:
        Dictionary representation of the model
    """
    if exclude is None:
        exclude = []

    result = {}
    for column in obj.__table__.columns:
        if column.name in exclude:
            continue
        value = getattr(obj, column.name)
        # Convert datetime to ISO string
        if isinstance(value, datetime):
            value = value.isoformat()
        result[column.name] = value

    return result


@dataclass
class RecipeImage:
    """Read-only view of a recipe at one instant."""

    recipe: dict[str, Any]
    ingredients: list[dict[str, Any]] = field(default_factory=list)
    oven_temperatures: list[dict[str, Any]] = field(default_factory=list)
    mixing_times: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            **self.recipe,
            "ingredients": self.ingredients,
            OVEN_TEMPERATURES: self.oven_temperatures,
            MIXING_TIMES: self.mixing_times,
        }


def _step_dict(step: Any, keys: tuple[str, ...]) -> dict[str, Any]:
    return {key: getattr(step, key) for key in keys}


def load_image(db: Session, recipe: Recipe) -> RecipeImage:
    """Read the recipe row and its children from the session as dicts."""
    ingredients = db.scalars(
        select(RecipeIngredient)
        .where(RecipeIngredient.recipe_id == recipe.id)
        .order_by(RecipeIngredient.id)
    ).all()
    oven_steps = db.scalars(
        select(RecipeOvenTemperature)
        .where(RecipeOvenTemperature.recipe_id == recipe.id)
        .order_by(RecipeOvenTemperature.order, RecipeOvenTemperature.id)
    ).all()
    mixing_steps = db.scalars(
        select(RecipeMixingTime)
        .where(RecipeMixingTime.recipe_id == recipe.id)
        .order_by(RecipeMixingTime.order, RecipeMixingTime.id)
    ).all()

    return RecipeImage(
        recipe=serialize_model(recipe),
        ingredients=[serialize_model(i) for i in ingredients],
        oven_temperatures=[_step_dict(s, STEP_KEYS[OVEN_TEMPERATURES]) for s in oven_steps],
        mixing_times=[_step_dict(s, STEP_KEYS[MIXING_TIMES]) for s in mixing_steps],
    )


# =============================================================================
# Version snapshots
# =============================================================================


def build_snapshot(image: RecipeImage) -> tuple[str, str]:
    """JSON texts stored on a version: (recipe with step lists, ingredients)."""
    recipe_snapshot = {
        **image.recipe,
        OVEN_TEMPERATURES: image.oven_temperatures,
        MIXING_TIMES: image.mixing_times,
    }
    return (
        json.dumps(recipe_snapshot, default=str),
        json.dumps(image.ingredients, default=str),
    )


def image_from_version(version: RecipeVersion) -> RecipeImage:
    """Rebuild an image from a stored version."""
    try:
        recipe = json.loads(version.recipe_snapshot)
        ingredients = json.loads(version.ingredients_snapshot)
    except ValueError as exc:
        raise InternalError(
            "Stored recipe version is not valid JSON", version_id=version.id
        ) from exc

    oven = recipe.pop(OVEN_TEMPERATURES, None) or []
    mixing = recipe.pop(MIXING_TIMES, None) or []
    return RecipeImage(
        recipe=recipe,
        ingredients=list(ingredients or []),
        oven_temperatures=list(oven),
        mixing_times=list(mixing),
    )
