"""
Recipe versions: allocation, listing and comparison against the live recipe.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rest_api.models import Recipe, RecipeVersion
from rest_api.services.revisions.diff import (
    ChangeDescriptor,
    ChangeKind,
    diff_children,
    diff_opaque_collection,
    diff_scalars,
    diff_settings,
)
from rest_api.services.revisions.snapshots import (
    RecipeImage,
    build_snapshot,
    image_from_version,
    load_image,
)
from shared.config.constants import (
    DEPOSITOR_SETTINGS,
    INGREDIENT_WATCHED_FIELDS,
    MIXING_TIMES,
    OVEN_TEMPERATURES,
    RECIPE_WATCHED_FIELDS,
    STEP_KEYS,
)
from shared.config.logging import revisions_logger as logger
from shared.utils.exceptions import NotFoundError, RecipeNotFoundError, ValidationError


def allocate_version(
    db: Session,
    recipe_id: int,
    actor_id: int,
    image: RecipeImage,
) -> RecipeVersion:
    """
    Insert the next version of a recipe (max + 1, starting at 1).

    Must run inside the caller's transaction, after the recipe row has been
    locked; the unique (recipe_id, version_number) constraint backs it up.
    """
    current_max = db.scalar(
        select(func.max(RecipeVersion.version_number)).where(
            RecipeVersion.recipe_id == recipe_id
        )
    )
    next_number = (current_max or 0) + 1

    recipe_snapshot, ingredients_snapshot = build_snapshot(image)
    version = RecipeVersion(
        recipe_id=recipe_id,
        version_number=next_number,
        created_by=actor_id,
        recipe_snapshot=recipe_snapshot,
        ingredients_snapshot=ingredients_snapshot,
    )
    db.add(version)
    db.flush()

    logger.info(
        "Recipe version allocated",
        recipe_id=recipe_id,
        version_id=version.id,
        version_number=next_number,
    )
    return version


def _require_recipe(db: Session, recipe_id: int) -> Recipe:
    recipe = db.get(Recipe, recipe_id)
    if recipe is None:
        raise RecipeNotFoundError(recipe_id)
    return recipe


def list_versions(db: Session, recipe_id: int) -> list[RecipeVersion]:
    """All versions of a recipe, newest first."""
    _require_recipe(db, recipe_id)
    return list(
        db.scalars(
            select(RecipeVersion)
            .where(RecipeVersion.recipe_id == recipe_id)
            .order_by(RecipeVersion.version_number.desc())
        ).all()
    )


def get_version(db: Session, recipe_id: int, version_id: int) -> RecipeVersion:
    """
    Fetch one version of a recipe.

    Raises:
        NotFoundError: version does not exist
        ValidationError: version belongs to another recipe
    """
    version = db.get(RecipeVersion, version_id)
    if version is None:
        raise NotFoundError("Version", version_id, recipe_id=recipe_id)
    if version.recipe_id != recipe_id:
        raise ValidationError(
            "Version does not belong to this recipe",
            recipe_id=recipe_id,
            version_id=version_id,
        )
    return version


# =============================================================================
# Comparison
# =============================================================================


@dataclass
class VersionComparison:
    """Differences between a stored version (old) and the live recipe (new)."""

    version: RecipeVersion
    fields: list[ChangeDescriptor]
    ingredients_added: list[dict[str, Any]]
    ingredients_removed: list[dict[str, Any]]
    ingredients_modified: list[dict[str, Any]]
    collections: list[ChangeDescriptor]

    @property
    def has_changes(self) -> bool:
        return bool(
            self.fields
            or self.ingredients_added
            or self.ingredients_removed
            or self.ingredients_modified
            or self.collections
        )


def _group_modified(descriptors: list[ChangeDescriptor]) -> list[dict[str, Any]]:
    """Fold per-field child descriptors into one entry per ingredient."""
    grouped: dict[str, dict[str, Any]] = {}
    for d in descriptors:
        sku = d.child.get("sku") if d.child else None
        entry = grouped.setdefault(
            sku,
            {"sku": sku, "name": d.child.get("name") if d.child else None, "changes": []},
        )
        entry["changes"].append(
            {"field": d.field.split(".", 1)[-1], "old_value": d.old_value, "new_value": d.new_value}
        )
    return list(grouped.values())


def compare_version(db: Session, recipe_id: int, version_id: int) -> VersionComparison:
    """Diff a stored version against the current state of the recipe."""
    recipe = _require_recipe(db, recipe_id)
    version = get_version(db, recipe_id, version_id)

    old = image_from_version(version)
    new = load_image(db, recipe)

    children = diff_children(old.ingredients, new.ingredients, INGREDIENT_WATCHED_FIELDS)
    collections = (
        diff_opaque_collection(
            OVEN_TEMPERATURES, old.oven_temperatures, new.oven_temperatures, STEP_KEYS[OVEN_TEMPERATURES]
        )
        + diff_opaque_collection(
            MIXING_TIMES, old.mixing_times, new.mixing_times, STEP_KEYS[MIXING_TIMES]
        )
        + diff_settings(
            DEPOSITOR_SETTINGS,
            old.recipe.get(DEPOSITOR_SETTINGS),
            new.recipe.get(DEPOSITOR_SETTINGS),
        )
    )

    return VersionComparison(
        version=version,
        fields=diff_scalars(old.recipe, new.recipe, RECIPE_WATCHED_FIELDS),
        ingredients_added=[d.new_value for d in children if d.kind == ChangeKind.CHILD_ADDED],
        ingredients_removed=[d.old_value for d in children if d.kind == ChangeKind.CHILD_REMOVED],
        ingredients_modified=_group_modified(
            [d for d in children if d.kind == ChangeKind.CHILD_MODIFIED]
        ),
        collections=collections,
    )
