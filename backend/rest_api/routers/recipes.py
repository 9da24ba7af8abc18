"""
Recipes router.
Recipe edits with change history, plus version listing and comparison.
"""

import json

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rest_api.services.revisions import (
    RecipeRevisionService,
    compare_version,
    get_version,
    list_history,
    list_versions,
)
from rest_api.services.revisions.diff import ChangeDescriptor
from shared.config.logging import rest_api_logger as logger
from shared.infrastructure.db import get_db
from shared.security.auth import Actor, current_actor
from shared.utils.schemas import (
    FieldChangeOutput,
    HistoryEntryOutput,
    HistoryFilter,
    IngredientChangeOutput,
    RecipeEditRequest,
    RecipeEditResponse,
    VersionComparisonOutput,
    VersionDetailOutput,
    VersionSummaryOutput,
)


router = APIRouter(prefix="/api/recipes", tags=["recipes"])


def _field_change(descriptor: ChangeDescriptor) -> FieldChangeOutput:
    return FieldChangeOutput(
        field=descriptor.field,
        old_value=descriptor.old_value,
        new_value=descriptor.new_value,
    )


# =============================================================================
# Edit
# =============================================================================


@router.put("/{recipe_id}", response_model=RecipeEditResponse)
def update_recipe(
    recipe_id: int,
    body: RecipeEditRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
) -> RecipeEditResponse:
    """
    Apply an edit to a recipe.

    Every detected change is written to the recipe history. When the edit
    is made during an in-progress production (is_production + production_id)
    and changes something, a new recipe version is created as well.
    """
    result = RecipeRevisionService(db).submit_edit(recipe_id, body, actor.id)
    logger.info(
        "Recipe updated",
        recipe_id=recipe_id,
        user_id=actor.id,
        version_id=result.version_id,
        audit_records=result.audit_record_count,
    )
    return RecipeEditResponse(
        recipe=result.recipe,
        version_id=result.version_id,
        audit_record_count=result.audit_record_count,
    )


# =============================================================================
# History
# =============================================================================


@router.get("/{recipe_id}/history", response_model=list[HistoryEntryOutput])
def get_recipe_history(
    recipe_id: int,
    type: HistoryFilter = Query(default="all"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
) -> list[HistoryEntryOutput]:
    """Change history of a recipe, newest first."""
    entries = list_history(db, recipe_id, type)
    return [HistoryEntryOutput.model_validate(e) for e in entries]


# =============================================================================
# Versions
# =============================================================================


@router.get("/{recipe_id}/versions", response_model=list[VersionSummaryOutput])
def get_recipe_versions(
    recipe_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
) -> list[VersionSummaryOutput]:
    """All versions of a recipe, newest first."""
    return [VersionSummaryOutput.model_validate(v) for v in list_versions(db, recipe_id)]


@router.get("/{recipe_id}/versions/{version_id}", response_model=VersionDetailOutput)
def get_recipe_version(
    recipe_id: int,
    version_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
) -> VersionDetailOutput:
    """One version with its parsed snapshots."""
    version = get_version(db, recipe_id, version_id)
    return VersionDetailOutput(
        id=version.id,
        recipe_id=version.recipe_id,
        version_number=version.version_number,
        created_by=version.created_by,
        created_at=version.created_at,
        recipe_snapshot=json.loads(version.recipe_snapshot),
        ingredients_snapshot=json.loads(version.ingredients_snapshot),
    )


@router.get(
    "/{recipe_id}/versions/{version_id}/compare",
    response_model=VersionComparisonOutput,
)
def compare_recipe_version(
    recipe_id: int,
    version_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(current_actor),
) -> VersionComparisonOutput:
    """Differences between a stored version and the current recipe."""
    comparison = compare_version(db, recipe_id, version_id)
    return VersionComparisonOutput(
        version_id=comparison.version.id,
        version_number=comparison.version.version_number,
        has_changes=comparison.has_changes,
        fields=[_field_change(d) for d in comparison.fields],
        ingredients_added=comparison.ingredients_added,
        ingredients_removed=comparison.ingredients_removed,
        ingredients_modified=[
            IngredientChangeOutput(
                sku=entry["sku"],
                name=entry["name"],
                changes=[FieldChangeOutput(**change) for change in entry["changes"]],
            )
            for entry in comparison.ingredients_modified
        ],
        collections=[_field_change(d) for d in comparison.collections],
    )
