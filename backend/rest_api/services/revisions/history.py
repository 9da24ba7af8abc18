"""
Recipe history: turning change descriptors into audit rows, and reading them back.

Rows are built in memory first. When the edit also created a version, every
row in the batch gets its recipe_version_id before the batch is inserted, so
history rows are never updated after insert.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import Recipe, RecipeHistory, RecipeVersion
from rest_api.services.revisions.diff import ChangeDescriptor, ChangeKind, stringify_value
from shared.config.constants import COLLECTION_LABELS, ChangeType
from shared.config.logging import revisions_logger as logger
from shared.utils.exceptions import RecipeNotFoundError, ValidationError


@dataclass(frozen=True)
class AuditContext:
    """Who is editing which recipe, and whether it happens during a production."""

    recipe_id: int
    actor_id: int
    is_production: bool = False
    production_id: Optional[int] = None

    @property
    def change_type(self) -> str:
        return ChangeType.PRODUCTION if self.is_production else ChangeType.ADMIN


def _shown(value: Optional[str]) -> str:
    return value if value else "null"


def describe(descriptor: ChangeDescriptor) -> str:
    """Human-readable sentence for one change."""
    old = stringify_value(descriptor.old_value)
    new = stringify_value(descriptor.new_value)
    child = descriptor.child or {}

    if descriptor.kind == ChangeKind.CHILD_ADDED:
        return f"Added ingredient: {child.get('name')} (SKU: {child.get('sku')})"
    if descriptor.kind == ChangeKind.CHILD_REMOVED:
        return f"Removed ingredient: {child.get('name')} (SKU: {child.get('sku')})"
    if descriptor.kind == ChangeKind.CHILD_MODIFIED:
        field = descriptor.field.split(".", 1)[-1]
        return (
            f"Updated ingredient {child.get('name')} (SKU: {child.get('sku')}): "
            f"{field} from {_shown(old)} to {_shown(new)}"
        )
    if descriptor.kind == ChangeKind.COLLECTION:
        label = COLLECTION_LABELS.get(descriptor.field, descriptor.field.replace("_", " "))
        return f"Updated {label}"
    return f"Changed {descriptor.field} from {_shown(old)} to {_shown(new)}"


class AuditRecordBuilder:
    """Builds and persists one batch of history rows for a single edit."""

    def build_records(
        self,
        descriptors: Sequence[ChangeDescriptor],
        context: AuditContext,
    ) -> list[RecipeHistory]:
        """One unsaved row per descriptor; none for an empty list."""
        production_id = context.production_id if context.is_production else None
        return [
            RecipeHistory(
                recipe_id=context.recipe_id,
                recipe_version_id=None,
                production_id=production_id,
                user_id=context.actor_id,
                change_type=context.change_type,
                field_name=d.field,
                old_value=stringify_value(d.old_value),
                new_value=stringify_value(d.new_value),
                description=describe(d),
            )
            for d in descriptors
        ]

    def attach_version(
        self,
        records: list[RecipeHistory],
        version: RecipeVersion,
        context: AuditContext,
    ) -> list[RecipeHistory]:
        """Append the version_created row and point every row of the batch at ``version``."""
        records.append(
            RecipeHistory(
                recipe_id=context.recipe_id,
                production_id=context.production_id if context.is_production else None,
                user_id=context.actor_id,
                change_type=ChangeType.VERSION_CREATED,
                field_name=None,
                old_value=None,
                new_value=None,
                description=f"Created new recipe version {version.version_number} during production",
            )
        )
        for record in records:
            record.recipe_version_id = version.id
        return records

    def persist(self, db: Session, records: list[RecipeHistory]) -> int:
        """Insert the batch in the caller's transaction. Returns the row count."""
        if not records:
            return 0
        db.add_all(records)
        db.flush()
        logger.debug("History rows written", recipe_id=records[0].recipe_id, count=len(records))
        return len(records)


def list_history(db: Session, recipe_id: int, change_type: str = "all") -> list[RecipeHistory]:
    """
    History of a recipe, newest first.

    ``change_type`` is "all", "production" or "admin". version_created rows
    only appear under "all".
    """
    if change_type not in ChangeType.FILTERS:
        raise ValidationError(
            f"Invalid history filter '{change_type}', expected one of: {', '.join(ChangeType.FILTERS)}",
            change_type=change_type,
        )
    if db.get(Recipe, recipe_id) is None:
        raise RecipeNotFoundError(recipe_id)

    stmt = select(RecipeHistory).where(RecipeHistory.recipe_id == recipe_id)
    if change_type != "all":
        stmt = stmt.where(RecipeHistory.change_type == change_type)
    stmt = stmt.order_by(RecipeHistory.created_at.desc(), RecipeHistory.id.desc())
    return list(db.scalars(stmt).all())
