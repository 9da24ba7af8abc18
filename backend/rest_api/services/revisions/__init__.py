"""
Recipe revisions: change detection, versions, history and lot bookkeeping.

Usage:
    from rest_api.services.revisions import RecipeRevisionService

    result = RecipeRevisionService(db).submit_edit(recipe_id, request, actor_id)
"""

from rest_api.services.revisions.coordinator import (
    RecipeRevisionService,
    RevisionResult,
    detect_changes,
)
from rest_api.services.revisions.diff import (
    ChangeDescriptor,
    ChangeKind,
    diff_children,
    diff_opaque_collection,
    diff_scalars,
    diff_settings,
    values_differ,
)
from rest_api.services.revisions.history import AuditContext, AuditRecordBuilder, list_history
from rest_api.services.revisions.lots import search_lots, upsert_lot
from rest_api.services.revisions.snapshots import RecipeImage, load_image, serialize_model
from rest_api.services.revisions.versions import (
    VersionComparison,
    allocate_version,
    compare_version,
    get_version,
    list_versions,
)

__all__ = [
    # Coordinator
    "RecipeRevisionService",
    "RevisionResult",
    "detect_changes",
    # Diff engine
    "ChangeDescriptor",
    "ChangeKind",
    "diff_children",
    "diff_opaque_collection",
    "diff_scalars",
    "diff_settings",
    "values_differ",
    # History
    "AuditContext",
    "AuditRecordBuilder",
    "list_history",
    # Lots
    "search_lots",
    "upsert_lot",
    # Snapshots
    "RecipeImage",
    "load_image",
    "serialize_model",
    # Versions
    "VersionComparison",
    "allocate_version",
    "compare_version",
    "get_version",
    "list_versions",
]
