"""
Services module for business logic.

- domain/: Application services (production runs)
- revisions/: Recipe edit pipeline (diff, versions, history, lots)

Usage:
    from rest_api.services import RecipeRevisionService, ProductionService

    result = RecipeRevisionService(db).submit_edit(recipe_id, request, actor_id)
"""

from .domain import ProductionService
from .revisions import RecipeRevisionService, RevisionResult

__all__ = [
    "ProductionService",
    "RecipeRevisionService",
    "RevisionResult",
]
