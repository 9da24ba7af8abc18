"""
Domain Services - Application Layer.

Services contain business logic and own the transaction boundary.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import ProductionService

    # In router
    service = ProductionService(db)
    production = service.start_production(recipe_id, actor.id)
"""

from .production_service import LotDecodeResult, ProductionService

__all__ = [
    "LotDecodeResult",
    "ProductionService",
]
