"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class, TimestampMixin and shared column types
- recipe: Recipe, RecipeIngredient, RecipeOvenTemperature, RecipeMixingTime, RecipeCost
- production: Production, ProductionIngredient
- revision: RecipeVersion, RecipeHistory
- lot: IngredientLot
"""

# Base classes
from .base import Base, TimestampMixin

# Recipes
from .recipe import (
    Recipe,
    RecipeIngredient,
    RecipeOvenTemperature,
    RecipeMixingTime,
    RecipeCost,
)

# Productions
from .production import Production, ProductionIngredient

# Versions and history
from .revision import RecipeVersion, RecipeHistory

# Lot lookup
from .lot import IngredientLot

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Recipe
    "Recipe",
    "RecipeIngredient",
    "RecipeOvenTemperature",
    "RecipeMixingTime",
    "RecipeCost",
    # Production
    "Production",
    "ProductionIngredient",
    # Revision
    "RecipeVersion",
    "RecipeHistory",
    # Lot
    "IngredientLot",
]
