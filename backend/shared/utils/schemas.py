"""
Shared Pydantic schemas used across the application.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shared.config.constants import CostType


# =============================================================================
# Common Types
# =============================================================================

ProductionStatusValue = Literal["in_progress", "completed"]
ChangeTypeValue = Literal["admin", "production", "version_created"]
HistoryFilter = Literal["all", "admin", "production"]
ScalarValue = str | int | float | bool | None


# =============================================================================
# Recipe Edit Schemas
# =============================================================================


class IngredientInput(BaseModel):
    """Ingredient line as sent by the recipe editor (nutrition already enriched)."""

    model_config = ConfigDict(extra="ignore")

    sku: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    qty_original: float = 0
    price_cost_per_kg: float = 0
    is_powder_ingredient: bool = False
    supplier: str | None = Field(default=None, max_length=255)
    warehouse_location: str | None = Field(default=None, max_length=255)
    mp_sku: str | None = Field(default=None, max_length=100)
    product_name: str | None = Field(default=None, max_length=255)
    lot: str | None = Field(default=None, max_length=255)
    done: bool = False
    check_glutine: bool = False

    # Nutrition per 100 g
    kcal: float = 0
    kj: float = 0
    protein: float = 0
    carbo: float = 0
    sugar: float = 0
    fat: float = 0
    saturi: float = 0
    fiber: float = 0
    salt: float = 0
    polioli: float = 0


class IngredientRef(BaseModel):
    """Ingredient to remove, by SKU or by row id."""

    id: int | None = None
    sku: str | None = None

    @model_validator(mode="after")
    def _require_key(self) -> "IngredientRef":
        if self.id is None and not (self.sku and self.sku.strip()):
            raise ValueError("either id or sku is required")
        return self


class OvenTemperatureStep(BaseModel):
    temperature: float
    minutes: float
    order: int = 0


class MixingTimeStep(BaseModel):
    minutes: float
    speed: float
    order: int = 0


class OrderedSubCollections(BaseModel):
    """Replacement step lists. A list that is None is left untouched; [] clears it."""

    oven_temperatures: list[OvenTemperatureStep] | None = None
    mixing_times: list[MixingTimeStep] | None = None


class CostOverrideInput(BaseModel):
    cost_type: CostType
    value: float = Field(ge=0)


class IngredientOverrideInput(BaseModel):
    """Per-production override of an ingredient's sourcing data, keyed by SKU."""

    sku: str = Field(min_length=1, max_length=100)
    lot: str | None = Field(default=None, max_length=255)
    product_name_override: str | None = Field(default=None, max_length=255)
    mp_sku_override: str | None = Field(default=None, max_length=100)
    supplier_override: str | None = Field(default=None, max_length=255)
    warehouse_location_override: str | None = Field(default=None, max_length=255)


class RecipeEditRequest(BaseModel):
    """
    Body of PUT /api/recipes/{id}.

    recipe_patch holds recipe column values; ingredient updates are matched by SKU.
    """

    id: int | None = None  # must match the route id when sent
    recipe_patch: dict[str, ScalarValue] = Field(default_factory=dict)
    ingredients_to_add: list[IngredientInput] = Field(default_factory=list)
    ingredients_to_remove: list[IngredientRef] = Field(default_factory=list)
    ingredients_to_update: list[IngredientInput] = Field(default_factory=list)
    sub_collections: OrderedSubCollections = Field(default_factory=OrderedSubCollections)
    depositor_settings: dict[str, Any] | None = None  # only applied when sent
    costs: list[CostOverrideInput] = Field(default_factory=list)
    is_production: bool = False
    production_id: int | None = None
    ingredient_overrides: list[IngredientOverrideInput] = Field(default_factory=list)


class RecipeEditResponse(BaseModel):
    recipe: dict[str, Any]
    version_id: int | None = None
    audit_record_count: int


# =============================================================================
# History and Version Schemas
# =============================================================================


class HistoryEntryOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipe_id: int
    recipe_version_id: int | None = None
    production_id: int | None = None
    user_id: int
    change_type: ChangeTypeValue
    field_name: str | None = None
    old_value: str | None = None
    new_value: str | None = None
    description: str
    created_at: datetime


class VersionSummaryOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipe_id: int
    version_number: int
    created_by: int
    created_at: datetime


class VersionDetailOutput(VersionSummaryOutput):
    recipe_snapshot: dict[str, Any]
    ingredients_snapshot: list[dict[str, Any]]


class FieldChangeOutput(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class IngredientChangeOutput(BaseModel):
    sku: str | None = None
    name: str | None = None
    changes: list[FieldChangeOutput] = Field(default_factory=list)


class VersionComparisonOutput(BaseModel):
    version_id: int
    version_number: int
    has_changes: bool
    fields: list[FieldChangeOutput] = Field(default_factory=list)
    ingredients_added: list[dict[str, Any]] = Field(default_factory=list)
    ingredients_removed: list[dict[str, Any]] = Field(default_factory=list)
    ingredients_modified: list[IngredientChangeOutput] = Field(default_factory=list)
    collections: list[FieldChangeOutput] = Field(default_factory=list)


# =============================================================================
# Production Schemas
# =============================================================================


class ProductionStartRequest(BaseModel):
    started_at: datetime | None = None
    notes: str | None = Field(default=None, max_length=2000)


class ProductionFinishRequest(BaseModel):
    finished_at: datetime | None = None
    notes: str | None = Field(default=None, max_length=2000)


class ProductionOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipe_id: int
    recipe_version_id: int | None = None
    user_id: int
    production_lot: str
    started_at: datetime
    finished_at: datetime | None = None
    status: ProductionStatusValue
    notes: str | None = None


class LotDecodeRequest(BaseModel):
    lot: str = Field(default="", max_length=50)


class LotDecodeOutput(BaseModel):
    """Decoded lot plus the production it was stamped on, when one matches."""

    lot: str
    recipe_initials: str
    operator_initials: str
    started_at: datetime
    finished_at: datetime
    production_id: int | None = None
    recipe_id: int | None = None
    recipe_name: str | None = None
    user_id: int | None = None
    # Filled only when no production matches
    possible_recipes: list[str] = Field(default_factory=list)


# =============================================================================
# Ingredient Lot Schemas
# =============================================================================


class LotOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sku: str
    lot: str
    last_used_at: datetime
