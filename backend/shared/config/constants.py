"""
Centralized constants for the backend application.
Avoids magic strings for statuses, change types and watched fields.

Usage:
    from shared.config.constants import ChangeType, ProductionStatus, RECIPE_WATCHED_FIELDS

    if production.status == ProductionStatus.IN_PROGRESS:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# Entity Status Constants
# =============================================================================


class ProductionStatus:
    """Production run status constants."""

    IN_PROGRESS: Final[str] = "in_progress"
    COMPLETED: Final[str] = "completed"

    ALL: Final[list[str]] = [IN_PROGRESS, COMPLETED]


class ChangeType:
    """Recipe history change types."""

    ADMIN: Final[str] = "admin"
    PRODUCTION: Final[str] = "production"
    VERSION_CREATED: Final[str] = "version_created"

    ALL: Final[list[str]] = [ADMIN, PRODUCTION, VERSION_CREATED]
    # Values accepted by the history filter
    FILTERS: Final[list[str]] = ["all", ADMIN, PRODUCTION]


class CostType(str, Enum):
    """Recipe-specific cost override types."""

    HOURLY_LABOR = "hourly_labor"
    BAKING_PAPER = "baking_paper"
    RELEASE_AGENT = "release_agent"
    BAG = "bag"
    CARTON = "carton"
    LABEL = "label"
    DEPOSITOR_LEASING = "depositor_leasing"
    OVEN_AMORTIZATION = "oven_amortization"
    TRAY_AMORTIZATION = "tray_amortization"
    ELECTRICITY_COST = "electricity_cost"
    GAS_COST = "gas_cost"


# =============================================================================
# Change Detection
# =============================================================================

# Two numeric values closer than this are considered equal
NUMERIC_TOLERANCE: Final[float] = 0.0001

# Recipe columns compared on every edit, in audit order
RECIPE_WATCHED_FIELDS: Final[tuple[str, ...]] = (
    "name",
    "notes",
    "total_qty_for_recipe",
    "waste_percent",
    "water_percent",
    "package_weight",
    "number_of_packages",
    "time_minutes",
    "temperature_celsius",
    "height_cm",
    "width_cm",
    "length_cm",
    "cookie_weight_cooked_g",
    "mixer_capacity_kg",
    "trays_capacity_kg",
    "depositor_capacity_kg",
    "trays_per_oven_load",
    "steam_minutes",
    "valve_open_minutes",
    "valve_close_minutes",
    "gluten_test_done",
)

# Ingredient columns compared between matched ingredients
INGREDIENT_WATCHED_FIELDS: Final[tuple[str, ...]] = (
    "name",
    "qty_original",
    "price_cost_per_kg",
    "is_powder_ingredient",
    "supplier",
    "warehouse_location",
    "mp_sku",
    "product_name",
    "lot",
    "done",
    "check_glutine",
)

# Ordered sub-collections: name -> element keys kept for comparison and snapshots
OVEN_TEMPERATURES: Final[str] = "oven_temperatures"
MIXING_TIMES: Final[str] = "mixing_times"
DEPOSITOR_SETTINGS: Final[str] = "depositor_settings"

STEP_KEYS: Final[dict[str, tuple[str, ...]]] = {
    OVEN_TEMPERATURES: ("temperature", "minutes", "order"),
    MIXING_TIMES: ("minutes", "speed", "order"),
}

COLLECTION_LABELS: Final[dict[str, str]] = {
    OVEN_TEMPERATURES: "oven temperatures",
    MIXING_TIMES: "mixing times",
    DEPOSITOR_SETTINGS: "depositor settings",
}

# Field name recorded for whole-ingredient additions and removals
INGREDIENT_FIELD: Final[str] = "ingredient"

# Placeholder lot assigned when a production starts; replaced on finish
PENDING_PRODUCTION_LOT: Final[str] = "TEMP"


# =============================================================================
# Error Codes (mapped to HTTP responses by the exception handler)
# =============================================================================


class ErrorCode:
    """Machine-readable error codes returned with every domain error."""

    NOT_FOUND: Final[str] = "NOT_FOUND"
    VALIDATION_ERROR: Final[str] = "VALIDATION_ERROR"
    INVALID_PRODUCTION_CONTEXT: Final[str] = "INVALID_PRODUCTION_CONTEXT"
    CONFLICT: Final[str] = "CONFLICT"
    UNAUTHORIZED: Final[str] = "UNAUTHORIZED"
    INTERNAL: Final[str] = "INTERNAL"

