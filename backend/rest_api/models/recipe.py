"""
Recipe Models: Recipe, RecipeIngredient, RecipeOvenTemperature, RecipeMixingTime, RecipeCost.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Amount, BigIntPK, Base, TimestampMixin

if TYPE_CHECKING:
    from .production import Production
    from .revision import RecipeHistory, RecipeVersion


class Recipe(TimestampMixin, Base):
    """
    Production recipe for a baked product.

    Holds the dough, baking and packaging parameters. Ingredients, oven
    temperature steps, mixing steps and cost overrides hang off it.
    Every edit is diffed and logged to recipe_history; edits made during a
    production run also fork an immutable RecipeVersion.
    """

    __tablename__ = "recipe"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(100))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    # Batch and dough
    total_qty_for_recipe: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    waste_percent: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    water_percent: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    water_temperature_c: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    final_dough_temperature_c: Mapped[Optional[float]] = mapped_column(Amount, default=0)

    # Packaging
    package_weight: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    number_of_packages: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    box_capacity: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    cart_capacity: Mapped[Optional[float]] = mapped_column(Amount, default=0)

    # Baking
    time_minutes: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    temperature_celsius: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    steam_minutes: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    valve_open_minutes: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    valve_close_minutes: Mapped[Optional[float]] = mapped_column(Amount, default=0)

    # Product dimensions
    height_cm: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    width_cm: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    length_cm: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    cookie_weight_cooked_g: Mapped[Optional[float]] = mapped_column(Amount, default=0)

    # Equipment capacities
    mixer_capacity_kg: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    trays_capacity_kg: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    depositor_capacity_kg: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    trays_per_oven_load: Mapped[Optional[float]] = mapped_column(Amount, default=0)

    # Quality and environment
    gluten_test_done: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    laboratory_humidity_percent: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    external_temperature_c: Mapped[Optional[float]] = mapped_column(Amount, default=0)

    # Pricing
    margin_percent: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    selling_price: Mapped[Optional[float]] = mapped_column(Amount, default=0)

    # Depositor machine settings (JSON object, free-form)
    depositor_settings: Mapped[Optional[str]] = mapped_column(Text)

    # Relationships (cascade only; the revision engine queries children explicitly)
    ingredients: Mapped[list["RecipeIngredient"]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan", passive_deletes=True
    )
    oven_temperatures: Mapped[list["RecipeOvenTemperature"]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="RecipeOvenTemperature.order",
    )
    mixing_times: Mapped[list["RecipeMixingTime"]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="RecipeMixingTime.order",
    )
    costs: Mapped[list["RecipeCost"]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True
    )
    productions: Mapped[list["Production"]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan", passive_deletes=True
    )
    versions: Mapped[list["RecipeVersion"]] = relationship(
        back_populates="recipe", cascade="all, delete-orphan", passive_deletes=True
    )
    history: Mapped[list["RecipeHistory"]] = relationship(
        cascade="all, delete-orphan", passive_deletes=True
    )


class RecipeIngredient(Base):
    """
    Ingredient line of a recipe.

    Identified across edits by its SKU (unique per recipe), not by id: an
    edit may delete a line and insert it again.
    """

    __tablename__ = "recipe_ingredient"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("recipe.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    qty_original: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    price_cost_per_kg: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    is_powder_ingredient: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Sourcing
    supplier: Mapped[Optional[str]] = mapped_column(String(255))
    warehouse_location: Mapped[Optional[str]] = mapped_column(String(255))
    mp_sku: Mapped[Optional[str]] = mapped_column(String(100))  # raw material SKU
    product_name: Mapped[Optional[str]] = mapped_column(String(255))
    lot: Mapped[Optional[str]] = mapped_column(String(255))

    # Nutrition per 100 g (enriched from the product catalog before saving)
    kcal: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    kj: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    protein: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    carbo: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    sugar: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    fat: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    saturi: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    fiber: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    salt: Mapped[Optional[float]] = mapped_column(Amount, default=0)
    polioli: Mapped[Optional[float]] = mapped_column(Amount, default=0)

    # Checklist flags used on the production floor
    done: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    check_glutine: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("recipe_id", "sku", name="uq_recipe_ingredient_sku"),
    )

    recipe: Mapped["Recipe"] = relationship(back_populates="ingredients")


class RecipeOvenTemperature(Base):
    """One step of the baking curve. Replaced wholesale on every edit."""

    __tablename__ = "recipe_oven_temperature"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("recipe.id", ondelete="CASCADE"), nullable=False, index=True
    )
    temperature: Mapped[float] = mapped_column(Amount, nullable=False)
    minutes: Mapped[float] = mapped_column(Amount, nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class RecipeMixingTime(Base):
    """One mixer step (duration and speed). Replaced wholesale on every edit."""

    __tablename__ = "recipe_mixing_time"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("recipe.id", ondelete="CASCADE"), nullable=False, index=True
    )
    minutes: Mapped[float] = mapped_column(Amount, nullable=False)
    speed: Mapped[float] = mapped_column(Amount, nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class RecipeCost(TimestampMixin, Base):
    """Recipe-specific override of a standard cost, one row per cost type."""

    __tablename__ = "recipe_cost"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    recipe_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("recipe.id", ondelete="CASCADE"), nullable=False
    )
    cost_type: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[float] = mapped_column(Amount, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("recipe_id", "cost_type", name="uq_recipe_cost_type"),
        Index("ix_recipe_cost_recipe", "recipe_id"),
        Index("ix_recipe_cost_type", "cost_type"),
    )
