"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Keep the application engine off PostgreSQL while tests import the app
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import (
    Base,
    Production,
    Recipe,
    RecipeIngredient,
    RecipeMixingTime,
    RecipeOvenTemperature,
)
from shared.config.constants import ProductionStatus
from shared.infrastructure.db import enable_sqlite_savepoints, get_db
from shared.security.auth import sign_jwt


ACTOR_ID = 1
ACTOR_NAME = "Maria Rossi"


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = enable_sqlite_savepoints(
    create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    # Create all tables
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def actor_id():
    return ACTOR_ID


@pytest.fixture
def auth_headers():
    """Bearer token for the test operator."""
    token = sign_jwt({"sub": str(ACTOR_ID), "name": ACTOR_NAME})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def seed_recipe(db_session):
    """
    Recipe with two ingredients, two oven steps and one mixing step.
    """
    recipe = Recipe(
        name="Butter Cookies",
        sku="BC-001",
        waste_percent=2.5,
        water_percent=12,
        total_qty_for_recipe=100,
        temperature_celsius=180,
        time_minutes=14,
        gluten_test_done=False,
    )
    db_session.add(recipe)
    db_session.flush()

    db_session.add_all([
        RecipeIngredient(
            recipe_id=recipe.id,
            sku="FLOUR-00",
            name="Flour 00",
            qty_original=50,
            price_cost_per_kg=0.8,
            is_powder_ingredient=True,
            supplier="Molino Bianco",
            lot="L2401",
        ),
        RecipeIngredient(
            recipe_id=recipe.id,
            sku="BUTTER-82",
            name="Butter 82%",
            qty_original=30,
            price_cost_per_kg=7.5,
        ),
        RecipeOvenTemperature(recipe_id=recipe.id, temperature=180, minutes=8, order=0),
        RecipeOvenTemperature(recipe_id=recipe.id, temperature=160, minutes=6, order=1),
        RecipeMixingTime(recipe_id=recipe.id, minutes=4, speed=1, order=0),
    ])
    db_session.commit()
    db_session.refresh(recipe)
    return recipe


def _production(db_session, recipe, status):
    production = Production(
        recipe_id=recipe.id,
        user_id=ACTOR_ID,
        production_lot="TEMP",
        started_at=datetime(2024, 3, 1, 6, 0, tzinfo=timezone.utc),
        status=status,
    )
    db_session.add(production)
    db_session.commit()
    db_session.refresh(production)
    return production


@pytest.fixture
def active_production(db_session, seed_recipe):
    """In-progress production of seed_recipe."""
    return _production(db_session, seed_recipe, ProductionStatus.IN_PROGRESS)


@pytest.fixture
def completed_production(db_session, seed_recipe):
    """Finished production of seed_recipe."""
    return _production(db_session, seed_recipe, ProductionStatus.COMPLETED)


@pytest.fixture
def other_recipe(db_session):
    """A second recipe, for cross-recipe checks."""
    recipe = Recipe(name="Shortbread", waste_percent=1)
    db_session.add(recipe)
    db_session.commit()
    db_session.refresh(recipe)
    return recipe
