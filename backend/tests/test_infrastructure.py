"""
Tests for infrastructure components: correlation IDs, logging, sessions and settings.
"""

import json
import logging
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import text

from shared.config.logging import StructuredFormatter, get_logger
from shared.config.settings import Settings
from shared.infrastructure.correlation import (
    CorrelationIdFilter,
    CorrelationIdMiddleware,
    get_request_id,
    request_id_var,
)
from shared.infrastructure.db import get_db_context, safe_commit


# =============================================================================
# CorrelationIdMiddleware Tests
# =============================================================================

class TestCorrelationIdMiddleware:
    """Tests for correlation ID middleware."""

    @pytest.fixture
    def app_with_correlation(self):
        """Create a test app with correlation ID middleware."""
        app = FastAPI()
        app.add_middleware(CorrelationIdMiddleware)

        @app.get("/test")
        def test_endpoint():
            return {"request_id": get_request_id()}

        return app

    def test_generates_request_id_when_not_provided(self, app_with_correlation):
        """Should generate a new request ID when not provided."""
        client = TestClient(app_with_correlation)
        response = client.get("/test")

        request_id = response.headers.get("X-Request-ID")
        assert request_id is not None
        assert len(request_id) == 36  # UUID v4 length

    def test_request_id_visible_to_handler(self, app_with_correlation):
        """The handler sees the same ID that is echoed back."""
        client = TestClient(app_with_correlation)
        response = client.get("/test", headers={"X-Request-ID": "edit-42"})

        assert response.json() == {"request_id": "edit-42"}
        assert response.headers.get("X-Request-ID") == "edit-42"


# =============================================================================
# Logging Tests
# =============================================================================

class TestCorrelationIdFilter:
    """Tests for correlation ID logging filter."""

    def test_adds_request_id_to_log_record(self):
        filter_obj = CorrelationIdFilter()
        token = request_id_var.set("test-request-123")

        try:
            record = MagicMock()
            assert filter_obj.filter(record) is True
            assert record.request_id == "test-request-123"
        finally:
            request_id_var.reset(token)

    def test_uses_dash_when_no_request_id(self):
        filter_obj = CorrelationIdFilter()
        token = request_id_var.set("")

        try:
            record = MagicMock()
            filter_obj.filter(record)
            assert record.request_id == "-"
        finally:
            request_id_var.reset(token)


class TestStructuredLogging:
    """Keyword arguments on logger calls become structured data."""

    def test_keyword_data_reaches_formatter(self):
        logger = get_logger("tests.structured")
        records = []
        handler = logging.Handler()
        handler.emit = records.append
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

        try:
            logger.info("Version allocated", recipe_id=7, version_number=2)
        finally:
            logger.removeHandler(handler)

        assert records[0].extra_data == {"recipe_id": 7, "version_number": 2}
        payload = json.loads(StructuredFormatter().format(records[0]))
        assert payload["message"] == "Version allocated"
        assert payload["data"] == {"recipe_id": 7, "version_number": 2}


# =============================================================================
# Session helpers
# =============================================================================

class TestSafeCommit:
    """Tests for safe_commit utility."""

    def test_commits_successfully(self):
        mock_db = MagicMock()

        safe_commit(mock_db)

        mock_db.commit.assert_called_once()
        mock_db.rollback.assert_not_called()

    def test_rollbacks_and_reraises(self):
        mock_db = MagicMock()
        mock_db.commit.side_effect = RuntimeError("Database error")

        with pytest.raises(RuntimeError, match="Database error"):
            safe_commit(mock_db)

        mock_db.rollback.assert_called_once()


class TestDbContext:
    def test_yields_working_session(self):
        with get_db_context() as db:
            assert db.execute(text("SELECT 1")).scalar() == 1


# =============================================================================
# Settings
# =============================================================================

class TestSettings:
    def test_development_defaults_pass(self):
        assert Settings(environment="development").validate_production_secrets() == []

    def test_production_rejects_insecure_defaults(self):
        errors = Settings(
            environment="production",
            debug=True,
            database_url="sqlite://",
        ).validate_production_secrets()

        assert len(errors) == 3

    def test_production_with_strong_secret(self):
        settings = Settings(
            environment="production",
            debug=False,
            jwt_secret="x" * 40,
            database_url="postgresql+psycopg://app@db/recipes",
        )

        assert settings.validate_production_secrets() == []
