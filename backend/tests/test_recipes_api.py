"""
Tests for the recipe, production and ingredient lot endpoints.
"""

import pytest

from rest_api.models import IngredientLot
from shared.security.auth import sign_jwt


class TestAuthentication:
    def test_missing_token(self, client, seed_recipe):
        response = client.get(f"/api/recipes/{seed_recipe.id}/history")

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_invalid_token(self, client, seed_recipe):
        response = client.get(
            f"/api/recipes/{seed_recipe.id}/history",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401

    def test_non_numeric_subject(self, client, seed_recipe):
        token = sign_jwt({"sub": "maria"})

        response = client.get(
            f"/api/recipes/{seed_recipe.id}/history",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401

    def test_expired_token(self, client, seed_recipe):
        token = sign_jwt({"sub": "1"}, ttl_seconds=-60)

        response = client.get(
            f"/api/recipes/{seed_recipe.id}/history",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401


class TestUpdateRecipe:
    def test_admin_edit(self, client, auth_headers, seed_recipe):
        response = client.put(
            f"/api/recipes/{seed_recipe.id}",
            json={"id": seed_recipe.id, "recipe_patch": {"waste_percent": "3,5"}},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["recipe"]["waste_percent"] == 3.5
        assert data["version_id"] is None
        assert data["audit_record_count"] == 1

    def test_production_edit_creates_version(
        self, client, auth_headers, seed_recipe, active_production
    ):
        response = client.put(
            f"/api/recipes/{seed_recipe.id}",
            json={
                "recipe_patch": {"waste_percent": 3},
                "is_production": True,
                "production_id": active_production.id,
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["version_id"] is not None
        assert data["audit_record_count"] == 2

    def test_completed_production_rejected(
        self, client, auth_headers, seed_recipe, completed_production
    ):
        response = client.put(
            f"/api/recipes/{seed_recipe.id}",
            json={
                "recipe_patch": {"waste_percent": 3},
                "is_production": True,
                "production_id": completed_production.id,
            },
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_PRODUCTION_CONTEXT"

    def test_unknown_recipe(self, client, auth_headers, db_session):
        response = client.put("/api/recipes/4242", json={}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_mismatched_body_id(self, client, auth_headers, seed_recipe):
        response = client.put(
            f"/api/recipes/{seed_recipe.id}",
            json={"id": seed_recipe.id + 1},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_number_too_large_for_float(self, client, auth_headers, seed_recipe):
        response = client.put(
            f"/api/recipes/{seed_recipe.id}",
            json={"recipe_patch": {"waste_percent": 10**400}},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_malformed_body(self, client, auth_headers, seed_recipe):
        response = client.put(
            f"/api/recipes/{seed_recipe.id}",
            json={"ingredients_to_add": [{"name": "No SKU"}]},
            headers=auth_headers,
        )

        assert response.status_code == 422


class TestHistoryAndVersions:
    @pytest.fixture
    def edited(self, client, auth_headers, seed_recipe, active_production):
        response = client.put(
            f"/api/recipes/{seed_recipe.id}",
            json={
                "recipe_patch": {"waste_percent": 3},
                "is_production": True,
                "production_id": active_production.id,
            },
            headers=auth_headers,
        )
        assert response.status_code == 200
        return response.json()

    def test_history(self, client, auth_headers, seed_recipe, edited):
        response = client.get(f"/api/recipes/{seed_recipe.id}/history", headers=auth_headers)

        assert response.status_code == 200
        entries = response.json()
        assert [e["change_type"] for e in entries] == ["version_created", "production"]
        assert entries[1]["field_name"] == "waste_percent"
        assert (entries[1]["old_value"], entries[1]["new_value"]) == ("2.5", "3.0")
        assert entries[1]["recipe_version_id"] == edited["version_id"]

    def test_history_filter(self, client, auth_headers, seed_recipe, edited):
        response = client.get(
            f"/api/recipes/{seed_recipe.id}/history",
            params={"type": "admin"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == []

    def test_history_invalid_filter(self, client, auth_headers, seed_recipe):
        response = client.get(
            f"/api/recipes/{seed_recipe.id}/history",
            params={"type": "everything"},
            headers=auth_headers,
        )

        assert response.status_code == 422

    def test_versions(self, client, auth_headers, seed_recipe, edited):
        response = client.get(f"/api/recipes/{seed_recipe.id}/versions", headers=auth_headers)

        assert response.status_code == 200
        assert [v["id"] for v in response.json()] == [edited["version_id"]]

    def test_version_detail(self, client, auth_headers, seed_recipe, edited):
        response = client.get(
            f"/api/recipes/{seed_recipe.id}/versions/{edited['version_id']}",
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["version_number"] == 1
        assert data["recipe_snapshot"]["waste_percent"] == 3.0
        assert [i["sku"] for i in data["ingredients_snapshot"]] == ["FLOUR-00", "BUTTER-82"]

    def test_missing_version(self, client, auth_headers, seed_recipe):
        response = client.get(f"/api/recipes/{seed_recipe.id}/versions/999", headers=auth_headers)

        assert response.status_code == 404

    def test_compare(self, client, auth_headers, seed_recipe, edited):
        client.put(
            f"/api/recipes/{seed_recipe.id}",
            json={"recipe_patch": {"waste_percent": 4}},
            headers=auth_headers,
        )

        response = client.get(
            f"/api/recipes/{seed_recipe.id}/versions/{edited['version_id']}/compare",
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["has_changes"] is True
        assert data["fields"] == [
            {"field": "waste_percent", "old_value": 3.0, "new_value": 4.0}
        ]
        assert data["ingredients_modified"] == []


class TestProductionEndpoints:
    def test_start_finish_cycle(self, client, auth_headers, seed_recipe):
        start = client.post(
            f"/api/recipes/{seed_recipe.id}/production/start",
            json={"notes": "Morning batch"},
            headers=auth_headers,
        )
        assert start.status_code == 201
        production = start.json()
        assert production["status"] == "in_progress"
        assert production["production_lot"] == "TEMP"
        assert production["recipe_version_id"] is not None

        active = client.get(f"/api/recipes/{seed_recipe.id}/production/active", headers=auth_headers)
        assert active.json()["id"] == production["id"]

        finish = client.post(
            f"/api/recipes/{seed_recipe.id}/production/{production['id']}/finish",
            headers=auth_headers,
        )
        assert finish.status_code == 200
        assert finish.json()["status"] == "completed"
        assert finish.json()["production_lot"].startswith("BSMI")

        active = client.get(f"/api/recipes/{seed_recipe.id}/production/active", headers=auth_headers)
        assert active.json() is None

    def test_start_twice(self, client, auth_headers, seed_recipe, active_production):
        response = client.post(
            f"/api/recipes/{seed_recipe.id}/production/start", headers=auth_headers
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_finish_completed(self, client, auth_headers, seed_recipe, completed_production):
        response = client.post(
            f"/api/recipes/{seed_recipe.id}/production/{completed_production.id}/finish",
            headers=auth_headers,
        )

        assert response.status_code == 409


class TestLotDecode:
    def test_decodes_lot_of_finished_run(self, client, auth_headers, seed_recipe):
        start = client.post(
            f"/api/recipes/{seed_recipe.id}/production/start", headers=auth_headers
        ).json()
        finished = client.post(
            f"/api/recipes/{seed_recipe.id}/production/{start['id']}/finish",
            headers=auth_headers,
        ).json()

        response = client.post(
            "/api/production/lot-decode",
            json={"lot": finished["production_lot"].lower()},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["lot"] == finished["production_lot"]
        assert (data["recipe_initials"], data["operator_initials"]) == ("BS", "MI")
        assert data["production_id"] == start["id"]
        assert data["recipe_name"] == "Butter Cookies"
        assert data["possible_recipes"] == []

    def test_unmatched_lot_lists_possible_recipes(self, client, auth_headers, seed_recipe):
        response = client.post(
            "/api/production/lot-decode",
            json={"lot": "BSMI0010000Z"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["production_id"] is None
        assert data["possible_recipes"] == ["Butter Cookies"]

    @pytest.mark.parametrize("lot", ["", "NOT-A-LOT"])
    def test_malformed_lot(self, client, auth_headers, lot):
        response = client.post(
            "/api/production/lot-decode", json={"lot": lot}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_requires_token(self, client):
        response = client.post("/api/production/lot-decode", json={"lot": "BSMI0010000Z"})

        assert response.status_code == 401


class TestIngredientLots:
    def test_search(self, client, auth_headers, db_session):
        db_session.add_all([
            IngredientLot(sku="FLOUR-00", lot="L2401"),
            IngredientLot(sku="FLOUR-00", lot="B7"),
        ])
        db_session.commit()

        response = client.get(
            "/api/ingredient-lots",
            params={"sku": "FLOUR-00", "q": "l24"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert [lot["lot"] for lot in response.json()] == ["L2401"]

    def test_sku_required(self, client, auth_headers):
        response = client.get("/api/ingredient-lots", headers=auth_headers)

        assert response.status_code == 422

    def test_edit_records_lot(self, client, auth_headers, seed_recipe):
        client.put(
            f"/api/recipes/{seed_recipe.id}",
            json={"ingredients_to_add": [{"sku": "SUGAR", "name": "Sugar", "lot": "S-01"}]},
            headers=auth_headers,
        )

        response = client.get(
            "/api/ingredient-lots", params={"sku": "SUGAR"}, headers=auth_headers
        )

        assert [lot["lot"] for lot in response.json()] == ["S-01"]
