"""
Tests for variable routes
"""

import pytest

from tests.conftest import DEVICE_ID

OTHER_DEVICE = "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d"


def seed_variable(fake_baas, key, value, user_id=DEVICE_ID):
    fake_baas.variables.append({
        "user_id": user_id,
        "key": key,
        "value": value,
        "description": "",
        "variable_type": "string",
        "updated_at": "2026-10-01T00:00:00.000Z",
    })


class TestGetVariables:

    def test_returns_device_variables(self, client, fake_baas):
        seed_variable(fake_baas, "theme", "dark")
        seed_variable(fake_baas, "lang", "de")
        seed_variable(fake_baas, "theme", "light", user_id=OTHER_DEVICE)

        response = client.get(f"/api/variables/{DEVICE_ID}")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["userId"] == DEVICE_ID
        assert {v["key"] for v in data["data"]} == {"theme", "lang"}
        assert len(fake_baas.baas_requests) == 1

    def test_key_filter(self, client, fake_baas):
        seed_variable(fake_baas, "theme", "dark")
        seed_variable(fake_baas, "lang", "de")

        response = client.get(f"/api/variables/{DEVICE_ID}", params={"key": "lang"})

        assert response.status_code == 200
        assert [v["value"] for v in response.json()["data"]] == ["de"]
        assert fake_baas.requests[0].url.params["p_key"] == "lang"

    def test_uppercase_device_id_accepted(self, client, fake_baas):
        response = client.get(f"/api/variables/{DEVICE_ID.upper()}")
        assert response.status_code == 200
        assert response.json()["data"] == []

    def test_upstream_error(self, client, fake_baas):
        fake_baas.fail("GET", "/rest/v1/rpc/get_user_variables", 503, "service unavailable")

        response = client.get(f"/api/variables/{DEVICE_ID}")

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "VARIABLES_FETCH_ERROR"
        assert "503" in data["details"]
        assert "service unavailable" in data["details"]


class TestCreateVariable:

    def test_creates_row(self, client, fake_baas, fake_clock):
        response = client.post(f"/api/variables/{DEVICE_ID}", json={
            "key": "theme",
            "value": "dark",
            "description": "UI theme",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"]
        assert data["data"][0]["key"] == "theme"

        assert fake_baas.variables == [{
            "user_id": DEVICE_ID,
            "key": "theme",
            "value": "dark",
            "description": "UI theme",
            "variable_type": "string",
            "updated_at": "2026-10-19T12:00:00.000Z",
        }]

    def test_description_defaults_to_empty(self, client, fake_baas):
        response = client.post(f"/api/variables/{DEVICE_ID}", json={"key": "count", "value": 3})

        assert response.status_code == 200
        assert fake_baas.variables[0]["description"] == ""
        assert fake_baas.variables[0]["value"] == 3

    def test_sends_representation_preference(self, client, fake_baas):
        client.post(f"/api/variables/{DEVICE_ID}", json={"key": "theme", "value": "dark"})
        assert fake_baas.requests[0].headers["Prefer"] == "return=representation"

    @pytest.mark.parametrize("body", [
        {"key": "theme"},
        {"key": "theme", "value": ""},
        {"key": "theme", "value": None},
        {"value": "dark"},
        {"key": "", "value": "dark"},
        {},
    ])
    def test_missing_fields(self, client, fake_baas, body):
        response = client.post(f"/api/variables/{DEVICE_ID}", json=body)

        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_REQUIRED_FIELDS"
        assert fake_baas.requests == []

    def test_missing_body(self, client, fake_baas):
        response = client.post(f"/api/variables/{DEVICE_ID}")

        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_REQUIRED_FIELDS"
        assert fake_baas.requests == []

    def test_wrongly_typed_body(self, client, fake_baas):
        response = client.post(f"/api/variables/{DEVICE_ID}", json={"key": "theme", "value": {"nested": 1}})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST_BODY"
        assert fake_baas.requests == []

    def test_malformed_json(self, client, fake_baas):
        response = client.post(
            f"/api/variables/{DEVICE_ID}",
            content=b'{"key": "theme",',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST_BODY"
        assert fake_baas.requests == []

    def test_upstream_error(self, client, fake_baas):
        fake_baas.fail("POST", "/rest/v1/global_variables", 409, "duplicate key value")

        response = client.post(f"/api/variables/{DEVICE_ID}", json={"key": "theme", "value": "dark"})

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "VARIABLE_SAVE_ERROR"
        assert "409" in data["details"]
        assert "duplicate key value" in data["details"]


class TestDeleteVariable:

    def test_deletes_matching_rows(self, client, fake_baas):
        seed_variable(fake_baas, "theme", "dark")
        seed_variable(fake_baas, "lang", "de")
        seed_variable(fake_baas, "theme", "light", user_id=OTHER_DEVICE)

        response = client.delete(f"/api/variables/{DEVICE_ID}/theme")

        assert response.status_code == 200
        assert response.json()["success"] is True
        remaining = {(v["user_id"], v["key"]) for v in fake_baas.variables}
        assert remaining == {(DEVICE_ID, "lang"), (OTHER_DEVICE, "theme")}

    def test_url_encoded_key(self, client, fake_baas):
        seed_variable(fake_baas, "my key/1", "x")

        response = client.delete(f"/api/variables/{DEVICE_ID}/my%20key%2F1")

        assert response.status_code == 200
        assert fake_baas.requests[0].url.params["key"] == "eq.my key/1"
        assert fake_baas.variables == []

    def test_empty_key_is_not_found(self, client, fake_baas):
        seed_variable(fake_baas, "", "x")

        response = client.delete(f"/api/variables/{DEVICE_ID}/")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"
        assert fake_baas.requests == []
        assert len(fake_baas.variables) == 1

    def test_upstream_error(self, client, fake_baas):
        fake_baas.fail("DELETE", "/rest/v1/global_variables", 500, "boom")

        response = client.delete(f"/api/variables/{DEVICE_ID}/theme")

        assert response.status_code == 500
        assert response.json()["code"] == "VARIABLE_DELETE_ERROR"
        assert "boom" in response.json()["details"]
