"""Tests for attribute definition endpoints."""

from fastapi.testclient import TestClient


class TestAttributeDefinitions:
    """Tests for /api/attributes."""

    def test_create_and_get(self, client: TestClient, admin_headers: dict) -> None:
        response = client.post(
            "/api/attributes",
            json={"key": "screen_size", "name": "Screen Size", "dataType": "number", "unit": "in"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        created = response.json()["data"]
        assert created["key"] == "screen_size"
        assert created["dataType"] == "number"

        response = client.get(f"/api/attributes/{created['id']}")
        assert response.status_code == 200
        assert response.json()["data"]["unit"] == "in"

    def test_seller_cannot_create(self, client: TestClient, seller_headers: dict) -> None:
        response = client.post(
            "/api/attributes", json={"key": "material", "name": "Material"}, headers=seller_headers
        )
        assert response.status_code == 403
        assert response.json()["errorCode"] == "INSUFFICIENT_PERMISSIONS"

    def test_invalid_key_rejected(self, client: TestClient, admin_headers: dict) -> None:
        response = client.post(
            "/api/attributes", json={"key": "Screen-Size", "name": "Screen Size"}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_duplicate_key_conflicts(self, client: TestClient, admin_headers: dict, create_attribute) -> None:
        create_attribute("material")
        response = client.post(
            "/api/attributes", json={"key": "material", "name": "Material"}, headers=admin_headers
        )
        assert response.status_code == 409
        assert response.json()["errorCode"] == "ATTRIBUTE_EXISTS"

    def test_list(self, client: TestClient, create_attribute) -> None:
        create_attribute("material")
        create_attribute("warranty_period")
        response = client.get("/api/attributes")
        assert response.status_code == 200
        assert {item["key"] for item in response.json()["data"]} == {"material", "warranty_period"}

    def test_key_is_immutable(self, client: TestClient, admin_headers: dict, create_attribute) -> None:
        attribute = create_attribute("material")
        response = client.put(
            f"/api/attributes/{attribute['id']}", json={"key": "fabric"}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_rename(self, client: TestClient, admin_headers: dict, create_attribute) -> None:
        attribute = create_attribute("material")
        response = client.put(
            f"/api/attributes/{attribute['id']}", json={"name": "Fabric"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Fabric"
        assert response.json()["data"]["key"] == "material"

    def test_delete_linked_attribute_refused(
        self, client: TestClient, admin_headers: dict, seller_headers: dict, create_attribute, create_category
    ) -> None:
        attribute = create_attribute("material")
        category = create_category("Clothing")
        client.post(
            f"/api/categories/{category['id']}/attributes",
            json={"attributeId": attribute["id"]},
            headers=seller_headers,
        )

        response = client.delete(f"/api/attributes/{attribute['id']}", headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["errorCode"] == "ATTRIBUTE_IN_USE"

    def test_delete_unused(self, client: TestClient, admin_headers: dict, create_attribute) -> None:
        attribute = create_attribute("material")
        response = client.delete(f"/api/attributes/{attribute['id']}", headers=admin_headers)
        assert response.status_code == 204
        assert client.get(f"/api/attributes/{attribute['id']}").status_code == 404

    def test_create_for_category_links_in_one_step(
        self, client: TestClient, admin_headers: dict, create_category
    ) -> None:
        category = create_category("Clothing", headers=admin_headers)
        response = client.post(
            f"/api/attributes/{category['id']}",
            json={"key": "material", "name": "Material", "isRequired": True, "defaultValue": "cotton"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        link = response.json()["data"]
        assert link["key"] == "material"
        assert link["isRequired"] is True
        assert link["categoryId"] == category["id"]

        items = client.get(f"/api/categories/{category['id']}/attributes").json()["data"]
        assert [item["key"] for item in items] == ["material"]
