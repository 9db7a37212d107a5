"""Tests for product attribute value endpoints."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def link_attribute(client: TestClient, seller_headers: dict, create_attribute, category: dict):
    """Create an attribute definition and link it to the default category."""

    def _link(key: str, is_required: bool = False, default_value: str | None = None, **fields) -> dict:
        attribute = create_attribute(key, **fields)
        body = {"attributeId": attribute["id"], "isRequired": is_required}
        if default_value is not None:
            body["defaultValue"] = default_value
        response = client.post(f"/api/categories/{category['id']}/attributes", json=body, headers=seller_headers)
        assert response.status_code == 201, response.text
        return attribute

    return _link


class TestProductAttributes:
    """Tests for /api/products/{id}/attributes."""

    def test_add_and_list(self, client: TestClient, seller_headers: dict, tshirt: dict, link_attribute) -> None:
        weight = link_attribute("weight", dataType="number", unit="g")
        response = client.post(
            f"/api/products/{tshirt['id']}/attributes",
            json={"attributeId": weight["id"], "value": "180.50"},
            headers=seller_headers,
        )
        assert response.status_code == 201
        created = response.json()["data"]
        assert created["key"] == "weight"
        assert created["value"] == "180.5"
        assert created["unit"] == "g"

        items = client.get(f"/api/products/{tshirt['id']}/attributes", headers=seller_headers).json()["data"]
        assert [(item["key"], item["value"]) for item in items] == [("weight", "180.5")]

    def test_inherited_attribute_is_accepted(
        self, client: TestClient, seller_headers: dict, create_category, create_attribute, create_product,
        build_simple,
    ) -> None:
        warranty = create_attribute("warranty_period")
        electronics = create_category("Electronics")
        phones = create_category("Phones", parent_id=electronics["id"])
        client.post(
            f"/api/categories/{electronics['id']}/attributes",
            json={"attributeId": warranty["id"]},
            headers=seller_headers,
        )
        phone = create_product(build_simple(phones["id"], "Phone", "PH", [300]))

        response = client.post(
            f"/api/products/{phone['id']}/attributes",
            json={"attributeId": warranty["id"], "value": "2 years"},
            headers=seller_headers,
        )
        assert response.status_code == 201

    def test_unlinked_attribute_rejected(
        self, client: TestClient, seller_headers: dict, tshirt: dict, create_attribute
    ) -> None:
        loose = create_attribute("screen_size")
        response = client.post(
            f"/api/products/{tshirt['id']}/attributes",
            json={"attributeId": loose["id"], "value": "6"},
            headers=seller_headers,
        )
        assert response.status_code == 400
        assert response.json()["errorCode"] == "ATTRIBUTE_NOT_IN_CATEGORY"

    def test_value_must_match_type(self, client: TestClient, seller_headers: dict, tshirt: dict, link_attribute) -> None:
        washable = link_attribute("machine_washable", dataType="boolean")
        response = client.post(
            f"/api/products/{tshirt['id']}/attributes",
            json={"attributeId": washable["id"], "value": "maybe"},
            headers=seller_headers,
        )
        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_ATTRIBUTE_VALUE"

    def test_value_must_be_allowed(self, client: TestClient, seller_headers: dict, tshirt: dict, link_attribute) -> None:
        fit = link_attribute("fit", allowedValues=["slim", "regular"])
        response = client.post(
            f"/api/products/{tshirt['id']}/attributes",
            json={"attributeId": fit["id"], "value": "baggy"},
            headers=seller_headers,
        )
        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_ATTRIBUTE_VALUE"

    def test_duplicate_attribute_conflicts(
        self, client: TestClient, seller_headers: dict, tshirt: dict, link_attribute
    ) -> None:
        fit = link_attribute("fit")
        url = f"/api/products/{tshirt['id']}/attributes"
        client.post(url, json={"attributeId": fit["id"], "value": "slim"}, headers=seller_headers)

        response = client.post(url, json={"attributeId": fit["id"], "value": "regular"}, headers=seller_headers)
        assert response.status_code == 409
        assert response.json()["errorCode"] == "PRODUCT_ATTRIBUTE_EXISTS"

    def test_update_value(self, client: TestClient, seller_headers: dict, tshirt: dict, link_attribute) -> None:
        fit = link_attribute("fit")
        row = client.post(
            f"/api/products/{tshirt['id']}/attributes",
            json={"attributeId": fit["id"], "value": "slim"},
            headers=seller_headers,
        ).json()["data"]

        response = client.put(
            f"/api/products/{tshirt['id']}/attributes/{row['id']}",
            json={"value": "regular", "sortOrder": 3},
            headers=seller_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["value"] == "regular"
        assert response.json()["data"]["sortOrder"] == 3

    def test_bulk_upsert(self, client: TestClient, seller_headers: dict, tshirt: dict, link_attribute) -> None:
        fit = link_attribute("fit")
        tags = link_attribute("care", dataType="array")
        client.post(
            f"/api/products/{tshirt['id']}/attributes",
            json={"attributeId": fit["id"], "value": "slim"},
            headers=seller_headers,
        )

        response = client.put(
            f"/api/products/{tshirt['id']}/attributes/bulk",
            json={
                "attributes": [
                    {"attributeId": fit["id"], "value": "regular"},
                    {"attributeId": tags["id"], "value": '["hand wash", "no bleach"]'},
                ]
            },
            headers=seller_headers,
        )
        assert response.status_code == 200
        values = {item["key"]: item["value"] for item in response.json()["data"]}
        assert values == {"fit": "regular", "care": '["hand wash", "no bleach"]'}

        items = client.get(f"/api/products/{tshirt['id']}/attributes", headers=seller_headers).json()["data"]
        assert len(items) == 2

    def test_required_value_cannot_be_deleted(
        self, client: TestClient, seller_headers: dict, category: dict, build_tshirt, link_attribute
    ) -> None:
        link_attribute("material", is_required=True, default_value="cotton")
        product = client.post("/api/products", json=build_tshirt(category["id"]), headers=seller_headers).json()[
            "data"
        ]
        row = product["attributes"][0]

        response = client.delete(f"/api/products/{product['id']}/attributes/{row['id']}", headers=seller_headers)
        assert response.status_code == 422
        assert response.json()["errorCode"] == "REQUIRED_ATTRIBUTE_MISSING"

    def test_delete_optional_value(self, client: TestClient, seller_headers: dict, tshirt: dict, link_attribute) -> None:
        fit = link_attribute("fit")
        row = client.post(
            f"/api/products/{tshirt['id']}/attributes",
            json={"attributeId": fit["id"], "value": "slim"},
            headers=seller_headers,
        ).json()["data"]

        response = client.delete(f"/api/products/{tshirt['id']}/attributes/{row['id']}", headers=seller_headers)
        assert response.status_code == 204
        assert client.get(f"/api/products/{tshirt['id']}/attributes", headers=seller_headers).json()["data"] == []
