"""Fixtures that build catalog data through the public API."""

from collections.abc import Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient


def tshirt_payload(category_id: int, **overrides: Any) -> dict[str, Any]:
    """Product with color {red, blue} x size {s, m} and two variants."""
    payload: dict[str, Any] = {
        "name": "Cotton T-Shirt",
        "categoryId": category_id,
        "brand": "Acme",
        "baseSku": "TSHIRT",
        "shortDescription": "Soft cotton tee",
        "tags": ["cotton", "summer"],
        "options": [
            {
                "name": "color",
                "displayName": "Color",
                "values": [
                    {"value": "red", "displayName": "Red", "colorCode": "#ff0000"},
                    {"value": "blue", "displayName": "Blue", "colorCode": "#0000ff"},
                ],
            },
            {
                "name": "size",
                "displayName": "Size",
                "values": [{"value": "s"}, {"value": "m"}],
            },
        ],
        "variants": [
            {"sku": "TS-RED-S", "price": 10, "options": {"color": "red", "size": "s"}},
            {"sku": "TS-BLUE-M", "price": 20, "options": {"color": "blue", "size": "m"}},
        ],
    }
    payload.update(overrides)
    return payload


def simple_payload(category_id: int, name: str, sku: str, prices: list[float], **overrides: Any) -> dict[str, Any]:
    """Product with one ``size`` option and one variant per price."""
    sizes = [f"s{index}" for index in range(len(prices))]
    payload: dict[str, Any] = {
        "name": name,
        "categoryId": category_id,
        "options": [{"name": "size", "values": [{"value": size} for size in sizes]}],
        "variants": [
            {"sku": f"{sku}-{index}", "price": price, "options": {"size": size}}
            for index, (price, size) in enumerate(zip(prices, sizes))
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_category(client: TestClient, seller_headers: dict[str, str]) -> Callable[..., dict]:
    """Create a category as the default seller unless other headers are given."""

    def _create(name: str, parent_id: int | None = None, headers: dict[str, str] | None = None) -> dict:
        body: dict[str, Any] = {"name": name}
        if parent_id is not None:
            body["parentId"] = parent_id
        response = client.post("/api/categories", json=body, headers=headers or seller_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def create_attribute(client: TestClient, admin_headers: dict[str, str]) -> Callable[..., dict]:
    def _create(key: str, name: str | None = None, **fields: Any) -> dict:
        body = {"key": key, "name": name or key.replace("_", " ").title(), **fields}
        response = client.post("/api/attributes", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def create_product(client: TestClient, seller_headers: dict[str, str]) -> Callable[..., dict]:
    def _create(payload: dict[str, Any], headers: dict[str, str] | None = None) -> dict:
        response = client.post("/api/products", json=payload, headers=headers or seller_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def category(create_category) -> dict:
    return create_category("Clothing")


@pytest.fixture
def tshirt(create_product, category) -> dict:
    return create_product(tshirt_payload(category["id"]))


@pytest.fixture
def public_headers() -> dict[str, str]:
    """Anonymous caller scoped to the default seller."""
    return {"X-Seller-ID": "1"}


@pytest.fixture
def build_tshirt() -> Callable[..., dict]:
    return tshirt_payload


@pytest.fixture
def build_simple() -> Callable[..., dict]:
    return simple_payload
