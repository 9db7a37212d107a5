"""Tests for product endpoints."""

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from catalog_service.catalog.models import (
    PackageOption,
    ProductAttribute,
    ProductOption,
    ProductOptionValue,
    ProductVariant,
)


async def count_live_owned_rows(app: FastAPI, product_id: int) -> dict[str, int]:
    """Live rows per table that belong to the product."""
    option_ids = select(ProductOption.id).where(ProductOption.product_id == product_id)
    owned = {
        "options": (ProductOption, ProductOption.product_id == product_id),
        "values": (ProductOptionValue, ProductOptionValue.option_id.in_(option_ids)),
        "variants": (ProductVariant, ProductVariant.product_id == product_id),
        "attributes": (ProductAttribute, ProductAttribute.product_id == product_id),
        "packageOptions": (PackageOption, PackageOption.product_id == product_id),
    }
    counts = {}
    async with app.state.session_factory() as session:
        for name, (model, criterion) in owned.items():
            query = select(func.count()).select_from(model).where(criterion, model.deleted_at.is_(None))
            counts[name] = (await session.execute(query)).scalar_one()
    return counts


class TestProductCreate:
    """Tests for POST /api/products."""

    def test_create_returns_full_aggregate(self, client: TestClient, tshirt: dict, category: dict) -> None:
        assert tshirt["sellerId"] == 1
        assert tshirt["categoryId"] == category["id"]
        assert tshirt["hasVariants"] is True
        assert tshirt["priceRange"] == {"min": 10.0, "max": 20.0}
        assert [option["name"] for option in tshirt["options"]] == ["color", "size"]
        assert [variant["sku"] for variant in tshirt["variants"]] == ["TS-RED-S", "TS-BLUE-M"]

    def test_first_variant_becomes_default(self, client: TestClient, tshirt: dict) -> None:
        defaults = [variant["sku"] for variant in tshirt["variants"] if variant["isDefault"]]
        assert defaults == ["TS-RED-S"]

    def test_round_trip(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        """Every option, value and variant sent comes back on read."""
        response = client.get(f"/api/products/{tshirt['id']}", headers=seller_headers)
        assert response.status_code == 200
        product = response.json()["data"]

        assert len(product["options"]) == 2
        assert [value["value"] for value in product["options"][0]["values"]] == ["red", "blue"]
        assert product["options"][0]["values"][0]["colorCode"] == "#ff0000"
        assert len(product["variants"]) == 2
        selected = {
            option["optionName"]: option["value"] for option in product["variants"][1]["selectedOptions"]
        }
        assert selected == {"color": "blue", "size": "m"}
        assert product["variantPreview"]["totalVariants"] == 2
        assert product["category"]["name"] == "Clothing"

    def test_option_names_are_normalized(
        self, client: TestClient, create_product, category: dict, build_simple
    ) -> None:
        payload = build_simple(category["id"], "Mug", "MUG", [5])
        payload["options"] = [{"name": "Cup Size", "values": [{"value": "Large"}]}]
        payload["variants"][0]["options"] = {"cup_size": "large"}

        product = create_product(payload)
        assert product["options"][0]["name"] == "cup_size"
        assert product["options"][0]["values"][0]["value"] == "large"

    def test_multiple_defaults_rejected(
        self, client: TestClient, seller_headers: dict, category: dict, build_tshirt
    ) -> None:
        payload = build_tshirt(category["id"])
        for variant in payload["variants"]:
            variant["isDefault"] = True

        response = client.post("/api/products", json=payload, headers=seller_headers)
        assert response.status_code == 400
        assert response.json()["errorCode"] == "MULTIPLE_DEFAULTS"

    def test_duplicate_combination_in_request_conflicts(
        self, client: TestClient, seller_headers: dict, category: dict, build_tshirt
    ) -> None:
        payload = build_tshirt(category["id"])
        payload["variants"][1]["options"] = {"color": "red", "size": "s"}

        response = client.post("/api/products", json=payload, headers=seller_headers)
        assert response.status_code == 409
        assert response.json()["errorCode"] == "VARIANT_OPTION_COMBINATION_EXISTS"

    def test_unknown_option_value_rejected(
        self, client: TestClient, seller_headers: dict, category: dict, build_tshirt
    ) -> None:
        payload = build_tshirt(category["id"])
        payload["variants"][0]["options"] = {"color": "green", "size": "s"}

        response = client.post("/api/products", json=payload, headers=seller_headers)
        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_OPTION"

    def test_duplicate_variant_sku_conflicts(
        self, client: TestClient, seller_headers: dict, category: dict, tshirt: dict, build_simple
    ) -> None:
        payload = build_simple(category["id"], "Hoodie", "HOOD", [30])
        payload["variants"][0]["sku"] = "TS-RED-S"

        response = client.post("/api/products", json=payload, headers=seller_headers)
        assert response.status_code == 409
        assert response.json()["errorCode"] == "VARIANT_SKU_EXISTS"

    def test_other_sellers_category_is_invalid(
        self, client: TestClient, other_seller_headers: dict, category: dict, build_tshirt
    ) -> None:
        response = client.post("/api/products", json=build_tshirt(category["id"]), headers=other_seller_headers)
        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_CATEGORY"

    def test_admin_must_name_a_seller(
        self, client: TestClient, admin_headers: dict, create_category, build_tshirt
    ) -> None:
        shared = create_category("Apparel", headers=admin_headers)
        response = client.post("/api/products", json=build_tshirt(shared["id"]), headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["errorCode"] == "SELLER_ID_REQUIRED"

        response = client.post(
            "/api/products",
            json=build_tshirt(shared["id"]),
            headers={**admin_headers, "X-Seller-ID": "2"},
        )
        assert response.status_code == 201
        assert response.json()["data"]["sellerId"] == 2

    def test_required_attribute_default_is_filled(
        self, client: TestClient, seller_headers: dict, admin_headers: dict, category: dict, build_tshirt
    ) -> None:
        response = client.post(
            f"/api/attributes/{category['id']}",
            json={"key": "material", "name": "Material", "isRequired": True, "defaultValue": "cotton"},
            headers=admin_headers,
        )
        assert response.status_code == 201

        response = client.post("/api/products", json=build_tshirt(category["id"]), headers=seller_headers)
        assert response.status_code == 201
        attributes = response.json()["data"]["attributes"]
        assert [(item["key"], item["value"]) for item in attributes] == [("material", "cotton")]

    def test_required_attribute_without_default_is_missing(
        self, client: TestClient, seller_headers: dict, admin_headers: dict, category: dict, build_tshirt
    ) -> None:
        client.post(
            f"/api/attributes/{category['id']}",
            json={"key": "material", "name": "Material", "isRequired": True},
            headers=admin_headers,
        )

        response = client.post("/api/products", json=build_tshirt(category["id"]), headers=seller_headers)
        assert response.status_code == 422
        assert response.json()["errorCode"] == "REQUIRED_ATTRIBUTE_MISSING"


class TestProductTenancy:
    """Tests for tenant hiding on product reads."""

    def test_other_seller_gets_not_found(self, client: TestClient, other_seller_headers: dict, tshirt: dict) -> None:
        response = client.get(f"/api/products/{tshirt['id']}", headers=other_seller_headers)
        assert response.status_code == 404
        assert response.json()["errorCode"] == "PRODUCT_NOT_FOUND"

    def test_public_read_scoped_by_header(self, client: TestClient, tshirt: dict) -> None:
        assert client.get(f"/api/products/{tshirt['id']}", headers={"X-Seller-ID": "1"}).status_code == 200
        assert client.get(f"/api/products/{tshirt['id']}", headers={"X-Seller-ID": "2"}).status_code == 404

    def test_listing_without_scope_rejected(self, client: TestClient, tshirt: dict) -> None:
        response = client.get("/api/products")
        assert response.status_code == 400
        assert response.json()["errorCode"] == "SELLER_ID_REQUIRED"

    def test_invalid_seller_header_rejected(self, client: TestClient) -> None:
        response = client.get("/api/products", headers={"X-Seller-ID": "abc"})
        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_SELLER_ID"

    def test_admin_without_scope_sees_all_sellers(
        self, client: TestClient, admin_headers: dict, other_seller_headers: dict, create_category,
        create_product, category: dict, tshirt: dict, build_simple,
    ) -> None:
        theirs = create_category("Kitchen", headers=other_seller_headers)
        create_product(build_simple(theirs["id"], "Mug", "MUG", [5]), headers=other_seller_headers)

        response = client.get("/api/products", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["pagination"]["totalItems"] == 2


class TestProductListing:
    """Tests for GET /api/products filters, sorting and pagination."""

    def test_price_window_matches_any_variant(
        self, client: TestClient, public_headers: dict, create_product, category: dict, build_simple
    ) -> None:
        create_product(build_simple(category["id"], "Product A", "PA", [10, 20]))
        create_product(build_simple(category["id"], "Product B", "PB", [50, 60]))

        response = client.get("/api/products?minPrice=15&maxPrice=55", headers=public_headers)
        assert response.status_code == 200
        assert {item["name"] for item in response.json()["data"]} == {"Product A", "Product B"}

        response = client.get("/api/products?minPrice=21&maxPrice=49", headers=public_headers)
        assert response.json()["data"] == []

    def test_price_bounds_are_inclusive(
        self, client: TestClient, public_headers: dict, create_product, category: dict, build_simple
    ) -> None:
        create_product(build_simple(category["id"], "Product A", "PA", [10, 20]))

        response = client.get("/api/products?minPrice=20&maxPrice=20", headers=public_headers)
        assert [item["name"] for item in response.json()["data"]] == ["Product A"]

    def test_inverted_price_window_rejected(self, client: TestClient, public_headers: dict) -> None:
        response = client.get("/api/products?minPrice=50&maxPrice=10", headers=public_headers)
        assert response.status_code == 400

    def test_category_filter_includes_subcategories(
        self, client: TestClient, public_headers: dict, create_category, create_product, build_simple
    ) -> None:
        root = create_category("Electronics")
        phones = create_category("Phones", parent_id=root["id"])
        create_product(build_simple(phones["id"], "Phone", "PH", [300]))

        response = client.get(f"/api/products?categoryId={root['id']}", headers=public_headers)
        assert [item["name"] for item in response.json()["data"]] == ["Phone"]

        response = client.get(
            f"/api/products?categoryId={root['id']}&includeSubcategories=false", headers=public_headers
        )
        assert response.json()["data"] == []

    def test_brand_filter(
        self, client: TestClient, public_headers: dict, create_product, category: dict, tshirt: dict, build_simple
    ) -> None:
        create_product(build_simple(category["id"], "Plain Mug", "MUG", [5], brand="Other"))

        response = client.get("/api/products?brand=acme", headers=public_headers)
        assert [item["name"] for item in response.json()["data"]] == ["Cotton T-Shirt"]

    def test_sort_by_price(
        self, client: TestClient, public_headers: dict, create_product, category: dict, build_simple
    ) -> None:
        create_product(build_simple(category["id"], "Expensive", "EX", [90]))
        create_product(build_simple(category["id"], "Cheap", "CH", [5]))

        response = client.get("/api/products?sortBy=price&sortOrder=asc", headers=public_headers)
        assert [item["name"] for item in response.json()["data"]] == ["Cheap", "Expensive"]

    def test_unknown_sort_field_rejected(self, client: TestClient, public_headers: dict) -> None:
        response = client.get("/api/products?sortBy=color", headers=public_headers)
        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_SORT"

    def test_pagination_envelope(
        self, client: TestClient, public_headers: dict, create_product, category: dict, build_simple
    ) -> None:
        for index in range(3):
            create_product(build_simple(category["id"], f"Product {index}", f"P{index}", [10 + index]))

        response = client.get("/api/products?page=2&limit=2", headers=public_headers)
        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 1
        assert body["pagination"] == {
            "currentPage": 2,
            "totalPages": 2,
            "totalItems": 3,
            "itemsPerPage": 2,
            "hasNext": False,
            "hasPrev": True,
        }


class TestProductUpdateDelete:
    """Tests for PUT and DELETE /api/products/{id}."""

    def test_update_fields(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        response = client.put(
            f"/api/products/{tshirt['id']}",
            json={"name": "Linen T-Shirt", "tags": []},
            headers=seller_headers,
        )
        assert response.status_code == 200
        product = response.json()["data"]
        assert product["name"] == "Linen T-Shirt"
        assert product["tags"] == []
        assert product["brand"] == "Acme"

    def test_empty_update_rejected(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        response = client.put(f"/api/products/{tshirt['id']}", json={}, headers=seller_headers)
        assert response.status_code == 400
        assert response.json()["errorCode"] == "NO_FIELDS_PROVIDED"

    def test_seller_cannot_be_changed(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        response = client.put(f"/api/products/{tshirt['id']}", json={"sellerId": 2}, headers=seller_headers)
        assert response.status_code == 400
        assert response.json()["errorCode"] == "VALIDATION_ERROR"

    def test_other_seller_cannot_update(
        self, client: TestClient, other_seller_headers: dict, tshirt: dict
    ) -> None:
        response = client.put(f"/api/products/{tshirt['id']}", json={"name": "Mine"}, headers=other_seller_headers)
        assert response.status_code == 404

    def test_delete_hides_product(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        response = client.delete(f"/api/products/{tshirt['id']}", headers=seller_headers)
        assert response.status_code == 204

        assert client.get(f"/api/products/{tshirt['id']}", headers=seller_headers).status_code == 404
        response = client.get(f"/api/products/{tshirt['id']}/variants", headers=seller_headers)
        assert response.status_code == 404

    def test_delete_archives_owned_rows(
        self, client: TestClient, seller_headers: dict, admin_headers: dict, category: dict, build_tshirt
    ) -> None:
        response = client.post(
            f"/api/attributes/{category['id']}",
            json={"key": "material", "name": "Material"},
            headers=admin_headers,
        )
        attribute_id = response.json()["data"]["attributeId"]
        payload = build_tshirt(
            category["id"],
            attributes=[{"attributeId": attribute_id, "value": "cotton"}],
            packageOptions=[{"name": "Gift box", "price": 5}],
        )
        product = client.post("/api/products", json=payload, headers=seller_headers).json()["data"]

        before = client.portal.call(count_live_owned_rows, client.app, product["id"])
        assert before == {"options": 2, "values": 4, "variants": 2, "attributes": 1, "packageOptions": 1}

        assert client.delete(f"/api/products/{product['id']}", headers=seller_headers).status_code == 204

        after = client.portal.call(count_live_owned_rows, client.app, product["id"])
        assert after == {"options": 0, "values": 0, "variants": 0, "attributes": 0, "packageOptions": 0}

    def test_deleted_base_sku_can_be_reused(
        self, client: TestClient, seller_headers: dict, category: dict, tshirt: dict, build_tshirt
    ) -> None:
        client.delete(f"/api/products/{tshirt['id']}", headers=seller_headers)

        response = client.post("/api/products", json=build_tshirt(category["id"]), headers=seller_headers)
        assert response.status_code == 201


class TestProductSearch:
    """Tests for GET /api/products/search."""

    def test_matches_are_ranked(
        self, client: TestClient, public_headers: dict, create_product, category: dict, tshirt: dict, build_simple
    ) -> None:
        create_product(
            build_simple(category["id"], "Denim Jacket", "DJ", [80], shortDescription="Lined with cotton")
        )

        response = client.get("/api/products/search?q=cotton", headers=public_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["query"] == "cotton"
        assert data["total"] == 2
        assert [item["name"] for item in data["results"]] == ["Cotton T-Shirt", "Denim Jacket"]
        assert data["results"][0]["matchedFields"] == ["name", "tags", "shortDescription"]
        assert data["results"][1]["matchedFields"] == ["shortDescription"]
        assert data["results"][0]["relevanceScore"] > data["results"][1]["relevanceScore"]

    def test_no_match(self, client: TestClient, public_headers: dict, tshirt: dict) -> None:
        data = client.get("/api/products/search?q=laptop", headers=public_headers).json()["data"]
        assert data["total"] == 0
        assert data["results"] == []

    def test_blank_query_rejected(self, client: TestClient, public_headers: dict) -> None:
        response = client.get("/api/products/search?q=%20", headers=public_headers)
        assert response.status_code == 400


class TestProductFilters:
    """Tests for GET /api/products/filters."""

    def test_facets(self, client: TestClient, public_headers: dict, category: dict, tshirt: dict) -> None:
        response = client.get("/api/products/filters", headers=public_headers)
        assert response.status_code == 200
        facets = response.json()["data"]

        assert facets["brands"] == [{"name": "Acme", "count": 1}]
        assert facets["categories"][0]["id"] == category["id"]
        assert facets["categories"][0]["productCount"] == 1
        assert facets["priceRange"]["min"] == 10.0
        assert facets["priceRange"]["max"] == 20.0
        assert sum(bucket["count"] for bucket in facets["priceRange"]["buckets"]) == 1
        assert facets["stockStatus"] == {"inStock": 1, "outOfStock": 0, "total": 1}
        assert {facet["name"] for facet in facets["variantTypes"]} == {"color", "size"}

    def test_empty_catalog(self, client: TestClient, public_headers: dict) -> None:
        facets = client.get("/api/products/filters", headers=public_headers).json()["data"]
        assert facets["brands"] == []
        assert facets["priceRange"] is None
        assert facets["stockStatus"]["total"] == 0


class TestRelatedProducts:
    """Tests for GET /api/products/{id}/related."""

    def test_more_shared_traits_rank_higher(
        self, client: TestClient, public_headers: dict, create_category, create_product, build_simple
    ) -> None:
        phones = create_category("Phones")
        source = create_product(
            build_simple(phones["id"], "Phone X", "PX", [500], brand="Acme", tags=["5g", "oled"])
        )
        related = create_product(
            build_simple(phones["id"], "Phone Y", "PY", [500], brand="Acme", tags=["5g"])
        )
        plain = create_product(build_simple(phones["id"], "Phone Z", "PZ", [500], brand="Other"))

        response = client.get(f"/api/products/{source['id']}/related", headers=public_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert [item["id"] for item in data["relatedProducts"]] == [related["id"], plain["id"]]
        assert data["relatedProducts"][0]["score"] > data["relatedProducts"][1]["score"]
        assert data["relatedProducts"][0]["strategyUsed"] == "same_category"
        assert data["total"] == 2

    def test_strategy_subset(
        self, client: TestClient, public_headers: dict, create_category, create_product, build_simple
    ) -> None:
        phones = create_category("Phones")
        source = create_product(build_simple(phones["id"], "Phone X", "PX", [500], brand="Acme"))
        create_product(build_simple(phones["id"], "Phone Y", "PY", [500], brand="Acme"))

        response = client.get(
            f"/api/products/{source['id']}/related?strategies=same_brand", headers=public_headers
        )
        data = response.json()["data"]
        assert data["relatedProducts"][0]["strategyUsed"] == "same_brand"
        assert data["relatedProducts"][0]["relationReason"] == "Same brand: Acme"
        assert data["meta"]["strategiesUsed"] == ["same_brand"]
        assert data["meta"]["totalStrategies"] == 1

    def test_unknown_strategy_rejected(self, client: TestClient, public_headers: dict, tshirt: dict) -> None:
        response = client.get(f"/api/products/{tshirt['id']}/related?strategies=unknown", headers=public_headers)
        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_STRATEGY"
