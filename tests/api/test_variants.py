"""Tests for variant endpoints."""

from fastapi.testclient import TestClient


def variant_by_sku(variants: list[dict], sku: str) -> dict:
    return next(variant for variant in variants if variant["sku"] == sku)


class TestVariantCreate:
    """Tests for POST /api/products/{id}/variants."""

    def test_same_combination_conflicts(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        url = f"/api/products/{tshirt['id']}/variants"
        response = client.post(
            url, json={"sku": "A", "price": 10, "options": {"color": "red", "size": "m"}}, headers=seller_headers
        )
        assert response.status_code == 201
        created = response.json()["data"]
        assert created["isDefault"] is False
        assert {option["optionName"]: option["value"] for option in created["selectedOptions"]} == {
            "color": "red",
            "size": "m",
        }

        response = client.post(
            url, json={"sku": "B", "price": 12, "options": {"color": "red", "size": "m"}}, headers=seller_headers
        )
        assert response.status_code == 409
        assert response.json()["errorCode"] == "VARIANT_OPTION_COMBINATION_EXISTS"

    def test_selection_is_case_insensitive(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        response = client.post(
            f"/api/products/{tshirt['id']}/variants",
            json={"sku": "A", "price": 10, "options": {"Color": "RED", "Size": "M"}},
            headers=seller_headers,
        )
        assert response.status_code == 201

    def test_incomplete_selection_rejected(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        response = client.post(
            f"/api/products/{tshirt['id']}/variants",
            json={"sku": "A", "price": 10, "options": {"color": "red"}},
            headers=seller_headers,
        )
        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_OPTION"

    def test_duplicate_sku_conflicts(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        response = client.post(
            f"/api/products/{tshirt['id']}/variants",
            json={"sku": "TS-RED-S", "price": 10, "options": {"color": "red", "size": "m"}},
            headers=seller_headers,
        )
        assert response.status_code == 409
        assert response.json()["errorCode"] == "VARIANT_SKU_EXISTS"

    def test_non_positive_price_rejected(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        response = client.post(
            f"/api/products/{tshirt['id']}/variants",
            json={"sku": "A", "price": 0, "options": {"color": "red", "size": "m"}},
            headers=seller_headers,
        )
        assert response.status_code == 400
        assert response.json()["errorCode"] == "VALIDATION_ERROR"

    def test_new_default_replaces_old(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        url = f"/api/products/{tshirt['id']}/variants"
        client.post(
            url,
            json={"sku": "A", "price": 10, "isDefault": True, "options": {"color": "red", "size": "m"}},
            headers=seller_headers,
        )

        variants = client.get(url, headers=seller_headers).json()["data"]
        assert [variant["sku"] for variant in variants if variant["isDefault"]] == ["A"]

    def test_other_seller_cannot_add(self, client: TestClient, other_seller_headers: dict, tshirt: dict) -> None:
        response = client.post(
            f"/api/products/{tshirt['id']}/variants",
            json={"sku": "A", "price": 10, "options": {"color": "red", "size": "m"}},
            headers=other_seller_headers,
        )
        assert response.status_code == 404


class TestVariantFind:
    """Tests for GET /api/products/{id}/variants/find."""

    def test_partial_selection_with_single_match(
        self, client: TestClient, public_headers: dict, tshirt: dict
    ) -> None:
        response = client.get(f"/api/products/{tshirt['id']}/variants/find?color=red", headers=public_headers)
        assert response.status_code == 200
        assert response.json()["data"]["sku"] == "TS-RED-S"

    def test_partial_selection_with_two_matches_is_ambiguous(
        self, client: TestClient, seller_headers: dict, public_headers: dict, tshirt: dict
    ) -> None:
        client.post(
            f"/api/products/{tshirt['id']}/variants",
            json={"sku": "TS-RED-M", "price": 12, "options": {"color": "red", "size": "m"}},
            headers=seller_headers,
        )

        response = client.get(f"/api/products/{tshirt['id']}/variants/find?color=red", headers=public_headers)
        assert response.status_code == 422
        assert response.json()["errorCode"] == "AMBIGUOUS_SELECTION"

        response = client.get(
            f"/api/products/{tshirt['id']}/variants/find?color=red&size=m", headers=public_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["sku"] == "TS-RED-M"

    def test_no_match(self, client: TestClient, public_headers: dict, tshirt: dict) -> None:
        response = client.get(
            f"/api/products/{tshirt['id']}/variants/find?color=red&size=m", headers=public_headers
        )
        assert response.status_code == 404
        assert response.json()["errorCode"] == "VARIANT_NOT_FOUND_WITH_OPTIONS"

    def test_unknown_option_rejected(self, client: TestClient, public_headers: dict, tshirt: dict) -> None:
        response = client.get(f"/api/products/{tshirt['id']}/variants/find?material=wool", headers=public_headers)
        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_OPTION"

    def test_empty_selection_rejected(self, client: TestClient, public_headers: dict, tshirt: dict) -> None:
        response = client.get(f"/api/products/{tshirt['id']}/variants/find", headers=public_headers)
        assert response.status_code == 400


class TestVariantUpdateDelete:
    """Tests for variant updates, default handling and deletion."""

    def test_update_price_and_selection(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        variant = variant_by_sku(tshirt["variants"], "TS-BLUE-M")
        response = client.put(
            f"/api/products/{tshirt['id']}/variants/{variant['id']}",
            json={"price": 22.5, "options": {"color": "blue", "size": "s"}},
            headers=seller_headers,
        )
        assert response.status_code == 200
        updated = response.json()["data"]
        assert updated["price"] == 22.5
        assert {option["optionName"]: option["value"] for option in updated["selectedOptions"]}["size"] == "s"

    def test_update_into_existing_combination_conflicts(
        self, client: TestClient, seller_headers: dict, tshirt: dict
    ) -> None:
        variant = variant_by_sku(tshirt["variants"], "TS-BLUE-M")
        response = client.put(
            f"/api/products/{tshirt['id']}/variants/{variant['id']}",
            json={"options": {"color": "red", "size": "s"}},
            headers=seller_headers,
        )
        assert response.status_code == 409
        assert response.json()["errorCode"] == "VARIANT_OPTION_COMBINATION_EXISTS"

    def test_demoting_only_default_rejected(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        variant = variant_by_sku(tshirt["variants"], "TS-RED-S")
        response = client.put(
            f"/api/products/{tshirt['id']}/variants/{variant['id']}",
            json={"isDefault": False},
            headers=seller_headers,
        )
        assert response.status_code == 422
        assert response.json()["errorCode"] == "DEFAULT_VARIANT_REQUIRED"

    def test_null_price_rejected(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        variant = variant_by_sku(tshirt["variants"], "TS-RED-S")
        response = client.put(
            f"/api/products/{tshirt['id']}/variants/{variant['id']}",
            json={"price": None},
            headers=seller_headers,
        )
        assert response.status_code == 400

    def test_deleting_default_promotes_next(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        variant = variant_by_sku(tshirt["variants"], "TS-RED-S")
        response = client.delete(f"/api/products/{tshirt['id']}/variants/{variant['id']}", headers=seller_headers)
        assert response.status_code == 204

        variants = client.get(f"/api/products/{tshirt['id']}/variants", headers=seller_headers).json()["data"]
        assert [(item["sku"], item["isDefault"]) for item in variants] == [("TS-BLUE-M", True)]

    def test_last_variant_cannot_be_deleted(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        first, second = tshirt["variants"]
        client.delete(f"/api/products/{tshirt['id']}/variants/{first['id']}", headers=seller_headers)

        response = client.delete(f"/api/products/{tshirt['id']}/variants/{second['id']}", headers=seller_headers)
        assert response.status_code == 409
        assert response.json()["errorCode"] == "LAST_VARIANT_DELETE_NOT_ALLOWED"

    def test_get_variant_of_other_product_not_found(
        self, client: TestClient, seller_headers: dict, create_product, category: dict, tshirt: dict, build_simple
    ) -> None:
        mug = create_product(build_simple(category["id"], "Mug", "MUG", [5]))
        response = client.get(
            f"/api/products/{mug['id']}/variants/{tshirt['variants'][0]['id']}", headers=seller_headers
        )
        assert response.status_code == 404
        assert response.json()["errorCode"] == "VARIANT_NOT_FOUND"


class TestVariantBulkUpdate:
    """Tests for PUT /api/products/{id}/variants/bulk."""

    def test_bulk_update_moves_default(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        red = variant_by_sku(tshirt["variants"], "TS-RED-S")
        blue = variant_by_sku(tshirt["variants"], "TS-BLUE-M")
        response = client.put(
            f"/api/products/{tshirt['id']}/variants/bulk",
            json={"variants": [{"id": blue["id"], "isDefault": True, "price": 25}, {"id": red["id"], "price": 11}]},
            headers=seller_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["updatedCount"] == 2
        assert [(item["sku"], item["price"]) for item in data["variants"]] == [("TS-BLUE-M", 25.0), ("TS-RED-S", 11.0)]

        variants = client.get(f"/api/products/{tshirt['id']}/variants", headers=seller_headers).json()["data"]
        assert [item["sku"] for item in variants if item["isDefault"]] == ["TS-BLUE-M"]

    def test_bulk_update_is_atomic(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        red = variant_by_sku(tshirt["variants"], "TS-RED-S")
        response = client.put(
            f"/api/products/{tshirt['id']}/variants/bulk",
            json={"variants": [{"id": red["id"], "price": 99}, {"id": 999999, "price": 1}]},
            headers=seller_headers,
        )
        assert response.status_code == 404

        variants = client.get(f"/api/products/{tshirt['id']}/variants", headers=seller_headers).json()["data"]
        assert variant_by_sku(variants, "TS-RED-S")["price"] == 10.0

    def test_bulk_sku_collision(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        blue = variant_by_sku(tshirt["variants"], "TS-BLUE-M")
        response = client.put(
            f"/api/products/{tshirt['id']}/variants/bulk",
            json={"variants": [{"id": blue["id"], "sku": "TS-RED-S"}]},
            headers=seller_headers,
        )
        assert response.status_code == 409

    def test_bulk_two_defaults_rejected(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        first, second = tshirt["variants"]
        response = client.put(
            f"/api/products/{tshirt['id']}/variants/bulk",
            json={"variants": [{"id": first["id"], "isDefault": True}, {"id": second["id"], "isDefault": True}]},
            headers=seller_headers,
        )
        assert response.status_code == 400
        assert response.json()["errorCode"] == "MULTIPLE_DEFAULTS"


class TestVariantListing:
    """Tests for GET /api/variants."""

    def test_option_filter(self, client: TestClient, public_headers: dict, tshirt: dict) -> None:
        response = client.get("/api/variants?color=red", headers=public_headers)
        assert response.status_code == 200
        body = response.json()
        assert [item["sku"] for item in body["data"]] == ["TS-RED-S"]
        assert body["pagination"]["totalItems"] == 1

    def test_sku_prefix_and_price(self, client: TestClient, public_headers: dict, tshirt: dict) -> None:
        response = client.get("/api/variants?skuPrefix=TS-&minPrice=15", headers=public_headers)
        assert [item["sku"] for item in response.json()["data"]] == ["TS-BLUE-M"]

    def test_product_ids_filter(
        self, client: TestClient, public_headers: dict, create_product, category: dict, tshirt: dict, build_simple
    ) -> None:
        mug = create_product(build_simple(category["id"], "Mug", "MUG", [5, 6]))

        response = client.get(f"/api/variants?productIds={mug['id']}", headers=public_headers)
        assert [item["sku"] for item in response.json()["data"]] == ["MUG-0", "MUG-1"]

        response = client.get("/api/variants", headers=public_headers)
        assert response.json()["pagination"]["totalItems"] == 4

    def test_other_sellers_variants_hidden(self, client: TestClient, tshirt: dict) -> None:
        response = client.get("/api/variants", headers={"X-Seller-ID": "2"})
        assert response.json()["data"] == []

    def test_malformed_id_list_rejected(self, client: TestClient, public_headers: dict) -> None:
        response = client.get("/api/variants?ids=1,abc", headers=public_headers)
        assert response.status_code == 400

    def test_scope_required(self, client: TestClient) -> None:
        response = client.get("/api/variants")
        assert response.status_code == 400
        assert response.json()["errorCode"] == "SELLER_ID_REQUIRED"

    def test_admin_filters_by_seller(self, client: TestClient, admin_headers: dict, tshirt: dict) -> None:
        response = client.get("/api/variants?sellerId=1", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["pagination"]["totalItems"] == 2

        response = client.get("/api/variants?sellerId=2", headers=admin_headers)
        assert response.json()["pagination"]["totalItems"] == 0

    def test_seller_id_must_match_scope(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        response = client.get("/api/variants?sellerId=1", headers=seller_headers)
        assert response.json()["pagination"]["totalItems"] == 2

        response = client.get("/api/variants?sellerId=2", headers=seller_headers)
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "sellerId"
