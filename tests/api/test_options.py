"""Tests for product option and option value endpoints."""

import pytest
from fastapi.testclient import TestClient


def option_named(product: dict, name: str) -> dict:
    return next(option for option in product["options"] if option["name"] == name)


def value_named(option: dict, value: str) -> dict:
    return next(item for item in option["values"] if item["value"] == value)


class TestOptions:
    """Tests for /api/products/{id}/options."""

    def test_list(self, client: TestClient, public_headers: dict, tshirt: dict) -> None:
        response = client.get(f"/api/products/{tshirt['id']}/options", headers=public_headers)
        assert response.status_code == 200
        options = response.json()["data"]
        assert [option["name"] for option in options] == ["color", "size"]
        assert [value["value"] for value in options[1]["values"]] == ["s", "m"]

    def test_new_option_extends_existing_variants(
        self, client: TestClient, seller_headers: dict, tshirt: dict
    ) -> None:
        response = client.post(
            f"/api/products/{tshirt['id']}/options",
            json={"name": "Material", "values": [{"value": "Cotton"}, {"value": "Linen"}]},
            headers=seller_headers,
        )
        assert response.status_code == 201
        option = response.json()["data"]
        assert option["name"] == "material"
        assert option["displayName"] == "Material"
        assert option["position"] == 2

        variants = client.get(f"/api/products/{tshirt['id']}/variants", headers=seller_headers).json()["data"]
        for variant in variants:
            selected = {item["optionName"]: item["value"] for item in variant["selectedOptions"]}
            assert selected["material"] == "cotton"

    def test_new_option_needs_values_when_variants_exist(
        self, client: TestClient, seller_headers: dict, tshirt: dict
    ) -> None:
        response = client.post(
            f"/api/products/{tshirt['id']}/options", json={"name": "Material"}, headers=seller_headers
        )
        assert response.status_code == 400
        assert response.json()["errorCode"] == "OPTION_VALUES_REQUIRED"

    def test_duplicate_name_conflicts(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        response = client.post(
            f"/api/products/{tshirt['id']}/options",
            json={"name": " COLOR ", "values": [{"value": "green"}]},
            headers=seller_headers,
        )
        assert response.status_code == 409
        assert response.json()["errorCode"] == "OPTION_NAME_EXISTS"

    def test_rename(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        size = option_named(tshirt, "size")
        response = client.put(
            f"/api/products/{tshirt['id']}/options/{size['id']}",
            json={"name": "Fit Size", "displayName": "Fit"},
            headers=seller_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "fit_size"
        assert response.json()["data"]["displayName"] == "Fit"

    @pytest.mark.parametrize("display_name", ["", "   ", None])
    def test_blank_display_name_rejected(
        self, client: TestClient, seller_headers: dict, tshirt: dict, display_name: str | None
    ) -> None:
        size = option_named(tshirt, "size")
        response = client.put(
            f"/api/products/{tshirt['id']}/options/{size['id']}",
            json={"displayName": display_name},
            headers=seller_headers,
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "displayName"

    def test_color_option_with_codes_cannot_be_renamed_away(
        self, client: TestClient, seller_headers: dict, tshirt: dict
    ) -> None:
        color = option_named(tshirt, "color")
        response = client.put(
            f"/api/products/{tshirt['id']}/options/{color['id']}", json={"name": "shade"}, headers=seller_headers
        )
        assert response.status_code == 400

    def test_empty_update_rejected(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        size = option_named(tshirt, "size")
        response = client.put(f"/api/products/{tshirt['id']}/options/{size['id']}", json={}, headers=seller_headers)
        assert response.status_code == 400
        assert response.json()["errorCode"] == "NO_FIELDS_PROVIDED"

    def test_delete_option_in_use_refused(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        size = option_named(tshirt, "size")
        response = client.delete(f"/api/products/{tshirt['id']}/options/{size['id']}", headers=seller_headers)
        assert response.status_code == 409
        assert response.json()["errorCode"] == "OPTION_IN_USE"

    def test_bulk_update(self, client: TestClient, seller_headers: dict, public_headers: dict, tshirt: dict) -> None:
        color = option_named(tshirt, "color")
        size = option_named(tshirt, "size")
        response = client.put(
            f"/api/products/{tshirt['id']}/options/bulk-update",
            json={
                "options": [
                    {"optionId": color["id"], "position": 1},
                    {"optionId": size["id"], "position": 0, "displayName": "Fit"},
                ]
            },
            headers=seller_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"] == {"updatedCount": 2}

        options = client.get(f"/api/products/{tshirt['id']}/options", headers=public_headers).json()["data"]
        assert [(option["name"], option["displayName"]) for option in options] == [("size", "Fit"), ("color", "Color")]

    def test_bulk_update_unknown_option(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        response = client.put(
            f"/api/products/{tshirt['id']}/options/bulk-update",
            json={"options": [{"optionId": 999999, "position": 1}]},
            headers=seller_headers,
        )
        assert response.status_code == 404
        assert response.json()["errorCode"] == "OPTION_NOT_FOUND"


class TestOptionValues:
    """Tests for /api/products/{id}/options/{optionId}/values."""

    def test_add_value(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        color = option_named(tshirt, "color")
        response = client.post(
            f"/api/products/{tshirt['id']}/options/{color['id']}/values",
            json={"value": "Green", "colorCode": "#00ff00"},
            headers=seller_headers,
        )
        assert response.status_code == 201
        value = response.json()["data"]
        assert value["value"] == "green"
        assert value["displayName"] == "Green"
        assert value["position"] == 2

    def test_duplicate_value_conflicts(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        color = option_named(tshirt, "color")
        response = client.post(
            f"/api/products/{tshirt['id']}/options/{color['id']}/values",
            json={"value": "RED"},
            headers=seller_headers,
        )
        assert response.status_code == 409
        assert response.json()["errorCode"] == "OPTION_VALUE_EXISTS"

    def test_color_code_only_on_color_options(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        size = option_named(tshirt, "size")
        response = client.post(
            f"/api/products/{tshirt['id']}/options/{size['id']}/values",
            json={"value": "l", "colorCode": "#000000"},
            headers=seller_headers,
        )
        assert response.status_code == 400

    def test_malformed_color_code_rejected(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        color = option_named(tshirt, "color")
        response = client.post(
            f"/api/products/{tshirt['id']}/options/{color['id']}/values",
            json={"value": "green", "colorCode": "green"},
            headers=seller_headers,
        )
        assert response.status_code == 400
        assert response.json()["errorCode"] == "VALIDATION_ERROR"

    def test_bulk_add(self, client: TestClient, seller_headers: dict, public_headers: dict, tshirt: dict) -> None:
        size = option_named(tshirt, "size")
        response = client.post(
            f"/api/products/{tshirt['id']}/options/{size['id']}/values/bulk",
            json={"values": [{"value": "l"}, {"value": "xl"}]},
            headers=seller_headers,
        )
        assert response.status_code == 201

        values = client.get(
            f"/api/products/{tshirt['id']}/options/{size['id']}/values", headers=public_headers
        ).json()["data"]
        assert [value["value"] for value in values] == ["s", "m", "l", "xl"]

    def test_bulk_add_is_atomic(
        self, client: TestClient, seller_headers: dict, public_headers: dict, tshirt: dict
    ) -> None:
        size = option_named(tshirt, "size")
        response = client.post(
            f"/api/products/{tshirt['id']}/options/{size['id']}/values/bulk",
            json={"values": [{"value": "l"}, {"value": "m"}]},
            headers=seller_headers,
        )
        assert response.status_code == 409

        values = client.get(
            f"/api/products/{tshirt['id']}/options/{size['id']}/values", headers=public_headers
        ).json()["data"]
        assert [value["value"] for value in values] == ["s", "m"]

    def test_bulk_update(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        size = option_named(tshirt, "size")
        small = value_named(size, "s")
        medium = value_named(size, "m")
        response = client.put(
            f"/api/products/{tshirt['id']}/options/{size['id']}/values/bulk-update",
            json={
                "values": [
                    {"valueId": small["id"], "displayName": "Small"},
                    {"valueId": medium["id"], "displayName": "Medium"},
                ]
            },
            headers=seller_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"] == {"updatedCount": 2}

    def test_rename_value_is_visible_on_variants(
        self, client: TestClient, seller_headers: dict, tshirt: dict
    ) -> None:
        color = option_named(tshirt, "color")
        red = value_named(color, "red")
        response = client.put(
            f"/api/products/{tshirt['id']}/options/{color['id']}/values/{red['id']}",
            json={"value": "crimson"},
            headers=seller_headers,
        )
        assert response.status_code == 200

        response = client.get(f"/api/products/{tshirt['id']}/variants/find?color=crimson", headers=seller_headers)
        assert response.status_code == 200
        assert response.json()["data"]["sku"] == "TS-RED-S"

    def test_delete_used_value_refused(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        color = option_named(tshirt, "color")
        red = value_named(color, "red")
        response = client.delete(
            f"/api/products/{tshirt['id']}/options/{color['id']}/values/{red['id']}", headers=seller_headers
        )
        assert response.status_code == 409
        assert response.json()["errorCode"] == "OPTION_VALUE_IN_USE"

    def test_delete_unused_value(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        color = option_named(tshirt, "color")
        green = client.post(
            f"/api/products/{tshirt['id']}/options/{color['id']}/values",
            json={"value": "green"},
            headers=seller_headers,
        ).json()["data"]

        response = client.delete(
            f"/api/products/{tshirt['id']}/options/{color['id']}/values/{green['id']}", headers=seller_headers
        )
        assert response.status_code == 204

    def test_value_of_other_option_not_found(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        color = option_named(tshirt, "color")
        small = value_named(option_named(tshirt, "size"), "s")
        response = client.put(
            f"/api/products/{tshirt['id']}/options/{color['id']}/values/{small['id']}",
            json={"displayName": "Small"},
            headers=seller_headers,
        )
        assert response.status_code == 404
        assert response.json()["errorCode"] == "OPTION_VALUE_NOT_FOUND"

    def test_blank_value_display_name_rejected(self, client: TestClient, seller_headers: dict, tshirt: dict) -> None:
        size = option_named(tshirt, "size")
        small = value_named(size, "s")
        response = client.put(
            f"/api/products/{tshirt['id']}/options/{size['id']}/values/{small['id']}",
            json={"displayName": " "},
            headers=seller_headers,
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "displayName"

        response = client.get(f"/api/products/{tshirt['id']}/options", headers=seller_headers)
        assert value_named(option_named({"options": response.json()["data"]}, "size"), "s")["displayName"] == "s"
