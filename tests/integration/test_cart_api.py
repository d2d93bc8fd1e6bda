"""Integration tests for the session cart API."""

from __future__ import annotations

import uuid

import pytest

from modules.products.models import ProductStatus

pytestmark = pytest.mark.integration

CART_URL = "/api/v1/cart/"
ITEMS_URL = "/api/v1/cart/items/"


def item_url(item_id):
    return f"{ITEMS_URL}{item_id}/"


@pytest.fixture()
def line(api_client, light_product):
    response = api_client.post(
        ITEMS_URL, {"product_id": str(light_product.id), "quantity": 2}, format="json"
    )
    assert response.status_code == 201
    return response.json()


class TestCartRead:
    def test_new_session_has_empty_cart(self, api_client):
        response = api_client.get(CART_URL)

        assert response.status_code == 200
        assert response.json()["items"] == []
        assert response.json()["item_count"] == 0
        assert "sessionid" in response.cookies

    def test_lists_lines(self, api_client, line):
        data = api_client.get(CART_URL).json()

        assert data["item_count"] == 2
        assert data["items"][0]["product_name"] == "Desk Lamp"
        assert data["items"][0]["unit_price"] == "49.90"

    def test_carts_are_per_session(self, api_client, line):
        from rest_framework.test import APIClient

        assert APIClient().get(CART_URL).json()["items"] == []


class TestCartItems:
    def test_unknown_product(self, api_client):
        response = api_client.post(ITEMS_URL, {"product_id": str(uuid.uuid4())}, format="json")
        assert response.status_code == 404

    def test_inactive_product(self, api_client, make_product):
        product = make_product(status=ProductStatus.INACTIVE)
        response = api_client.post(ITEMS_URL, {"product_id": str(product.id)}, format="json")
        assert response.status_code == 400

    def test_invalid_payload(self, api_client):
        response = api_client.post(ITEMS_URL, {"product_id": "nope"}, format="json")
        assert response.status_code == 400

    def test_update_quantity(self, api_client, line):
        response = api_client.patch(item_url(line["id"]), {"quantity": 3}, format="json")

        assert response.status_code == 200
        assert response.json()["quantity"] == 3

    def test_zero_quantity_removes(self, api_client, line):
        response = api_client.patch(item_url(line["id"]), {"quantity": 0}, format="json")

        assert response.status_code == 204
        assert api_client.get(CART_URL).json()["items"] == []

    def test_delete_and_restore(self, api_client, line):
        assert api_client.delete(item_url(line["id"])).status_code == 204
        assert api_client.delete(item_url(line["id"])).status_code == 404

        response = api_client.post(f"{item_url(line['id'])}restore/")

        assert response.status_code == 200
        assert response.json()["quantity"] == 2
        assert api_client.get(CART_URL).json()["item_count"] == 2

    def test_other_session_cannot_touch_line(self, line):
        from rest_framework.test import APIClient

        response = APIClient().delete(item_url(line["id"]))
        assert response.status_code == 404

    def test_empty(self, api_client, line):
        response = api_client.post(f"{CART_URL}empty/")

        assert response.status_code == 200
        assert response.json()["items"] == []
