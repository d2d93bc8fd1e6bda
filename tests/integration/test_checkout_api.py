"""Integration tests for checkout submission and order endpoints."""

from __future__ import annotations

from decimal import Decimal

import pytest
from django.core import mail
from rest_framework.test import APIClient

from modules.orders.models import Order
from modules.shipping.constants import SELECTION_REQUIRED_NOTICE

pytestmark = pytest.mark.integration

CHECKOUT_URL = "/api/v1/checkout/"
CART_ITEMS_URL = "/api/v1/cart/items/"

CHECKOUT_FORM = {
    "billing_first_name": "Aroha",
    "billing_last_name": "Smith",
    "billing_email": "aroha@example.com",
    "shipping_name": "Aroha Smith",
    "shipping_address": "12 Queen Street",
    "shipping_suburb": "Grey Lynn",
    "shipping_city": "Auckland",
    "shipping_postcode": "1021",
    "shipping_country": "NZ",
}


@pytest.fixture()
def add_to_cart(api_client):
    def _add(product, quantity=1):
        response = api_client.post(
            CART_ITEMS_URL,
            {"product_id": str(product.id), "quantity": quantity},
            format="json",
        )
        assert response.status_code == 201

    return _add


class TestCheckoutValidation:
    def test_empty_cart(self, api_client):
        response = api_client.post(CHECKOUT_URL, CHECKOUT_FORM, format="json")

        assert response.status_code == 400
        assert response.json()["detail"] == "Your cart is empty."

    @pytest.mark.parametrize("field", ["shipping_address", "shipping_city", "shipping_postcode"])
    def test_address_required(self, api_client, field):
        form = {k: v for k, v in CHECKOUT_FORM.items() if k != field}
        response = api_client.post(CHECKOUT_URL, form, format="json")
        assert response.status_code == 400
        assert field in response.json()

    def test_invalid_email(self, api_client):
        response = api_client.post(
            CHECKOUT_URL, {**CHECKOUT_FORM, "billing_email": "nope"}, format="json"
        )
        assert response.status_code == 400

    def test_standard_cart_without_selection(self, api_client, add_to_cart, light_product):
        add_to_cart(light_product)

        response = api_client.post(CHECKOUT_URL, CHECKOUT_FORM, format="json")

        assert response.status_code == 409
        assert response.json()["detail"] == SELECTION_REQUIRED_NOTICE
        assert not Order.objects.exists()


class TestFreightCheckout:
    def test_places_freight_order_and_emails(
        self, api_client, add_to_cart, heavy_product, django_capture_on_commit_callbacks
    ):
        add_to_cart(heavy_product)

        with django_capture_on_commit_callbacks(execute=True):
            response = api_client.post(CHECKOUT_URL, CHECKOUT_FORM, format="json")

        data = response.json()
        assert response.status_code == 201
        assert data["is_freight"] is True
        assert data["shipping_courier_id"] == ""
        assert Decimal(data["shipping_total"]) == Decimal("0.00")
        assert Decimal(data["total_amount"]) == Decimal("49.90")

        recipients = sorted(message.to[0] for message in mail.outbox)
        assert recipients == ["aroha@example.com", "shipping-admin@example.com"]
        assert api_client.get("/api/v1/cart/").json()["items"] == []


class TestOrderEndpoints:
    @pytest.fixture()
    def order(self, make_order, api_client):
        api_client.get("/api/v1/cart/")
        session_key = api_client.cookies["sessionid"].value
        return make_order(session_key=session_key)

    def test_owner_can_read(self, api_client, order):
        response = api_client.get(f"/api/v1/orders/{order.id}/")

        assert response.status_code == 200
        assert response.json()["order_number"] == order.order_number
        assert len(response.json()["items"]) == 1
        assert response.json()["has_shipping_selection"] is True
        assert response.json()["has_label"] is False

    def test_other_session_gets_404(self, order):
        assert APIClient().get(f"/api/v1/orders/{order.id}/").status_code == 404

    def test_unknown_order(self, api_client):
        assert api_client.get("/api/v1/orders/not-an-id/").status_code == 404

    def test_pay(self, api_client, order):
        response = api_client.post(f"/api/v1/orders/{order.id}/pay/")

        assert response.status_code == 200
        assert response.json()["status"] == "PAID"
        assert response.json()["paid_at"] is not None

    def test_pay_twice(self, api_client, order):
        api_client.post(f"/api/v1/orders/{order.id}/pay/")
        response = api_client.post(f"/api/v1/orders/{order.id}/pay/")
        assert response.status_code == 409
