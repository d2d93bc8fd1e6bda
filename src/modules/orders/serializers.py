"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.models import Order, OrderItem
from modules.shipping.constants import CHECKOUT_FIELDS

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CheckoutSerializer(serializers.Serializer):
    """Validates the checkout form, including the six hidden shipping fields."""

    billing_first_name = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=100
    )
    billing_last_name = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=100
    )
    billing_email = serializers.EmailField()
    shipping_name = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=200
    )
    shipping_address = serializers.CharField(max_length=255)
    shipping_suburb = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=100
    )
    shipping_city = serializers.CharField(max_length=100)
    shipping_postcode = serializers.CharField(max_length=20)
    shipping_country = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=2
    )
    notes = serializers.CharField(required=False, default="", allow_blank=True)

    gss_selected_courier = serializers.CharField(
        required=False, default="", allow_blank=True
    )
    gss_selected_cost = serializers.CharField(required=False, default="", allow_blank=True)
    gss_selected_name = serializers.CharField(required=False, default="", allow_blank=True)
    gss_quote_id = serializers.CharField(required=False, default="", allow_blank=True)
    gss_carrier_service = serializers.CharField(
        required=False, default="", allow_blank=True
    )
    gss_carrier_name = serializers.CharField(required=False, default="", allow_blank=True)

    def hidden_fields(self) -> dict:
        return {name: self.validated_data[name] for name in CHECKOUT_FIELDS}


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with product snapshot."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_sku",
            "quantity",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and shipping metadata."""

    items = OrderItemSerializer(many=True, read_only=True)
    has_shipping_selection = serializers.BooleanField(read_only=True)
    has_label = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "billing_first_name",
            "billing_last_name",
            "billing_email",
            "recipient_name",
            "street",
            "suburb",
            "city",
            "postcode",
            "country_code",
            "is_freight",
            "shipping_courier_id",
            "shipping_cost",
            "shipping_name",
            "shipping_quote_id",
            "shipping_service",
            "shipping_carrier_name",
            "has_shipping_selection",
            "label_url",
            "has_label",
            "subtotal",
            "shipping_total",
            "total_amount",
            "notes",
            "paid_at",
            "created_at",
            "updated_at",
            "items",
        ]
        read_only_fields = fields
