"""Cart DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.cart.models import Cart, CartItem

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class AddCartItemSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class UpdateCartItemSerializer(serializers.Serializer):
    """Quantity zero removes the line."""

    quantity = serializers.IntegerField(min_value=0)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class CartItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    product_sku = serializers.CharField(source="product.sku", read_only=True)
    unit_price = serializers.DecimalField(
        source="product.price", max_digits=10, decimal_places=2, read_only=True
    )

    class Meta:
        model = CartItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_sku",
            "quantity",
            "unit_price",
        ]
        read_only_fields = fields


class CartSerializer(serializers.ModelSerializer):
    items = serializers.SerializerMethodField()
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Cart
        fields = ["id", "items", "item_count", "updated_at"]
        read_only_fields = fields

    def get_items(self, cart: Cart) -> list:
        return CartItemSerializer(cart.live_items(), many=True).data
