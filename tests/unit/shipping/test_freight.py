"""Unit tests for freight eligibility.

Covers:
- More than one unit in the cart is always freight.
- A single item heavier than the threshold is freight.
- The weight compared is the raw stored value, not converted kilograms.
- Lines without a product are ignored; non-numeric weight counts as zero.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from modules.shipping.constants import FREIGHT_LABEL, FREIGHT_METHOD_ID
from modules.shipping.freight import classify, classify_cart, classify_lines

pytestmark = pytest.mark.unit


def line(weight, quantity=1):
    return SimpleNamespace(product=SimpleNamespace(weight=weight), quantity=quantity)


class TestClassify:
    def test_single_light_item_is_standard(self):
        decision = classify(1, [line(Decimal("5"))])
        assert decision.is_freight is False
        assert decision.placeholder is None

    def test_two_units_are_freight(self):
        assert classify(2, [line(1), line(1)]).is_freight is True

    def test_heavy_single_item_is_freight(self):
        assert classify(1, [line(Decimal("25.01"))]).is_freight is True

    def test_threshold_itself_is_not_freight(self):
        assert classify(1, [line(25)]).is_freight is False

    def test_raw_weight_is_compared_without_conversion(self, settings):
        settings.STORE_WEIGHT_UNIT = "lb"
        # 30 lb is about 13.6 kg, but the stored value 30 exceeds 25
        assert classify(1, [line(30)]).is_freight is True

    def test_large_gram_weight_counts_as_freight(self, settings):
        settings.STORE_WEIGHT_UNIT = "g"
        # 500 g is light, yet the raw number is above the threshold
        assert classify(1, [line(500)]).is_freight is True

    def test_line_without_product_is_skipped(self):
        assert classify(1, [SimpleNamespace(product=None, quantity=1)]).is_freight is False

    def test_non_numeric_weight_counts_as_zero(self):
        assert classify(1, [line("heavy")]).is_freight is False

    def test_threshold_is_configurable(self, settings):
        settings.FREIGHT_WEIGHT_THRESHOLD = 10
        assert classify(1, [line(12)]).is_freight is True

    def test_freight_carries_zero_cost_placeholder(self):
        placeholder = classify(3, []).placeholder
        assert placeholder.method_id == FREIGHT_METHOD_ID
        assert placeholder.label == FREIGHT_LABEL
        assert placeholder.cost == 0.0


class TestClassifyLines:
    def test_quantity_is_summed(self):
        assert classify_lines([line(1, quantity=2)]).is_freight is True

    def test_single_unit_line(self):
        assert classify_lines([line(1)]).is_freight is False

    def test_classify_cart_uses_live_items(self, make_product):
        from modules.cart.models import Cart, CartItem

        cart = Cart.objects.create(session_key="freight-cart")
        CartItem.objects.create(cart=cart, product=make_product(), quantity=1)
        removed = CartItem.objects.create(cart=cart, product=make_product(), quantity=1)
        removed.delete()

        assert classify_cart(cart).is_freight is False
