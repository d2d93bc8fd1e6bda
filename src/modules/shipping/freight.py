"""Freight eligibility.

An order goes to manual freight quoting when it holds more than one unit,
or when any single item weighs more than ``FREIGHT_WEIGHT_THRESHOLD``.

The weight comparison uses the value exactly as configured on the
product, in the store's own unit, not the converted kilograms sent to the
carrier. A 30 lb item (13.6 kg) is therefore freight while a 20 kg item
in a kg store is not.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

import structlog
from django.conf import settings

from modules.shipping.dtos import FreightDecision
from modules.shipping.units import as_float

logger = structlog.get_logger(__name__)


def _product_of(item: Any) -> Optional[Any]:
    return getattr(item, "product", None)


def classify(item_count: int, items: Iterable[Any]) -> FreightDecision:
    """Decide standard vs freight for ``item_count`` units over ``items``.

    ``items`` are line items exposing ``.product`` with a raw ``weight``.
    Lines whose product is missing are ignored.
    """
    if item_count > 1:
        return FreightDecision.freight()

    threshold = float(settings.FREIGHT_WEIGHT_THRESHOLD)
    for item in items:
        product = _product_of(item)
        if product is None:
            continue
        if as_float(getattr(product, "weight", None)) > threshold:
            return FreightDecision.freight()

    return FreightDecision.standard()


def classify_lines(items: Iterable[Any]) -> FreightDecision:
    """Classify a cart or order from its line items (count = summed quantity)."""
    lines = list(items)
    item_count = sum(int(getattr(line, "quantity", 0) or 0) for line in lines)
    decision = classify(item_count, lines)
    logger.debug(
        "shipping.freight_classified",
        item_count=item_count,
        is_freight=decision.is_freight,
    )
    return decision


def classify_cart(cart: Any) -> FreightDecision:
    return classify_lines(cart.live_items())


def classify_order(order: Any) -> FreightDecision:
    return classify_lines(order.items.select_related("product"))
