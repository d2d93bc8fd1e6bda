"""Order domain constants.

Status choices and the valid transitions of the order lifecycle as far as
shipping is concerned: an order is placed, then paid (or cancelled).
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending payment"
    PAID = "PAID", "Paid"
    CANCELLED = "CANCELLED", "Cancelled"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: set(),
    OrderStatus.CANCELLED: set(),
}

ORDER_NUMBER_MAX_RETRIES = 5

# Order fields holding the committed shipping selection, in checkout-field order
SHIPPING_METADATA_FIELDS = (
    "shipping_courier_id",
    "shipping_cost",
    "shipping_name",
    "shipping_quote_id",
    "shipping_service",
    "shipping_carrier_name",
)
