"""Order and OrderItem models.

Business rules implemented:
- Order number auto-generated as human-readable identifier.
- The shipping address is copied onto the order at checkout; the label job
  re-derives the carrier payload from it later.
- The six shipping-selection fields are written together in one save.
- ``is_freight`` orders carry no selection and get a manual freight quote.
- OrderItem snapshots product name, SKU and price at checkout time.
- OrderItem subtotal is always ``quantity * unit_price`` (calculated on save).
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from shared.domain.events import DomainEventMixin


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references and API lookups.

    ``session_key`` records the checkout session the order came from so
    that payment completion can reset that shopper's shipping selection.
    """

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    session_key = models.CharField(max_length=64, blank=True, default="", db_index=True)
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )

    # Billing contact
    billing_first_name = models.CharField(max_length=100, blank=True, default="")
    billing_last_name = models.CharField(max_length=100, blank=True, default="")
    billing_email = models.EmailField()

    # Ship-to address
    recipient_name = models.CharField(max_length=200, blank=True, default="")
    street = models.CharField(max_length=255)
    suburb = models.CharField(max_length=100, blank=True, default="")
    city = models.CharField(max_length=100)
    postcode = models.CharField(max_length=20)
    country_code = models.CharField(max_length=2, default="NZ")

    # Shipping selection carried over from checkout
    is_freight = models.BooleanField(default=False)
    shipping_courier_id = models.CharField(max_length=64, blank=True, default="")
    shipping_cost = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    shipping_name = models.CharField(max_length=255, blank=True, default="")
    shipping_quote_id = models.CharField(max_length=128, blank=True, default="")
    shipping_service = models.CharField(max_length=128, blank=True, default="")
    shipping_carrier_name = models.CharField(max_length=255, blank=True, default="")

    # Label artifact
    label_url = models.CharField(max_length=500, blank=True, default="")
    label_path = models.CharField(max_length=500, blank=True, default="")

    # Totals
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    shipping_total = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    total_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    notes = models.TextField(blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(self.status, set())
        return new_status in allowed

    # ------------------------------------------------------------------
    # Shipping
    # ------------------------------------------------------------------

    @property
    def has_shipping_selection(self) -> bool:
        return bool(self.shipping_courier_id)

    @property
    def has_label(self) -> bool:
        return bool(self.label_url)

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item linking an Order to a Product.

    ``product_name``, ``product_sku`` and ``unit_price`` are snapshots taken
    at checkout. The product FK is kept so the label job can rebuild
    packages from the product's physical attributes.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    product_name = models.CharField(max_length=255)
    product_sku = models.CharField(max_length=64)
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.unit_price:
            unit_price = getattr(self.product, "price", None)
            if unit_price is None:
                raise ValidationError({"unit_price": "Product price is required."})
            self.unit_price = unit_price
        self.subtotal = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity} (${self.subtotal})"
