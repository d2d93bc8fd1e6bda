"""Shopping cart scoped to a shopper's checkout session.

A ``Cart`` is keyed by the Django session key. Lines are soft-deleted on
removal so that "undo" (restore) brings the same line back.
"""

from __future__ import annotations

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, SoftDeleteModel
from shared.domain.events import DomainEventMixin


class Cart(DomainEventMixin, BaseModel):
    session_key = models.CharField(max_length=64, unique=True)

    class Meta:
        db_table = "carts"

    def live_items(self) -> models.QuerySet:
        return self.items.alive().select_related("product").order_by("created_at")

    @property
    def item_count(self) -> int:
        """Total units in the cart (sum of line quantities)."""
        return sum(item.quantity for item in self.live_items())

    def __str__(self) -> str:
        return f"Cart {self.session_key}"


class CartItem(SoftDeleteModel):
    cart = models.ForeignKey(
        "cart.Cart",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="cart_items",
    )
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )

    class Meta:
        db_table = "cart_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="cart_items_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product} x{self.quantity}"
