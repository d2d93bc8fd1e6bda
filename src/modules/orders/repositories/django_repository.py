"""Django ORM implementation of the Order repository.

All write operations are wrapped in ``transaction.atomic()`` so the
Order aggregate (Order + OrderItems) is persisted atomically.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.orders.models import Order, OrderItem
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        values = dict(data)
        items = values.pop("items", [])
        shipping_total = values.get("shipping_total", Decimal("0.00"))

        order = Order(**values)
        order.save()

        subtotal = Decimal("0.00")
        for item_data in items:
            product = item_data["product"]
            item = OrderItem(
                order=order,
                product=product,
                product_name=product.name,
                product_sku=product.sku,
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            )
            item.save()
            subtotal += item.subtotal

        order.subtotal = subtotal
        order.total_amount = subtotal + Decimal(shipping_total)
        order.save(update_fields=["subtotal", "total_amount"])

        logger.info(
            "order.persisted",
            order_id=str(order.id),
            item_count=len(items),
            total_amount=str(order.total_amount),
        )
        return order

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_fields(self, order: Order, values: Dict[str, Any]) -> Order:
        for field, value in values.items():
            setattr(order, field, value)
        order.save(update_fields=list(values))
        return order

    def save(self, entity: Order) -> Order:
        entity.save()
        return entity

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        try:
            return Order.objects.prefetch_related("items").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return Order.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def items_with_products(self, order: Order) -> List[OrderItem]:
        return list(order.items.select_related("product").order_by("created_at"))
