"""Cart service layer.

Every content mutation records one cart event on the aggregate and
publishes it once the change is written. The shipping module listens to
these to drop any rate the shopper chose for the previous contents.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog
from django.db import transaction

from modules.cart.events import (
    CartEmptied,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartItemRestored,
)
from modules.cart.exceptions import CartItemNotFound, InvalidQuantity
from modules.products.exceptions import InactiveProduct, ProductNotFound
from shared.infrastructure.bus import event_bus as default_event_bus

if TYPE_CHECKING:
    from modules.cart.models import Cart, CartItem
    from modules.cart.repositories.interfaces import ICartRepository
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


class CartService:
    """Application service for cart use-cases."""

    def __init__(
        self,
        cart_repository: ICartRepository,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        self._cart_repo = cart_repository
        self._bus = event_bus or default_event_bus

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_cart(self, session_key: str) -> Cart:
        return self._cart_repo.get_or_create_for_session(session_key)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_item(self, session_key: str, product_id: str, quantity: int = 1) -> CartItem:
        """Add ``quantity`` units of a product, merging into an existing line."""
        if quantity < 1:
            raise InvalidQuantity("Quantity must be at least 1.")

        product = self._cart_repo.get_product(product_id)
        if not product:
            raise ProductNotFound(f"Product {product_id} not found.")
        if not product.is_active:
            raise InactiveProduct(f"Product {product_id} is inactive.")

        cart = self._cart_repo.get_or_create_for_session(session_key)
        item = self._cart_repo.find_live_item(cart, product)
        if item:
            item.quantity += quantity
            item.save(update_fields=["quantity"])
        else:
            item = self._cart_repo.add_item(cart, product, quantity)

        logger.info(
            "cart.item_added",
            cart_id=str(cart.id),
            product_id=str(product.id),
            quantity=item.quantity,
        )
        self._record(cart, CartItemAdded)
        return item

    @transaction.atomic
    def update_quantity(self, session_key: str, item_id: str, quantity: int) -> Optional[CartItem]:
        """Set a line's quantity; zero removes the line."""
        if quantity < 0:
            raise InvalidQuantity("Quantity cannot be negative.")
        if quantity == 0:
            self.remove_item(session_key, item_id)
            return None

        cart, item = self._get_line(session_key, item_id)
        if item.quantity == quantity:
            return item
        item.quantity = quantity
        item.save(update_fields=["quantity"])

        logger.info(
            "cart.quantity_updated",
            cart_id=str(cart.id),
            item_id=str(item.id),
            quantity=quantity,
        )
        self._record(cart, CartItemQuantityUpdated)
        return item

    @transaction.atomic
    def remove_item(self, session_key: str, item_id: str) -> None:
        cart, item = self._get_line(session_key, item_id)
        item.delete()
        logger.info("cart.item_removed", cart_id=str(cart.id), item_id=str(item.id))
        self._record(cart, CartItemRemoved)

    @transaction.atomic
    def restore_item(self, session_key: str, item_id: str) -> CartItem:
        cart, item = self._get_line(session_key, item_id, include_deleted=True)
        if item.restore():
            logger.info(
                "cart.item_restored", cart_id=str(cart.id), item_id=str(item.id)
            )
            self._record(cart, CartItemRestored)
        return item

    @transaction.atomic
    def empty(self, session_key: str) -> None:
        """Remove every line. Publishes ``CartEmptied`` even for an empty cart."""
        cart = self._cart_repo.get_or_create_for_session(session_key)
        removed, _ = cart.items.alive().delete()
        logger.info("cart.emptied", cart_id=str(cart.id), removed=removed)
        self._record(cart, CartEmptied)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_line(
        self, session_key: str, item_id: str, include_deleted: bool = False
    ) -> tuple[Cart, CartItem]:
        cart = self._cart_repo.get_by_session(session_key)
        item = (
            self._cart_repo.get_item(cart, item_id, include_deleted=include_deleted)
            if cart
            else None
        )
        if not cart or not item:
            raise CartItemNotFound(f"Cart item {item_id} not found.")
        return cart, item

    def _record(self, cart: Cart, event_class: type) -> None:
        cart.add_domain_event(
            event_class(aggregate_id=cart.id, session_key=cart.session_key)
        )
        self._bus.publish_all(cart.pull_domain_events())
