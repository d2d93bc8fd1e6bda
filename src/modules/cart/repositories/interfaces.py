"""Cart repository interface.

The cart is addressed by the shopper's session key rather than by id;
the service layer never touches the ORM directly.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.cart.models import Cart, CartItem
    from modules.products.models import Product


class ICartRepository(IRepository["Cart"]):
    @abstractmethod
    def get_by_session(self, session_key: str) -> Optional[Cart]:
        """Return the cart for a session, or ``None`` if none exists yet."""

    @abstractmethod
    def get_or_create_for_session(self, session_key: str) -> Cart:
        """Return the session's cart, creating an empty one on first use."""

    @abstractmethod
    def get_item(
        self, cart: Cart, item_id: str, include_deleted: bool = False
    ) -> Optional[CartItem]:
        """Return a line of ``cart`` by id."""

    @abstractmethod
    def find_live_item(self, cart: Cart, product: Product) -> Optional[CartItem]:
        """Return the live line holding ``product``, if any."""

    @abstractmethod
    def add_item(self, cart: Cart, product: Product, quantity: int) -> CartItem:
        """Create a new line."""

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[Product]:
        """Return a live catalogue product by id."""
