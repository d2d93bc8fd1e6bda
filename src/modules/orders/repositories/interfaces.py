"""Order repository interface.

Extends ``IRepository[Order]`` with the methods checkout, payment and
fulfilment need. The Service Layer depends exclusively on this
contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root (Order + OrderItems)."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` holds the Order field values plus ``items``: a list of
        dicts with ``product``, ``quantity`` and ``unit_price``.
        """

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row lock (``SELECT FOR UPDATE``)."""

    @abstractmethod
    def update_fields(self, order: Order, values: Dict[str, Any]) -> Order:
        """Assign ``values`` and persist them in a single save."""

    @abstractmethod
    def items_with_products(self, order: Order) -> Iterable[Any]:
        """Order lines with their products loaded."""
