"""Domain events for cart content changes.

Every way the contents of a cart can change has exactly one event here;
``CART_EVENTS`` is the closed set registered on the bus.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class CartItemAdded(DomainEvent):
    """A product was added (new line or quantity bump)."""


@dataclass(frozen=True)
class CartItemRemoved(DomainEvent):
    """A line was removed from the cart."""


@dataclass(frozen=True)
class CartItemRestored(DomainEvent):
    """A removed line was restored."""


@dataclass(frozen=True)
class CartItemQuantityUpdated(DomainEvent):
    """A line's quantity was changed."""


@dataclass(frozen=True)
class CartEmptied(DomainEvent):
    """All lines were removed (explicitly or after checkout)."""


CART_EVENTS = (
    CartItemAdded,
    CartItemRemoved,
    CartItemRestored,
    CartItemQuantityUpdated,
    CartEmptied,
)
