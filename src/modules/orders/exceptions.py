"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The requested order does not exist."""


class InvalidOrderStatus(Exception):
    """An invalid status transition was attempted."""


class EmptyCart(Exception):
    """Checkout was submitted for a cart without any lines."""


class ShippingSelectionRequired(Exception):
    """A standard (non-freight) order needs a confirmed shipping rate."""
