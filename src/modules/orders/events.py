"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Raised when checkout turns a cart into an order."""


@dataclass(frozen=True)
class PaymentCompleted(DomainEvent):
    """Raised when an order's payment succeeds."""


ORDER_EVENTS = (OrderPlaced, PaymentCompleted)
