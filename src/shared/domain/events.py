"""Domain event primitives shared by the cart, shipping and order modules.

Aggregates (``Cart``, ``Order``) record events while a use case runs;
the service publishes them on the bus once the change is written, so
handlers such as the shipping-selection reset never observe a half-made
change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID, uuid4


@dataclass(frozen=True)
class DomainEvent:
    """Base domain event (immutable).

    ``session_key`` identifies the shopper whose checkout session the event
    concerns; handlers use it to address per-session state. Events raised
    outside a shopper session (admin actions, jobs) leave it blank.
    """

    aggregate_id: UUID
    session_key: str = ""
    event_id: UUID = field(default_factory=uuid4)
    occurred_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_name: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_name", self.__class__.__name__)

    def log_context(self) -> Dict[str, Any]:
        return {
            "event_name": self.event_name,
            "event_id": str(self.event_id),
            "aggregate_id": str(self.aggregate_id),
        }


class DomainEventMixin:
    """Collects an aggregate's pending events until its service publishes them."""

    _domain_events: list[DomainEvent]

    def _pending(self) -> list[DomainEvent]:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        return self._domain_events

    def add_domain_event(self, event: DomainEvent) -> None:
        self._pending().append(event)

    def pull_domain_events(self) -> list[DomainEvent]:
        """Hand over the pending events and forget them."""
        events = list(self._pending())
        self._domain_events = []
        return events

    @property
    def domain_events(self) -> list[DomainEvent]:
        return list(self._pending())
