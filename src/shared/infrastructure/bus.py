"""In-memory event bus implementation."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set, Type

import structlog

from shared.domain.bus import IEventBus, IEventHandler, UnknownEventType
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Synchronous in-process event bus over a closed set of event types.

    With ``allowed_events=None`` any ``DomainEvent`` subclass is accepted.
    Otherwise only registered classes may be subscribed to or published;
    modules declare their events with ``register`` when the app loads.
    """

    def __init__(
        self, allowed_events: Optional[Iterable[Type[DomainEvent]]] = None
    ) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}
        self._allowed: Optional[Set[Type[DomainEvent]]] = (
            set(allowed_events) if allowed_events is not None else None
        )

    def register(self, *event_classes: Type[DomainEvent]) -> None:
        if self._allowed is None:
            return
        self._allowed.update(event_classes)

    def _check(self, event_class: Type[DomainEvent]) -> None:
        if self._allowed is not None and event_class not in self._allowed:
            raise UnknownEventType(f"{event_class.__name__} is not a bus event.")

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        self._check(event_class)
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, event: DomainEvent) -> None:
        self._check(type(event))
        handlers = self._handlers.get(type(event), [])
        logger.debug(
            "event_bus.published", handler_count=len(handlers), **event.log_context()
        )
        for handler in handlers:
            handler.handle(event)

    def publish_all(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            self.publish(event)


# Global bus instance (singleton); event classes are registered by each
# module's AppConfig.ready().

event_bus = InMemoryEventBus(allowed_events=())
