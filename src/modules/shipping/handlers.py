"""Event handlers for cart and order events that affect shipping."""

from __future__ import annotations

from typing import Callable, Optional

import structlog
from django.db import transaction

from modules.orders.events import OrderPlaced
from modules.shipping.session import CacheSessionStore, ISessionStore, QuoteSession
from shared.domain.bus import IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class ClearShippingSelectionHandler(IEventHandler[DomainEvent]):
    """Forget a shopper's rate choice whenever their cart contents change.

    Subscribed to every cart content event and to payment completion.
    """

    def __init__(self, store_factory: Callable[[], ISessionStore] = CacheSessionStore) -> None:
        self._store_factory = store_factory

    def handle(self, event: DomainEvent) -> None:
        if not event.session_key:
            logger.debug("shipping.clear_skipped", event_name=event.event_name)
            return
        logger.info(
            "shipping.clearing_selection",
            session_key=event.session_key,
            **event.log_context(),
        )
        QuoteSession(self._store_factory(), event.session_key).clear()


class FreightOrderNotificationHandler(IEventHandler[OrderPlaced]):
    """Email customer and admin once a freight order is committed."""

    def __init__(self, notify: Optional[Callable] = None) -> None:
        self._notify = notify

    def handle(self, event: OrderPlaced) -> None:
        from modules.orders.models import Order

        order = Order.objects.filter(id=event.aggregate_id).first()
        if order is None or not order.is_freight:
            return

        from modules.shipping.notifications import notify_freight_order

        notify = self._notify or notify_freight_order
        logger.info("shipping.freight_order_placed", order_id=str(order.id))
        transaction.on_commit(lambda: notify(order))


clear_selection_handler = ClearShippingSelectionHandler()
freight_order_handler = FreightOrderNotificationHandler()
