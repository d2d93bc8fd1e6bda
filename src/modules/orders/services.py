"""Order service layer (Use Cases).

Orchestrates checkout submission and payment completion. All write
operations are atomic; the service defines the unit-of-work boundary.

Business rules enforced:
- An empty cart cannot be checked out.
- A standard (non-freight) order needs a confirmed shipping rate with a
  positive cost; the submitted hidden fields must name the same courier.
- Freight orders are placed with a zero shipping total and no courier.
- The shipping selection is copied onto the order and a label job is
  scheduled (``OrderFulfillmentTrigger``).
- Placing the order empties the cart; completing payment resets the
  shopper's shipping selection (both through published events).
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Callable, List, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.cart.services import CartService
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderPlaced, PaymentCompleted
from modules.orders.exceptions import (
    EmptyCart,
    InvalidOrderStatus,
    OrderNotFound,
    ShippingSelectionRequired,
)
from modules.orders.fulfillment import OrderFulfillmentTrigger
from modules.shipping.constants import SELECTION_REQUIRED_NOTICE
from modules.shipping.services import ShippingRateService
from modules.shipping.session import quote_session_for
from shared.infrastructure.bus import event_bus as default_event_bus

if TYPE_CHECKING:
    from modules.cart.models import CartItem
    from modules.cart.repositories.interfaces import ICartRepository
    from modules.orders.dtos import PlaceOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.shipping.dtos import SelectedRate
    from modules.shipping.session import QuoteSession
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        cart_repository: ICartRepository,
        rate_service: Optional[ShippingRateService] = None,
        fulfillment: Optional[OrderFulfillmentTrigger] = None,
        quote_session_factory: Callable[[str], QuoteSession] = quote_session_for,
        event_bus: Optional[IEventBus] = None,
    ) -> None:
        self._order_repo = order_repository
        self._cart_repo = cart_repository
        self._bus = event_bus or default_event_bus
        self._rate_service = rate_service or ShippingRateService()
        self._fulfillment = fulfillment or OrderFulfillmentTrigger(order_repository)
        self._quote_session_factory = quote_session_factory
        self._cart_service = CartService(cart_repository, event_bus=self._bus)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def place_order(self, dto: PlaceOrderDTO) -> Order:
        """Turn the session's cart into an order.

        Steps:
        1. Load the live cart lines.
        2. Classify freight vs standard; standard needs a confirmed rate.
        3. Persist order + items with price snapshots and totals.
        4. Copy the selection onto the order, schedule the label job.
        5. Publish ``OrderPlaced`` and empty the cart.

        Raises:
            EmptyCart: the cart has no lines.
            ShippingSelectionRequired: standard order without a usable selection.
        """
        log = logger.bind(session_key=dto.session_key)
        log.info("order.checkout_started")

        cart = self._cart_repo.get_by_session(dto.session_key)
        lines: List[CartItem] = list(cart.live_items()) if cart else []
        if not lines:
            raise EmptyCart("Your cart is empty.")

        decision = self._rate_service.classify(lines)
        selection: Optional[SelectedRate] = None
        shipping_total = Decimal("0.00")
        if not decision.is_freight:
            selection = self._resolve_selection(dto, lines)
            shipping_total = Decimal(f"{selection.cost:.2f}")

        order = self._order_repo.create(
            {
                "session_key": dto.session_key,
                "billing_first_name": dto.billing_first_name,
                "billing_last_name": dto.billing_last_name,
                "billing_email": dto.billing_email,
                "recipient_name": dto.destination.name,
                "street": dto.destination.street,
                "suburb": dto.destination.suburb,
                "city": dto.destination.city,
                "postcode": dto.destination.postcode,
                "country_code": dto.destination.country_code,
                "is_freight": decision.is_freight,
                "shipping_total": shipping_total,
                "notes": dto.notes or "",
                "items": [
                    {
                        "product": line.product,
                        "quantity": line.quantity,
                        "unit_price": line.product.price,
                    }
                    for line in lines
                ],
            }
        )

        self._fulfillment.on_order_placed(order, selection)

        order.add_domain_event(
            OrderPlaced(aggregate_id=order.id, session_key=dto.session_key)
        )
        self._publish(order)
        self._cart_service.empty(dto.session_key)

        log.info(
            "order.placed",
            order_id=str(order.id),
            order_number=order.order_number,
            is_freight=decision.is_freight,
            total_amount=str(order.total_amount),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def complete_payment(self, order_id: str) -> Order:
        """Mark an order paid and reset the shopper's shipping selection.

        Acquires a row-level lock (``SELECT FOR UPDATE``) on the order
        before validating the transition.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: order is not awaiting payment.
        """
        order = self._order_repo.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), current_status=order.status)
        if not order.can_transition_to(OrderStatus.PAID):
            log.warning("order.invalid_transition", new_status=OrderStatus.PAID)
            raise InvalidOrderStatus(f"Cannot pay for an order in status {order.status}.")

        self._order_repo.update_fields(
            order, {"status": OrderStatus.PAID, "paid_at": timezone.now()}
        )
        order.add_domain_event(
            PaymentCompleted(aggregate_id=order.id, session_key=order.session_key)
        )
        self._publish(order)

        log.info("order.payment_completed")
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_selection(self, dto: PlaceOrderDTO, lines: List[CartItem]) -> SelectedRate:
        """The confirmed selection this order ships with.

        The session's confirmed rate is authoritative; the hidden fields
        only have to agree with it on the courier.
        """
        quote_session = self._quote_session_factory(dto.session_key)
        line = self._rate_service.checkout_shipping_line(
            quote_session, lines, dto.destination
        )
        confirmed = quote_session.current_selection()
        if line is None or confirmed is None:
            raise ShippingSelectionRequired(SELECTION_REQUIRED_NOTICE)

        submitted = dto.selection
        if submitted is not None and submitted.courier_id != confirmed.courier_id:
            logger.warning(
                "order.selection_mismatch",
                session_key=dto.session_key,
                submitted=submitted.courier_id,
                confirmed=confirmed.courier_id,
            )
            raise ShippingSelectionRequired(
                "The shipping option changed. Please select it again."
            )
        return confirmed

    def _publish(self, order: Order) -> None:
        self._bus.publish_all(order.pull_domain_events())
