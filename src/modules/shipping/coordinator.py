"""Checkout rate coordinator.

Drives the shopper-facing flow

    IDLE -> LOADING -> RATES_DISPLAYED -> CONFIRMING -> CONFIRMED

over stateless HTTP handlers: the flow snapshot (state, displayed rates,
highlighted option, quote fingerprint, quoted destination) lives in the
shopper's session next to the selection, so each request picks up where
the previous one left off.

Guarantees:
- one rate request, highlight or confirmation at a time per session,
  serialised by an atomic lock in the session store;
- the cheapest rate is highlighted but never persisted until confirmed;
- on confirm the selection is persisted BEFORE the totals-recompute
  callback fires; a failed write reverts to RATES_DISPLAYED and the
  callback does not fire;
- a confirm for rates quoted against other cart contents or another
  destination is rejected.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Iterator, List, Optional

import structlog
from django.conf import settings
from django.utils import timezone

from modules.shipping.constants import CHECKOUT_FIELDS, VALID_TRANSITIONS, RateFlowState
from modules.shipping.dtos import Address, RateQuote, SelectedRate, ShippingLine
from modules.shipping.exceptions import (
    AddressIncomplete,
    CarrierUnavailable,
    ConfirmInFlight,
    FreightRequired,
    InvalidFlowTransition,
    NoRatesAvailable,
    RateNotDisplayed,
    RatesRequestInFlight,
    SessionPersistError,
    StaleQuote,
)
from modules.shipping.services import ShippingRateService, fingerprint_lines

if TYPE_CHECKING:
    from modules.shipping.session import QuoteSession

logger = structlog.get_logger(__name__)

TotalsCallback = Callable[[SelectedRate], None]

RATES_OPERATION = "rates"
CONFIRM_OPERATION = "confirm"
HIGHLIGHT_OPERATION = "highlight"


@dataclass(frozen=True)
class RateOutcome:
    """What the shopper is shown after asking for rates."""

    freight: bool = False
    rates: List[RateQuote] = field(default_factory=list)
    highlighted: Optional[RateQuote] = None
    fingerprint: Optional[str] = None
    placeholder: Optional[ShippingLine] = None


def _in_flight_grace() -> float:
    """Seconds after which a LOADING / CONFIRMING state counts as abandoned."""
    attempts = int(settings.GSS_API_MAX_RETRIES) + 1
    return float(settings.GSS_API_TIMEOUT) * attempts + 5.0


class CheckoutRateCoordinator:
    def __init__(
        self,
        quote_session: QuoteSession,
        rate_service: Optional[ShippingRateService] = None,
        on_totals_changed: Optional[TotalsCallback] = None,
    ) -> None:
        self._session = quote_session
        self._rates = rate_service or ShippingRateService()
        self._on_totals_changed = on_totals_changed
        self._snapshot: Dict[str, Any] = self._load()

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    @staticmethod
    def _empty_snapshot() -> Dict[str, Any]:
        return {
            "state": RateFlowState.IDLE.value,
            "since": None,
            "rates": [],
            "highlighted": None,
            "fingerprint": None,
            "destination": None,
        }

    def _load(self) -> Dict[str, Any]:
        snapshot = self._empty_snapshot()
        snapshot.update(self._session.load_flow() or {})
        return snapshot

    @property
    def state(self) -> RateFlowState:
        return RateFlowState(self._snapshot["state"])

    def _transition(self, new_state: RateFlowState, **changes: Any) -> None:
        current = self.state
        if new_state not in VALID_TRANSITIONS.get(current, set()):
            raise InvalidFlowTransition(f"Cannot move from {current} to {new_state}.")
        self._snapshot.update(changes)
        self._snapshot["state"] = new_state.value
        self._snapshot["since"] = timezone.now().timestamp()
        self._session.save_flow(self._snapshot)
        logger.debug(
            "shipping.flow_transition",
            session_key=self._session.session_key,
            old_state=current.value,
            new_state=new_state.value,
        )

    def _reset_to_idle(self) -> None:
        self._transition(
            RateFlowState.IDLE,
            rates=[],
            highlighted=None,
            fingerprint=None,
            destination=None,
        )

    def _is_in_flight(self, state: RateFlowState) -> bool:
        if self.state != state:
            return False
        since = self._snapshot.get("since")
        if since is None:
            return True
        return timezone.now().timestamp() - float(since) < _in_flight_grace()

    @contextmanager
    def _exclusive(self, operation: str) -> Iterator[None]:
        """Hold the session's flow lock for one rate request, highlight or confirmation.

        The snapshot is re-read once the lock is held, so the state checks
        see whatever the previous holder wrote.
        """
        token = f"{operation}:{uuid.uuid4().hex}"
        if not self._session.acquire_flow_lock(token, timeout=int(_in_flight_grace())):
            holder = self._session.flow_lock_holder() or ""
            if holder.startswith(f"{CONFIRM_OPERATION}:"):
                raise ConfirmInFlight("Shipping selection is being confirmed.")
            if holder.startswith(f"{HIGHLIGHT_OPERATION}:"):
                raise RatesRequestInFlight("Shipping options are being updated.")
            raise RatesRequestInFlight("Shipping rates are already being calculated.")
        try:
            self._snapshot = self._load()
            yield
        finally:
            self._session.release_flow_lock(token)

    def _abandon_stale_request(self) -> None:
        """Recover from a LOADING / CONFIRMING left behind by a dead request."""
        if self.state == RateFlowState.LOADING:
            self._reset_to_idle()
        elif self.state == RateFlowState.CONFIRMING:
            self._transition(RateFlowState.RATES_DISPLAYED)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def displayed_rates(self) -> List[RateQuote]:
        return [RateQuote.model_validate(raw) for raw in self._snapshot["rates"]]

    @property
    def highlighted(self) -> Optional[RateQuote]:
        index = self._snapshot.get("highlighted")
        rates = self.displayed_rates
        if index is None or not 0 <= index < len(rates):
            return None
        return rates[index]

    @property
    def fingerprint(self) -> Optional[str]:
        return self._snapshot.get("fingerprint")

    def button_label(self) -> str:
        return self._session.button_label()

    def hidden_fields(self) -> Dict[str, str]:
        """Values for the six hidden checkout inputs.

        While rates are displayed these mirror the highlighted option;
        otherwise they mirror the committed selection, or are blank.
        """
        if self.state == RateFlowState.RATES_DISPLAYED and self.highlighted:
            return self.highlighted.to_selection().to_checkout_fields()
        selection = self._session.current_selection()
        if selection:
            return selection.to_checkout_fields()
        return {name: "" for name in CHECKOUT_FIELDS}

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def request_rates(self, destination: Address, line_items: Iterable[Any]) -> RateOutcome:
        """Fetch and display rates for the current cart.

        Freight carts short-circuit to the placeholder without a carrier
        call. Validation and carrier failures return the flow to IDLE.

        Raises:
            ConfirmInFlight: a confirmation is still being processed.
            RatesRequestInFlight: a previous rate request has not finished.
            AddressIncomplete: street, city or postcode missing.
            CarrierUnavailable: transport failure talking to the carrier.
            NoRatesAvailable: the carrier returned no usable quote.
        """
        with self._exclusive(RATES_OPERATION):
            return self._request_rates(destination, line_items)

    def _request_rates(self, destination: Address, line_items: Iterable[Any]) -> RateOutcome:
        if self._is_in_flight(RateFlowState.CONFIRMING):
            raise ConfirmInFlight("Shipping selection is being confirmed.")
        if self._is_in_flight(RateFlowState.LOADING):
            raise RatesRequestInFlight("Shipping rates are already being calculated.")
        self._abandon_stale_request()

        log = logger.bind(session_key=self._session.session_key)
        lines = list(line_items)
        decision = self._rates.classify(lines)
        if decision.is_freight:
            if self.state != RateFlowState.IDLE:
                self._reset_to_idle()
            log.info("shipping.freight_short_circuit")
            return RateOutcome(freight=True, placeholder=decision.placeholder)

        self._transition(RateFlowState.LOADING)

        if not destination.is_complete:
            self._reset_to_idle()
            log.info("shipping.address_incomplete")
            raise AddressIncomplete(
                "Please fill in Address, City, and Postcode to calculate shipping."
            )

        try:
            result = self._rates.quote(destination, lines)
        except (CarrierUnavailable, NoRatesAvailable):
            self._reset_to_idle()
            raise

        self._transition(
            RateFlowState.RATES_DISPLAYED,
            rates=[rate.model_dump() for rate in result.rates],
            highlighted=0,
            fingerprint=result.fingerprint,
            destination=destination.model_dump(),
        )
        return RateOutcome(
            rates=result.rates,
            highlighted=result.cheapest,
            fingerprint=result.fingerprint,
        )

    def highlight(self, courier_id: str, quote_id: Optional[str] = None) -> RateQuote:
        """Move the highlight to another displayed option (nothing is persisted).

        Raises:
            RateNotDisplayed: no rates are displayed, or the option is not one of them.
            ConfirmInFlight: a confirmation holds the session.
            RatesRequestInFlight: a rate request or another highlight holds the session.
        """
        with self._exclusive(HIGHLIGHT_OPERATION):
            return self._highlight(courier_id, quote_id)

    def _highlight(self, courier_id: str, quote_id: Optional[str]) -> RateQuote:
        if self.state != RateFlowState.RATES_DISPLAYED:
            raise RateNotDisplayed("No shipping rates are displayed.")
        index = self._find(courier_id, quote_id)
        self._snapshot["highlighted"] = index
        self._session.save_flow(self._snapshot)
        return self.displayed_rates[index]

    def confirm(
        self,
        courier_id: Optional[str] = None,
        quote_id: Optional[str] = None,
        fingerprint: Optional[str] = None,
        line_items: Optional[Iterable[Any]] = None,
    ) -> SelectedRate:
        """Commit the chosen (default: highlighted) displayed rate.

        The cost stored is the one the carrier quoted, never a value sent
        by the client.

        Raises:
            ConfirmInFlight: another confirmation is being processed.
            RatesRequestInFlight: a rate request for this session is running.
            RateNotDisplayed: no rates displayed, or the choice is not one of them.
            StaleQuote: the cart or token no longer matches the quote.
            FreightRequired: the cart became freight since quoting.
            SessionPersistError: the selection could not be written.
        """
        with self._exclusive(CONFIRM_OPERATION):
            return self._confirm(courier_id, quote_id, fingerprint, line_items)

    def _confirm(
        self,
        courier_id: Optional[str],
        quote_id: Optional[str],
        fingerprint: Optional[str],
        line_items: Optional[Iterable[Any]],
    ) -> SelectedRate:
        if self._is_in_flight(RateFlowState.CONFIRMING):
            raise ConfirmInFlight("Shipping selection is already being confirmed.")
        self._abandon_stale_request()
        if self.state != RateFlowState.RATES_DISPLAYED:
            raise RateNotDisplayed("Request shipping rates before confirming.")

        index = (
            self._find(courier_id, quote_id)
            if courier_id
            else self._snapshot.get("highlighted")
        )
        rates = self.displayed_rates
        if index is None or not 0 <= index < len(rates):
            raise RateNotDisplayed("No shipping rate selected.")
        rate = rates[index]

        quoted_for = self.fingerprint
        if fingerprint is not None and fingerprint != quoted_for:
            raise StaleQuote("These rates were quoted for a different cart or address.")
        if line_items is not None:
            lines = list(line_items)
            if self._rates.classify(lines).is_freight:
                self._reset_to_idle()
                raise FreightRequired("This order is shipped as freight.")
            destination = Address.model_validate(self._snapshot["destination"] or {})
            if fingerprint_lines(lines, destination) != quoted_for:
                self._reset_to_idle()
                raise StaleQuote("The cart changed since these rates were quoted.")

        log = logger.bind(
            session_key=self._session.session_key,
            courier_id=rate.carrier_id,
            quote_id=rate.quote_id,
        )
        self._transition(RateFlowState.CONFIRMING, highlighted=index)

        selection = rate.to_selection(quoted_for)
        try:
            self._session.persist_selection(selection)
        except SessionPersistError:
            self._revert_confirm()
            log.warning("shipping.confirm_failed")
            raise

        if self._on_totals_changed is not None:
            self._on_totals_changed(selection)

        self._transition(RateFlowState.CONFIRMED)
        log.info("shipping.confirmed", cost=selection.cost)
        return selection

    def invalidate(self) -> None:
        """Drop the selection and return to IDLE (cart changed)."""
        self._session.clear()
        self._snapshot = self._empty_snapshot()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find(self, courier_id: Optional[str], quote_id: Optional[str]) -> int:
        for index, rate in enumerate(self.displayed_rates):
            if rate.carrier_id != str(courier_id or ""):
                continue
            if quote_id and rate.quote_id != str(quote_id):
                continue
            return index
        raise RateNotDisplayed(f"Rate {courier_id} is not among the displayed options.")

    def _revert_confirm(self) -> None:
        try:
            self._transition(RateFlowState.RATES_DISPLAYED)
        except SessionPersistError as exc:
            logger.error(
                "shipping.flow_revert_failed",
                session_key=self._session.session_key,
                error=str(exc),
            )
