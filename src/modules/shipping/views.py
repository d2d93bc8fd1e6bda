"""Shipping API views.

Drive the checkout rate flow for the caller's session through
``CheckoutRateCoordinator``. Domain exceptions are caught and translated
into HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import ViewSet

from modules.cart.repositories.django_repository import CartDjangoRepository
from modules.core.sessions import session_key_for
from modules.shipping.constants import FREIGHT_NOTICE, SELECTION_REQUIRED_NOTICE
from modules.shipping.coordinator import CheckoutRateCoordinator
from modules.shipping.dtos import SelectedRate
from modules.shipping.exceptions import (
    AddressIncomplete,
    CarrierUnavailable,
    ConfirmInFlight,
    FreightRequired,
    NoRatesAvailable,
    RateNotDisplayed,
    RatesRequestInFlight,
    SessionPersistError,
    StaleQuote,
)
from modules.shipping.serializers import (
    HighlightSerializer,
    RateQuoteSerializer,
    RateRequestSerializer,
    SelectedRateSerializer,
    SelectionSerializer,
    ShippingLineSerializer,
)
from modules.shipping.services import ShippingRateService
from modules.shipping.session import quote_session_for

logger = structlog.get_logger(__name__)


def _detail(message: str, code: int, **extra: Any) -> Response:
    return Response({"detail": message, **extra}, status=code)


class ShippingViewSet(ViewSet):
    """Rate picker endpoints under /api/v1/shipping/."""

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "shipping_rates" if self.action == "rates" else None
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _cart_lines(self, session_key: str) -> List[Any]:
        cart = CartDjangoRepository().get_by_session(session_key)
        return list(cart.live_items()) if cart else []

    def _coordinator(self, session_key: str, on_totals_changed=None) -> CheckoutRateCoordinator:
        return CheckoutRateCoordinator(
            quote_session_for(session_key),
            ShippingRateService(),
            on_totals_changed=on_totals_changed,
        )

    @staticmethod
    def _selection_payload(selection: Optional[SelectedRate]) -> Optional[Dict[str, Any]]:
        return SelectedRateSerializer(selection).data if selection else None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/shipping/"""
        session_key = session_key_for(request)
        quote_session = quote_session_for(session_key)
        coordinator = self._coordinator(session_key)
        rate_service = ShippingRateService()

        lines = self._cart_lines(session_key)
        is_freight = bool(lines) and rate_service.classify(lines).is_freight
        line = rate_service.checkout_shipping_line(quote_session, lines) if lines else None

        notice = ""
        if is_freight:
            notice = FREIGHT_NOTICE
        elif line is None:
            notice = SELECTION_REQUIRED_NOTICE

        return Response(
            {
                "state": coordinator.state.value,
                "button_label": coordinator.button_label(),
                "is_freight": is_freight,
                "selection": self._selection_payload(quote_session.current_selection()),
                "rates": RateQuoteSerializer(coordinator.displayed_rates, many=True).data,
                "hidden_fields": coordinator.hidden_fields(),
                "shipping_line": ShippingLineSerializer(line).data if line else None,
                "notice": notice,
            }
        )

    # ------------------------------------------------------------------
    # Rates
    # ------------------------------------------------------------------

    @action(detail=False, methods=["post"])
    def rates(self, request: Request) -> Response:
        """POST /api/v1/shipping/rates/"""
        serializer = RateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session_key = session_key_for(request)
        coordinator = self._coordinator(session_key)
        try:
            outcome = coordinator.request_rates(
                serializer.to_address(), self._cart_lines(session_key)
            )
        except AddressIncomplete as exc:
            return _detail(str(exc), status.HTTP_400_BAD_REQUEST)
        except CarrierUnavailable:
            return _detail(
                "Could not reach the shipping carrier. Please try again.",
                status.HTTP_502_BAD_GATEWAY,
            )
        except NoRatesAvailable as exc:
            return _detail(str(exc), status.HTTP_422_UNPROCESSABLE_ENTITY)
        except (ConfirmInFlight, RatesRequestInFlight) as exc:
            return _detail(str(exc), status.HTTP_409_CONFLICT)
        except SessionPersistError as exc:
            return _detail(str(exc), status.HTTP_503_SERVICE_UNAVAILABLE)

        if outcome.freight:
            return Response(
                {
                    "freight": True,
                    "rate": ShippingLineSerializer(outcome.placeholder).data,
                    "notice": FREIGHT_NOTICE,
                    "button_label": coordinator.button_label(),
                }
            )

        return Response(
            {
                "freight": False,
                "rates": RateQuoteSerializer(outcome.rates, many=True).data,
                "highlighted": RateQuoteSerializer(outcome.highlighted).data,
                "fingerprint": outcome.fingerprint,
                "hidden_fields": coordinator.hidden_fields(),
                "button_label": coordinator.button_label(),
            }
        )

    @action(detail=False, methods=["post"])
    def highlight(self, request: Request) -> Response:
        """POST /api/v1/shipping/highlight/"""
        serializer = HighlightSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        coordinator = self._coordinator(session_key_for(request))
        try:
            rate = coordinator.highlight(
                serializer.validated_data["courier"],
                serializer.validated_data["quote_id"] or None,
            )
        except (RateNotDisplayed, ConfirmInFlight, RatesRequestInFlight) as exc:
            return _detail(str(exc), status.HTTP_409_CONFLICT)
        except SessionPersistError as exc:
            return _detail(str(exc), status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(
            {
                "highlighted": RateQuoteSerializer(rate).data,
                "hidden_fields": coordinator.hidden_fields(),
            }
        )

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @action(detail=False, methods=["post"])
    def selection(self, request: Request) -> Response:
        """POST /api/v1/shipping/selection/

        Confirms one of the displayed rates. The response tells the page
        to refresh its totals.
        """
        serializer = SelectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        session_key = session_key_for(request)
        quote_session = quote_session_for(session_key)
        lines = self._cart_lines(session_key)
        totals: Dict[str, Any] = {}

        def recompute_totals(selection: SelectedRate) -> None:
            totals["shipping_line"] = ShippingRateService().checkout_shipping_line(
                quote_session, lines
            )
            logger.info(
                "shipping.checkout_totals_changed",
                session_key=session_key,
                courier_id=selection.courier_id,
            )

        coordinator = self._coordinator(session_key, on_totals_changed=recompute_totals)
        try:
            selection = coordinator.confirm(
                courier_id=data["courier"] or None,
                quote_id=data["quote_id"] or None,
                fingerprint=data["fingerprint"] or None,
                line_items=lines,
            )
        except (
            ConfirmInFlight,
            RatesRequestInFlight,
            RateNotDisplayed,
            StaleQuote,
            FreightRequired,
        ) as exc:
            return _detail(str(exc), status.HTTP_409_CONFLICT)
        except SessionPersistError as exc:
            return _detail(str(exc), status.HTTP_503_SERVICE_UNAVAILABLE)

        line = totals.get("shipping_line")
        return Response(
            {
                "selection": self._selection_payload(selection),
                "update_checkout": True,
                "shipping_line": ShippingLineSerializer(line).data if line else None,
                "hidden_fields": selection.to_checkout_fields(),
                "button_label": coordinator.button_label(),
            }
        )
