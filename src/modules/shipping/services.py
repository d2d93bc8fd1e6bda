"""Shipping rate service (Use Cases).

Builds carrier payloads from cart or order lines, calls the carrier's
``rates`` endpoint and normalises the answer into ``RateQuote`` objects,
cheapest first. Also decides which shipping line, if any, checkout totals
should carry.
"""

from __future__ import annotations

import hashlib
import json
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, List, Optional

import structlog
from django.conf import settings
from pydantic import ValidationError

from modules.shipping.client import RateClient
from modules.shipping.constants import (
    DEFAULT_DELIVERY_TIME,
    RATES_ENDPOINT,
    RATING_ADDRESS_FIELDS,
)
from modules.shipping.dtos import (
    Address,
    FreightDecision,
    PackageDescriptor,
    RateQuote,
    ShippingLine,
)
from modules.shipping.exceptions import CarrierUnavailable, NoRatesAvailable
from modules.shipping.freight import classify_lines
from modules.shipping.packages import build_packages

if TYPE_CHECKING:
    from modules.shipping.session import QuoteSession

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class QuoteResult:
    rates: List[RateQuote]
    packages: List[PackageDescriptor]
    fingerprint: str

    @property
    def cheapest(self) -> RateQuote:
        return self.rates[0]


def _parse_cost(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        cost = float(value)
    except (TypeError, ValueError):
        return None
    return cost if math.isfinite(cost) else None


def normalize_rates(raw_rates: Iterable[Any]) -> List[RateQuote]:
    """Map the carrier's rate entries to ``RateQuote``, cheapest first.

    Entries without a carrier id, or whose cost is missing, non-numeric,
    zero or negative, are dropped. Ties keep the carrier's order.
    """
    quotes: List[RateQuote] = []
    for entry in raw_rates or []:
        if not isinstance(entry, dict):
            continue
        carrier_id = str(entry.get("CarrierId") or "").strip()
        if not carrier_id:
            logger.warning("shipping.rate_entry_without_carrier", entry=entry)
            continue
        cost = _parse_cost(entry.get("Cost"))
        if cost is None or cost <= 0:
            continue
        try:
            quotes.append(
                RateQuote(
                    carrier_id=carrier_id,
                    carrier_name=str(entry.get("CarrierName") or ""),
                    service=str(
                        entry.get("CarrierServiceType") or entry.get("Service") or ""
                    ),
                    quote_id=str(entry.get("QuoteId") or ""),
                    cost=cost,
                    delivery_time=str(entry.get("DeliveryTime") or DEFAULT_DELIVERY_TIME),
                )
            )
        except ValidationError:
            logger.warning("shipping.rate_entry_invalid", entry=entry)
    return sorted(quotes, key=lambda quote: quote.cost)


def fingerprint(packages: Iterable[PackageDescriptor], destination: Address) -> str:
    """Stable digest of what a quote was computed for."""
    document = {
        "packages": [package.model_dump() for package in packages],
        "destination": {
            field: getattr(destination, field) for field in RATING_ADDRESS_FIELDS
        },
    }
    encoded = json.dumps(document, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def fingerprint_lines(line_items: Iterable[Any], destination: Address) -> str:
    return fingerprint(build_packages(line_items), destination)


class ShippingRateService:
    """Application service for carrier rating."""

    def __init__(self, client: Optional[RateClient] = None) -> None:
        self._client = client or RateClient()

    def classify(self, line_items: Iterable[Any]) -> FreightDecision:
        return classify_lines(line_items)

    def build_rate_payload(
        self, destination: Address, packages: List[PackageDescriptor]
    ) -> dict:
        return {
            "origin": Address.sender().to_payload(),
            "destination": destination.to_payload(),
            "packages": [package.to_payload() for package in packages],
        }

    def quote(self, destination: Address, line_items: Iterable[Any]) -> QuoteResult:
        """Fetch live rates for ``line_items`` shipped to ``destination``.

        The caller has already ruled out freight.

        Raises:
            CarrierUnavailable: transport failure or carrier error status.
            NoRatesAvailable: no entry survived normalisation.
        """
        packages = build_packages(line_items)
        log = logger.bind(
            package_count=len(packages),
            postcode=destination.postcode,
            country=destination.country_code,
        )
        log.info("shipping.rates_requested")

        result = self._client.request(
            RATES_ENDPOINT, self.build_rate_payload(destination, packages)
        )
        if not result.success:
            log.warning("shipping.rates_unavailable", error=result.error)
            raise CarrierUnavailable(result.error or "Carrier request failed.")

        available = result.data.get("Available") if isinstance(result.data, dict) else None
        rates = normalize_rates(available or [])
        if not rates:
            log.info("shipping.no_rates")
            raise NoRatesAvailable("No valid shipping options available.")

        log.info("shipping.rates_received", rate_count=len(rates), cheapest=rates[0].cost)
        return QuoteResult(
            rates=rates,
            packages=packages,
            fingerprint=fingerprint(packages, destination),
        )

    def checkout_shipping_line(
        self,
        quote_session: QuoteSession,
        line_items: Iterable[Any],
        destination: Optional[Address] = None,
    ) -> Optional[ShippingLine]:
        """The shipping line checkout totals should include.

        Freight carts always get the zero-cost placeholder. Otherwise the
        shopper's confirmed selection, if it has a positive cost; ``None``
        means checkout stays blocked until a rate is chosen. With
        ``SHIPPING_ENFORCE_FINGERPRINT`` a selection quoted for other
        contents or another destination is ignored.
        """
        lines = list(line_items)
        decision = self.classify(lines)
        if decision.is_freight:
            return decision.placeholder

        expected = None
        if settings.SHIPPING_ENFORCE_FINGERPRINT and destination is not None:
            expected = fingerprint_lines(lines, destination)
        return quote_session.shipping_line(expected)
