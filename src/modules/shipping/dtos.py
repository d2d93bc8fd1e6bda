"""Shipping value objects.

Immutable Pydantic v2 models shared by the rate service, the quote
session, the checkout coordinator and the label job.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from django.conf import settings
from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.shipping.constants import (
    CHECKOUT_FIELDS,
    DEFAULT_DELIVERY_TIME,
    FREIGHT_LABEL,
    FREIGHT_METHOD_ID,
    METHOD_ID,
)


class Address(BaseModel):
    """A postal address, built fresh per request from form or order fields."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    street: str = ""
    suburb: str = ""
    city: str = ""
    postcode: str = ""
    country_code: str = Field(default="", validate_default=True)

    @field_validator("name", "street", "suburb", "city", "postcode", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("country_code", mode="before")
    @classmethod
    def default_country(cls, v: Any) -> str:
        code = str(v).strip().upper() if v is not None else ""
        return code or settings.SHIPPING_DEFAULT_COUNTRY

    @property
    def is_complete(self) -> bool:
        """Street, city and postcode are the minimum the carrier can rate."""
        return bool(self.street and self.city and self.postcode)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": {
                "streetaddress": self.street,
                "suburb": self.suburb,
                "city": self.city,
                "postcode": self.postcode,
                "countrycode": self.country_code,
            },
        }

    @classmethod
    def sender(cls) -> Address:
        """The fixed origin configured for this installation."""
        return cls(
            name=settings.GSS_SENDER_NAME,
            street=settings.GSS_SENDER_ADDRESS,
            suburb=settings.GSS_SENDER_SUBURB,
            city=settings.GSS_SENDER_CITY,
            postcode=settings.GSS_SENDER_POSTCODE,
            country_code=settings.GSS_SENDER_COUNTRY,
        )


class PackageDescriptor(BaseModel):
    """One physically shippable box, in kg and cm."""

    model_config = ConfigDict(frozen=True)

    name: str
    kg: float
    length: float
    width: float
    height: float

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump()


class RateQuote(BaseModel):
    """A priced option parsed from the carrier's rate list."""

    model_config = ConfigDict(frozen=True)

    carrier_id: str
    carrier_name: str = ""
    service: str = ""
    quote_id: str = ""
    cost: float = Field(ge=0)
    delivery_time: str = DEFAULT_DELIVERY_TIME

    def to_selection(self, fingerprint: Optional[str] = None) -> SelectedRate:
        return SelectedRate(
            courier_id=self.carrier_id,
            cost=self.cost,
            name=self.carrier_name,
            quote_id=self.quote_id,
            service=self.service,
            carrier_name=self.carrier_name,
            fingerprint=fingerprint,
        )


class SelectedRate(BaseModel):
    """The rate a shopper has committed to, carried from quote to order."""

    model_config = ConfigDict(frozen=True)

    courier_id: str
    cost: float
    name: str = ""
    quote_id: str = ""
    service: str = ""
    carrier_name: str = ""
    fingerprint: Optional[str] = None

    @field_validator("courier_id", "name", "quote_id", "service", "carrier_name", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    @property
    def is_valid(self) -> bool:
        return bool(self.courier_id) and self.cost > 0

    def to_checkout_fields(self) -> Dict[str, str]:
        """The six hidden checkout inputs, in ``CHECKOUT_FIELDS`` order."""
        values = (
            self.courier_id,
            f"{self.cost:.2f}",
            self.name,
            self.quote_id,
            self.service,
            self.carrier_name or self.name,
        )
        return dict(zip(CHECKOUT_FIELDS, values))

    @classmethod
    def from_checkout_fields(cls, data: Dict[str, Any]) -> Optional[SelectedRate]:
        """Rebuild a selection from submitted form fields; ``None`` if no courier."""
        courier = str(data.get("gss_selected_courier") or "").strip()
        if not courier:
            return None
        try:
            cost = float(data.get("gss_selected_cost") or 0)
        except (TypeError, ValueError):
            cost = 0.0
        return cls(
            courier_id=courier,
            cost=cost,
            name=data.get("gss_selected_name"),
            quote_id=data.get("gss_quote_id"),
            service=data.get("gss_carrier_service"),
            carrier_name=data.get("gss_carrier_name"),
        )


class ShippingLine(BaseModel):
    """The shipping line added to checkout totals."""

    model_config = ConfigDict(frozen=True)

    method_id: str
    label: str
    cost: float

    @classmethod
    def freight_placeholder(cls) -> ShippingLine:
        return cls(method_id=FREIGHT_METHOD_ID, label=FREIGHT_LABEL, cost=0.0)

    @classmethod
    def from_selection(cls, selection: SelectedRate, instance_id: str = "") -> ShippingLine:
        method_id = f"{METHOD_ID}:{instance_id}" if instance_id else METHOD_ID
        return cls(
            method_id=method_id,
            label=selection.name or "GoSweetSpot Shipping",
            cost=selection.cost,
        )


class FreightDecision(BaseModel):
    """Outcome of the freight check; freight carries a zero-cost placeholder."""

    model_config = ConfigDict(frozen=True)

    is_freight: bool
    placeholder: Optional[ShippingLine] = None

    @classmethod
    def freight(cls) -> FreightDecision:
        return cls(is_freight=True, placeholder=ShippingLine.freight_placeholder())

    @classmethod
    def standard(cls) -> FreightDecision:
        return cls(is_freight=False)
