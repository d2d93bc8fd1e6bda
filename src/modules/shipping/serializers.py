"""Shipping DRF serializers for API input/output.

Input serializers validate the rate-picker requests; output serializers
render the Pydantic value objects for the checkout page.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.shipping.dtos import Address

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class RateRequestSerializer(serializers.Serializer):
    """Destination as typed into the checkout form; blanks are allowed here.

    Completeness (street, city, postcode) is a domain rule checked by the
    coordinator so the shopper gets the dedicated message.
    """

    name = serializers.CharField(required=False, default="", allow_blank=True)
    address = serializers.CharField(required=False, default="", allow_blank=True)
    suburb = serializers.CharField(required=False, default="", allow_blank=True)
    city = serializers.CharField(required=False, default="", allow_blank=True)
    postcode = serializers.CharField(required=False, default="", allow_blank=True)
    country = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=2
    )

    def to_address(self) -> Address:
        data = self.validated_data
        return Address(
            name=data["name"],
            street=data["address"],
            suburb=data["suburb"],
            city=data["city"],
            postcode=data["postcode"],
            country_code=data["country"],
        )


class HighlightSerializer(serializers.Serializer):
    courier = serializers.CharField()
    quote_id = serializers.CharField(required=False, default="", allow_blank=True)


class SelectionSerializer(serializers.Serializer):
    """The rate the shopper confirmed.

    ``cost``, ``name``, ``service`` and ``carrier`` are accepted for form
    compatibility; the stored values come from the displayed quote.
    """

    courier = serializers.CharField(required=False, default="", allow_blank=True)
    quote_id = serializers.CharField(required=False, default="", allow_blank=True)
    fingerprint = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default=None
    )
    cost = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)
    name = serializers.CharField(required=False, allow_blank=True)
    service = serializers.CharField(required=False, allow_blank=True)
    carrier = serializers.CharField(required=False, allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class RateQuoteSerializer(serializers.Serializer):
    carrier_id = serializers.CharField()
    carrier_name = serializers.CharField()
    service = serializers.CharField()
    quote_id = serializers.CharField()
    cost = serializers.FloatField()
    delivery_time = serializers.CharField()


class SelectedRateSerializer(serializers.Serializer):
    courier_id = serializers.CharField()
    cost = serializers.FloatField()
    name = serializers.CharField()
    quote_id = serializers.CharField()
    service = serializers.CharField()
    carrier_name = serializers.CharField()


class ShippingLineSerializer(serializers.Serializer):
    method_id = serializers.CharField()
    label = serializers.CharField()
    cost = serializers.FloatField()
