"""Shipping domain exceptions.

Raised by the rate service and the checkout coordinator. The API layer
(Views) catches these and translates them into HTTP responses; the label
job records ``LabelJobError`` on the job row instead of surfacing it.
"""

from __future__ import annotations


class AddressIncomplete(Exception):
    """Street, city or postcode missing; no carrier call is made."""


class CarrierUnavailable(Exception):
    """The carrier API could not be reached or answered with an error."""


class NoRatesAvailable(Exception):
    """The carrier answered, but without a single usable quote."""


class FreightRequired(Exception):
    """The cart is freight; it is quoted manually, not by the carrier."""


class ConfirmInFlight(Exception):
    """A confirmation for this session is already being processed."""


class RateNotDisplayed(Exception):
    """The chosen rate is not among the rates currently shown to the shopper."""


class StaleQuote(Exception):
    """The cart or destination changed since the rates were quoted."""


class SessionPersistError(Exception):
    """The selection could not be written to the shopper's session."""


class InvalidFlowTransition(Exception):
    """The checkout rate flow cannot move between the two states."""


class LabelJobError(Exception):
    """The carrier did not produce a usable label for the shipment."""


class RatesRequestInFlight(Exception):
    """A rate request for this session has not finished yet."""
