"""Shipping domain constants.

Unit tables, the freight placeholder rate, the checkout rate-selection
state machine and the field names mirrored into the checkout form.
"""

from django.db import models

# Multipliers converting the store's configured unit to the carrier's kg / cm.
# Unknown units fall back to 1.0.
WEIGHT_MULTIPLIERS: dict[str, float] = {
    "g": 0.001,
    "kg": 1.0,
    "lb": 0.45359237,
    "oz": 0.0283495,
    "mg": 0.000001,
}

DIMENSION_MULTIPLIERS: dict[str, float] = {
    "mm": 0.1,
    "cm": 1.0,
    "in": 2.54,
    "m": 100.0,
}

MEASUREMENT_PRECISION = 3

# Sent when the cart has nothing to build packages from
DEFAULT_PACKAGE = {
    "name": "Default",
    "kg": 1.0,
    "length": 20.0,
    "width": 20.0,
    "height": 10.0,
}

METHOD_ID = "gosweetspot"
FREIGHT_METHOD_ID = f"{METHOD_ID}:freight_tba"
FREIGHT_LABEL = "Freight - Cost to be calculated and emailed"
DEFAULT_DELIVERY_TIME = "Standard"

RATES_ENDPOINT = "rates"
SHIPMENTS_ENDPOINT = "shipments"

# Session store keys
SELECTION_KEY = "gss_selection"
FLOW_KEY = "gss_flow"
# Held while one rate request or confirmation runs; the value names which
FLOW_LOCK_KEY = "gss_flow_lock"

BUTTON_SELECT = "Select Shipping Options"
BUTTON_CHANGE = "Change Shipping Option"

FREIGHT_NOTICE = (
    "This order contains multiple or heavy items. Freight will be calculated "
    "by volume and weight. We will email you the freight cost shortly."
)
SELECTION_REQUIRED_NOTICE = (
    'Please tap the "Select Shipping Options" button and select one of the '
    "available shipping methods to continue."
)

# Hidden checkout inputs carrying the selection into order placement
CHECKOUT_FIELDS = (
    "gss_selected_courier",
    "gss_selected_cost",
    "gss_selected_name",
    "gss_quote_id",
    "gss_carrier_service",
    "gss_carrier_name",
)

# Address fields the carrier rates on; the recipient name is not one of them
RATING_ADDRESS_FIELDS = ("street", "suburb", "city", "postcode", "country_code")


class RateFlowState(models.TextChoices):
    IDLE = "IDLE", "Idle"
    LOADING = "LOADING", "Loading"
    RATES_DISPLAYED = "RATES_DISPLAYED", "Rates displayed"
    CONFIRMING = "CONFIRMING", "Confirming"
    CONFIRMED = "CONFIRMED", "Confirmed"


VALID_TRANSITIONS: dict[str, set[str]] = {
    RateFlowState.IDLE: {RateFlowState.LOADING},
    RateFlowState.LOADING: {RateFlowState.RATES_DISPLAYED, RateFlowState.IDLE},
    RateFlowState.RATES_DISPLAYED: {
        RateFlowState.LOADING,
        RateFlowState.CONFIRMING,
        RateFlowState.IDLE,
    },
    RateFlowState.CONFIRMING: {
        RateFlowState.CONFIRMED,
        RateFlowState.RATES_DISPLAYED,
        RateFlowState.IDLE,
    },
    RateFlowState.CONFIRMED: {RateFlowState.LOADING, RateFlowState.IDLE},
}


class LabelJobStatus(models.TextChoices):
    SCHEDULED = "SCHEDULED", "Scheduled"
    SUCCEEDED = "SUCCEEDED", "Succeeded"
    FAILED = "FAILED", "Failed"
