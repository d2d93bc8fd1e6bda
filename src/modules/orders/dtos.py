"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``PlaceOrderDTO``: checkout submission (contact, ship-to address and
  the shipping selection mirrored in the hidden checkout fields).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from modules.shipping.dtos import Address, SelectedRate


class PlaceOrderDTO(BaseModel):
    """Immutable DTO for checkout submissions.

    ``selection`` is whatever the checkout form carried in its hidden
    fields; the service checks it against the shopper's confirmed rate.
    """

    model_config = ConfigDict(frozen=True)

    session_key: str
    billing_first_name: str = ""
    billing_last_name: str = ""
    billing_email: EmailStr
    destination: Address
    selection: Optional[SelectedRate] = None
    notes: Optional[str] = ""

    @field_validator("session_key")
    @classmethod
    def session_key_required(cls, v: str) -> str:
        if not v:
            raise ValueError("A checkout session is required.")
        return v
