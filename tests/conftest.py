import json
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx
import pytest
from django.core.cache import cache
from rest_framework.test import APIClient


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Shipping sessions live in the cache; start every test from scratch."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints (keeps the session cookie)."""
    return APIClient()


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    counter = iter(range(1, 10_000))

    from modules.products.models import Product

    def _make(**overrides: Any) -> Product:
        n = next(counter)
        values = {
            "sku": f"SKU-{n:04d}",
            "name": f"Product {n}",
            "price": Decimal("49.90"),
            "weight": Decimal("2.500"),
            "length": Decimal("30"),
            "width": Decimal("20"),
            "height": Decimal("10"),
        }
        values.update(overrides)
        return Product.objects.create(**values)

    return _make


@pytest.fixture()
def light_product(make_product):
    return make_product(name="Desk Lamp", weight=Decimal("2.500"))


@pytest.fixture()
def heavy_product(make_product):
    return make_product(name="Cast Iron Bath", weight=Decimal("30.000"))


# ---------------------------------------------------------------------------
# Carrier API stub (httpx.MockTransport)
# ---------------------------------------------------------------------------


def build_rate_entry(
    carrier_id: str,
    cost: Any,
    carrier_name: str = "NZ Couriers",
    service: str = "Overnight",
    quote_id: Optional[str] = None,
    delivery_time: str = "1-2 days",
) -> Dict[str, Any]:
    return {
        "CarrierId": carrier_id,
        "CarrierName": carrier_name,
        "CarrierServiceType": service,
        "QuoteId": quote_id or f"Q-{carrier_id}",
        "Cost": cost,
        "DeliveryTime": delivery_time,
    }


class CarrierStub:
    """Answers carrier requests from a queue and records what was sent."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._responses: List[Any] = []

    def queue(
        self, status_code: int = 200, json_body: Any = None, raw: Optional[bytes] = None
    ) -> None:
        self._responses.append(("response", status_code, json_body, raw))

    def queue_error(self, exc: Exception) -> None:
        self._responses.append(("error", exc))

    def queue_rates(self, *entries: Dict[str, Any]) -> None:
        self.queue(json_body={"Available": list(entries)})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert self._responses, f"Unexpected carrier call: {request.url}"
        kind, *rest = self._responses.pop(0)
        if kind == "error":
            raise rest[0]
        status_code, json_body, raw = rest
        if raw is not None:
            return httpx.Response(status_code, content=raw)
        return httpx.Response(status_code, json=json_body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def payload(self, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)


@pytest.fixture()
def carrier():
    return CarrierStub()


@pytest.fixture()
def carrier_client(carrier):
    from modules.shipping.client import RateClient

    return RateClient(transport=carrier.transport, sleep=lambda _: None)


@pytest.fixture()
def stub_carrier(carrier, monkeypatch):
    """Route every RateClient the app builds to the stub carrier."""
    from modules.shipping import client as client_module
    from modules.shipping import jobs, services

    real_client = client_module.RateClient

    def factory(*args: Any, **kwargs: Any):
        return real_client(transport=carrier.transport, sleep=lambda _: None)

    monkeypatch.setattr(services, "RateClient", factory)
    monkeypatch.setattr(jobs, "RateClient", factory)
    return carrier


# ---------------------------------------------------------------------------
# Shipping session
# ---------------------------------------------------------------------------


@pytest.fixture()
def quote_session():
    from modules.shipping.session import CacheSessionStore, QuoteSession

    return QuoteSession(CacheSessionStore(), "session-abc")


@pytest.fixture()
def destination():
    from modules.shipping.dtos import Address

    return Address(
        name="Aroha Smith",
        street="12 Queen Street",
        suburb="Grey Lynn",
        city="Auckland",
        postcode="1021",
        country_code="NZ",
    )


@pytest.fixture()
def rate_entry():
    """Factory for one entry of the carrier's ``Available`` list."""
    return build_rate_entry


# ---------------------------------------------------------------------------
# Orders and labels
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_order(light_product):
    """Persist a paid-for-shipping order for ``light_product`` (one unit)."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository

    def _make(**overrides: Any):
        values = {
            "session_key": "session-abc",
            "billing_first_name": "Aroha",
            "billing_last_name": "Smith",
            "billing_email": "aroha@example.com",
            "recipient_name": "Aroha Smith",
            "street": "12 Queen Street",
            "suburb": "Grey Lynn",
            "city": "Auckland",
            "postcode": "1021",
            "country_code": "NZ",
            "shipping_courier_id": "NZC",
            "shipping_cost": Decimal("8.00"),
            "shipping_name": "NZ Couriers",
            "shipping_quote_id": "Q-NZC",
            "shipping_service": "Overnight",
            "shipping_carrier_name": "NZ Couriers",
            "shipping_total": Decimal("8.00"),
            "items": [
                {"product": light_product, "quantity": 1, "unit_price": light_product.price}
            ],
        }
        values.update(overrides)
        return OrderDjangoRepository().create(values)

    return _make


@pytest.fixture()
def label_storage(tmp_path):
    from modules.shipping.labels import LabelStorage

    return LabelStorage(location=str(tmp_path), base_url="/media/gss-labels/")
