"""Unit tests for CartService and its shipping side effects."""

from __future__ import annotations

import uuid

import pytest

from modules.cart.events import (
    CartEmptied,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartItemRestored,
)
from modules.cart.exceptions import CartItemNotFound, InvalidQuantity
from modules.cart.repositories.django_repository import CartDjangoRepository
from modules.cart.services import CartService
from modules.products.models import ProductStatus
from modules.products.exceptions import InactiveProduct, ProductNotFound
from modules.shipping.dtos import SelectedRate
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit

SESSION = "session-abc"


class RecordingHandler:
    def __init__(self):
        self.events = []

    def handle(self, event):
        self.events.append(event)


@pytest.fixture()
def recorder():
    return RecordingHandler()


@pytest.fixture()
def isolated_service(recorder):
    """Service on a private bus, to observe exactly what is published."""
    bus = InMemoryEventBus()
    for event_class in (
        CartItemAdded,
        CartItemRemoved,
        CartItemRestored,
        CartItemQuantityUpdated,
        CartEmptied,
    ):
        bus.subscribe(event_class, recorder)
    return CartService(CartDjangoRepository(), event_bus=bus)


@pytest.fixture()
def service():
    """Service on the application bus (shipping handlers attached)."""
    return CartService(CartDjangoRepository())


@pytest.fixture()
def confirmed(quote_session):
    quote_session.persist_selection(SelectedRate(courier_id="NZC", cost=8.0))
    return quote_session


# ===========================================================================
# Mutations
# ===========================================================================


class TestAddItem:
    def test_creates_line(self, isolated_service, light_product, recorder):
        item = isolated_service.add_item(SESSION, str(light_product.id), 1)

        assert item.quantity == 1
        assert [e.event_name for e in recorder.events] == ["CartItemAdded"]
        assert recorder.events[0].session_key == SESSION

    def test_merges_into_existing_line(self, isolated_service, light_product):
        isolated_service.add_item(SESSION, str(light_product.id), 1)
        item = isolated_service.add_item(SESSION, str(light_product.id), 2)

        assert item.quantity == 3
        assert isolated_service.get_cart(SESSION).item_count == 3

    def test_unknown_product(self, isolated_service):
        with pytest.raises(ProductNotFound):
            isolated_service.add_item(SESSION, str(uuid.uuid4()))

    def test_inactive_product(self, isolated_service, make_product):
        product = make_product(status=ProductStatus.INACTIVE)
        with pytest.raises(InactiveProduct):
            isolated_service.add_item(SESSION, str(product.id))

    def test_zero_quantity(self, isolated_service, light_product):
        with pytest.raises(InvalidQuantity):
            isolated_service.add_item(SESSION, str(light_product.id), 0)


class TestUpdateQuantity:
    def test_changes_quantity(self, isolated_service, light_product, recorder):
        item = isolated_service.add_item(SESSION, str(light_product.id))

        updated = isolated_service.update_quantity(SESSION, str(item.id), 4)

        assert updated.quantity == 4
        assert recorder.events[-1].event_name == "CartItemQuantityUpdated"

    def test_same_quantity_publishes_nothing(self, isolated_service, light_product, recorder):
        item = isolated_service.add_item(SESSION, str(light_product.id))
        isolated_service.update_quantity(SESSION, str(item.id), 1)
        assert len(recorder.events) == 1

    def test_zero_removes_line(self, isolated_service, light_product, recorder):
        item = isolated_service.add_item(SESSION, str(light_product.id))

        assert isolated_service.update_quantity(SESSION, str(item.id), 0) is None
        assert not isolated_service.get_cart(SESSION).live_items().exists()
        assert recorder.events[-1].event_name == "CartItemRemoved"

    def test_negative(self, isolated_service, light_product):
        item = isolated_service.add_item(SESSION, str(light_product.id))
        with pytest.raises(InvalidQuantity):
            isolated_service.update_quantity(SESSION, str(item.id), -1)

    def test_unknown_line(self, isolated_service):
        with pytest.raises(CartItemNotFound):
            isolated_service.update_quantity(SESSION, str(uuid.uuid4()), 2)


class TestRemoveAndRestore:
    def test_restore_brings_line_back(self, isolated_service, light_product, recorder):
        item = isolated_service.add_item(SESSION, str(light_product.id), 2)
        isolated_service.remove_item(SESSION, str(item.id))

        restored = isolated_service.restore_item(SESSION, str(item.id))

        assert restored.quantity == 2
        assert isolated_service.get_cart(SESSION).item_count == 2
        assert [e.event_name for e in recorder.events] == [
            "CartItemAdded",
            "CartItemRemoved",
            "CartItemRestored",
        ]

    def test_restoring_live_line_publishes_nothing(
        self, isolated_service, light_product, recorder
    ):
        item = isolated_service.add_item(SESSION, str(light_product.id))
        isolated_service.restore_item(SESSION, str(item.id))
        assert len(recorder.events) == 1

    def test_removed_line_cannot_be_removed_again(self, isolated_service, light_product):
        item = isolated_service.add_item(SESSION, str(light_product.id))
        isolated_service.remove_item(SESSION, str(item.id))
        with pytest.raises(CartItemNotFound):
            isolated_service.remove_item(SESSION, str(item.id))

    def test_empty(self, isolated_service, light_product, heavy_product, recorder):
        isolated_service.add_item(SESSION, str(light_product.id))
        isolated_service.add_item(SESSION, str(heavy_product.id))

        isolated_service.empty(SESSION)

        assert not isolated_service.get_cart(SESSION).live_items().exists()
        assert recorder.events[-1].event_name == "CartEmptied"

    def test_empty_publishes_for_new_cart(self, isolated_service, recorder):
        isolated_service.empty(SESSION)
        assert [e.event_name for e in recorder.events] == ["CartEmptied"]


# ===========================================================================
# Shipping selection is cleared by every content change
# ===========================================================================


class TestSelectionCleared:
    def test_add_clears(self, service, light_product, confirmed):
        service.add_item(SESSION, str(light_product.id))
        assert confirmed.current_selection() is None

    def test_update_clears(self, service, light_product, quote_session):
        item = service.add_item(SESSION, str(light_product.id))
        quote_session.persist_selection(SelectedRate(courier_id="NZC", cost=8.0))

        service.update_quantity(SESSION, str(item.id), 2)

        assert quote_session.current_selection() is None

    def test_remove_clears(self, service, light_product, quote_session):
        item = service.add_item(SESSION, str(light_product.id))
        quote_session.persist_selection(SelectedRate(courier_id="NZC", cost=8.0))

        service.remove_item(SESSION, str(item.id))

        assert quote_session.current_selection() is None

    def test_restore_clears(self, service, light_product, quote_session):
        item = service.add_item(SESSION, str(light_product.id))
        service.remove_item(SESSION, str(item.id))
        quote_session.persist_selection(SelectedRate(courier_id="NZC", cost=8.0))

        service.restore_item(SESSION, str(item.id))

        assert quote_session.current_selection() is None

    def test_empty_clears(self, service, confirmed):
        service.empty(SESSION)
        assert confirmed.current_selection() is None

    def test_other_sessions_untouched(self, service, light_product, confirmed):
        service.add_item("someone-else", str(light_product.id))
        assert confirmed.current_selection() is not None
