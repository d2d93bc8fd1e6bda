"""Unit tests for the per-shopper quote session."""

from __future__ import annotations

import pytest

from modules.shipping.constants import BUTTON_CHANGE, BUTTON_SELECT
from modules.shipping.dtos import SelectedRate
from modules.shipping.exceptions import SessionPersistError
from modules.shipping.session import CacheSessionStore, QuoteSession

pytestmark = pytest.mark.unit


class FailingStore(CacheSessionStore):
    def set(self, session_key, key, value):
        raise ConnectionError("redis down")


@pytest.fixture()
def selection():
    return SelectedRate(
        courier_id="NZC",
        cost=12.5,
        name="NZ Couriers Overnight",
        quote_id="Q-1",
        service="Overnight",
        carrier_name="NZ Couriers",
        fingerprint="fp-1",
    )


class TestPersistSelection:
    def test_round_trips_whole_selection(self, quote_session, selection):
        quote_session.persist_selection(selection)
        assert quote_session.current_selection() == selection

    def test_overwrites_previous_selection(self, quote_session, selection):
        quote_session.persist_selection(selection)
        replacement = selection.model_copy(update={"courier_id": "PBT", "cost": 9.0})

        quote_session.persist_selection(replacement)

        assert quote_session.current_selection().courier_id == "PBT"

    def test_store_failure_raises_and_keeps_previous(self, selection):
        session = QuoteSession(FailingStore(), "session-abc")

        with pytest.raises(SessionPersistError):
            session.persist_selection(selection)

        assert session.current_selection() is None

    def test_without_session_key_raises(self, selection):
        with pytest.raises(SessionPersistError):
            QuoteSession(CacheSessionStore(), None).persist_selection(selection)

    def test_sessions_are_isolated(self, selection):
        store = CacheSessionStore()
        QuoteSession(store, "one").persist_selection(selection)
        assert QuoteSession(store, "two").current_selection() is None


class TestCurrentSelection:
    def test_empty_session(self, quote_session):
        assert quote_session.current_selection() is None

    def test_non_positive_cost_counts_as_absent(self, quote_session):
        quote_session.persist_selection(SelectedRate(courier_id="X", cost=0))
        assert quote_session.current_selection() is None

    def test_fingerprint_mismatch_counts_as_absent(self, quote_session, selection):
        quote_session.persist_selection(selection)

        assert quote_session.current_selection("fp-1") == selection
        assert quote_session.current_selection("fp-2") is None

    def test_unreadable_value_counts_as_absent(self, quote_session):
        quote_session._store.set("session-abc", "gss_selection", {"cost": "lots"})
        assert quote_session.current_selection() is None


class TestClear:
    def test_clear_removes_selection_and_flow(self, quote_session, selection):
        quote_session.persist_selection(selection)
        quote_session.save_flow({"state": "CONFIRMED"})

        quote_session.clear()

        assert quote_session.current_selection() is None
        assert quote_session.load_flow() is None

    def test_clear_is_idempotent(self, quote_session, selection):
        quote_session.persist_selection(selection)

        quote_session.clear()
        quote_session.clear()

        assert quote_session.current_selection() is None

    def test_clear_without_session_is_noop(self):
        QuoteSession(CacheSessionStore(), "").clear()


class TestDerivedValues:
    def test_button_label(self, quote_session, selection):
        assert quote_session.button_label() == BUTTON_SELECT
        quote_session.persist_selection(selection)
        assert quote_session.button_label() == BUTTON_CHANGE

    def test_shipping_line(self, quote_session, selection):
        assert quote_session.shipping_line() is None
        quote_session.persist_selection(selection)

        line = quote_session.shipping_line()

        assert line.method_id == "gosweetspot"
        assert line.label == "NZ Couriers Overnight"
        assert line.cost == 12.5


class TestFlowLock:
    def test_only_one_holder(self, quote_session):
        assert quote_session.acquire_flow_lock("confirm:a", timeout=30)
        assert not quote_session.acquire_flow_lock("rates:b", timeout=30)
        assert quote_session.flow_lock_holder() == "confirm:a"

    def test_release_by_holder_frees_it(self, quote_session):
        quote_session.acquire_flow_lock("confirm:a", timeout=30)
        quote_session.release_flow_lock("confirm:a")

        assert quote_session.acquire_flow_lock("rates:b", timeout=30)

    def test_release_by_other_token_keeps_it(self, quote_session):
        quote_session.acquire_flow_lock("confirm:a", timeout=30)
        quote_session.release_flow_lock("rates:b")

        assert quote_session.flow_lock_holder() == "confirm:a"

    def test_locks_are_per_session(self, quote_session):
        quote_session.acquire_flow_lock("confirm:a", timeout=30)
        other = QuoteSession(CacheSessionStore(), "session-xyz")

        assert other.acquire_flow_lock("confirm:b", timeout=30)


class TestSaveFlow:
    def test_store_failure_raises_persist_error(self):
        with pytest.raises(SessionPersistError):
            QuoteSession(FailingStore(), "session-abc").save_flow({"state": "IDLE"})
