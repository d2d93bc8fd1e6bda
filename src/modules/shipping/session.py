"""Per-shopper shipping selection state.

``ISessionStore`` is a key-value store addressed by the Django session
key; ``CacheSessionStore`` keeps it in the Django cache (Redis in
production). ``QuoteSession`` owns the two values kept per shopper:

* the committed selection, written as ONE value so readers see either the
  whole selection or none of it;
* the checkout rate flow snapshot used by ``CheckoutRateCoordinator``.

``clear()`` drops both and is the only way a selection goes away; it runs
on every cart content change and on payment completion.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import structlog
from django.conf import settings
from django.core.cache import caches
from pydantic import ValidationError

from modules.shipping.constants import (
    BUTTON_CHANGE,
    BUTTON_SELECT,
    FLOW_KEY,
    FLOW_LOCK_KEY,
    SELECTION_KEY,
)
from modules.shipping.dtos import SelectedRate, ShippingLine
from modules.shipping.exceptions import SessionPersistError

logger = structlog.get_logger(__name__)


class ISessionStore(Protocol):
    """Session-scoped key-value store."""

    def get(self, session_key: str, key: str) -> Any: ...

    def set(self, session_key: str, key: str, value: Any) -> None: ...

    def add(self, session_key: str, key: str, value: Any, timeout: int) -> bool: ...

    def delete(self, session_key: str, key: str) -> None: ...


class CacheSessionStore:
    """``ISessionStore`` backed by a Django cache alias."""

    def __init__(
        self,
        alias: str = "default",
        ttl: Optional[int] = None,
        prefix: str = "shipping-session",
    ) -> None:
        self._alias = alias
        self._ttl = ttl if ttl is not None else settings.SHIPPING_SESSION_TTL
        self._prefix = prefix

    @property
    def _cache(self):
        return caches[self._alias]

    def _key(self, session_key: str, key: str) -> str:
        return f"{self._prefix}:{session_key}:{key}"

    def get(self, session_key: str, key: str) -> Any:
        return self._cache.get(self._key(session_key, key))

    def set(self, session_key: str, key: str, value: Any) -> None:
        self._cache.set(self._key(session_key, key), value, timeout=self._ttl)

    def add(self, session_key: str, key: str, value: Any, timeout: int) -> bool:
        """Store ``value`` only if ``key`` is absent; atomic on Redis and locmem."""
        return bool(self._cache.add(self._key(session_key, key), value, timeout=timeout))

    def delete(self, session_key: str, key: str) -> None:
        self._cache.delete(self._key(session_key, key))


class QuoteSession:
    def __init__(self, store: ISessionStore, session_key: Optional[str]) -> None:
        self._store = store
        self.session_key = session_key or ""

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def persist_selection(self, rate: SelectedRate) -> None:
        """Overwrite the shopper's selection with ``rate``.

        Raises:
            SessionPersistError: no session, or the store rejected the write.
        """
        if not self.session_key:
            raise SessionPersistError("No shopper session to store the selection in.")
        try:
            self._store.set(self.session_key, SELECTION_KEY, rate.model_dump())
        except Exception as exc:
            logger.error(
                "shipping.selection_persist_failed",
                session_key=self.session_key,
                error=str(exc),
            )
            raise SessionPersistError("Could not save the shipping selection.") from exc

        logger.info(
            "shipping.selection_persisted",
            session_key=self.session_key,
            courier_id=rate.courier_id,
            cost=rate.cost,
        )

    def clear(self) -> None:
        """Forget the selection and reset the rate flow. Safe to repeat."""
        if not self.session_key:
            return
        self._store.delete(self.session_key, SELECTION_KEY)
        self._store.delete(self.session_key, FLOW_KEY)
        logger.info("shipping.selection_cleared", session_key=self.session_key)

    def current_selection(self, fingerprint: Optional[str] = None) -> Optional[SelectedRate]:
        """The committed selection, or ``None``.

        A stored selection without a positive cost counts as no selection.
        When ``fingerprint`` is given, a selection made for a different
        package set / destination also counts as none.
        """
        if not self.session_key:
            return None
        raw = self._store.get(self.session_key, SELECTION_KEY)
        if not isinstance(raw, dict):
            return None
        try:
            selection = SelectedRate.model_validate(raw)
        except ValidationError:
            logger.warning("shipping.selection_unreadable", session_key=self.session_key)
            return None
        if not selection.is_valid:
            return None
        if fingerprint is not None and selection.fingerprint != fingerprint:
            logger.info(
                "shipping.selection_stale",
                session_key=self.session_key,
                courier_id=selection.courier_id,
            )
            return None
        return selection

    def button_label(self) -> str:
        return BUTTON_CHANGE if self.current_selection() else BUTTON_SELECT

    def shipping_line(self, fingerprint: Optional[str] = None) -> Optional[ShippingLine]:
        """Line for checkout totals; ``None`` keeps checkout blocked."""
        selection = self.current_selection(fingerprint)
        return ShippingLine.from_selection(selection) if selection else None

    # ------------------------------------------------------------------
    # Checkout rate flow snapshot
    # ------------------------------------------------------------------

    def load_flow(self) -> Optional[Dict[str, Any]]:
        if not self.session_key:
            return None
        raw = self._store.get(self.session_key, FLOW_KEY)
        return raw if isinstance(raw, dict) else None

    def save_flow(self, snapshot: Dict[str, Any]) -> None:
        """Raises ``SessionPersistError`` when the store rejects the write."""
        if not self.session_key:
            return
        try:
            self._store.set(self.session_key, FLOW_KEY, snapshot)
        except Exception as exc:
            logger.error(
                "shipping.flow_persist_failed",
                session_key=self.session_key,
                error=str(exc),
            )
            raise SessionPersistError("Could not save the shipping rate flow.") from exc

    # ------------------------------------------------------------------
    # Flow lock
    # ------------------------------------------------------------------

    def acquire_flow_lock(self, token: str, timeout: int) -> bool:
        """Take the session's flow lock; ``False`` if another request holds it."""
        if not self.session_key:
            return True
        return self._store.add(self.session_key, FLOW_LOCK_KEY, token, timeout)

    def flow_lock_holder(self) -> Optional[str]:
        if not self.session_key:
            return None
        return self._store.get(self.session_key, FLOW_LOCK_KEY)

    def release_flow_lock(self, token: str) -> None:
        if self.session_key and self.flow_lock_holder() == token:
            self._store.delete(self.session_key, FLOW_LOCK_KEY)


def quote_session_for(session_key: Optional[str]) -> QuoteSession:
    """The shopper's quote session in the configured cache store."""
    return QuoteSession(CacheSessionStore(), session_key)
