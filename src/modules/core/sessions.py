"""Shopper identification for the anonymous storefront API."""

from __future__ import annotations

from django.http import HttpRequest


def session_key_for(request: HttpRequest) -> str:
    """The shopper's Django session key, creating the session on first use.

    The session is marked modified so ``SessionMiddleware`` sends the
    cookie back with the response.
    """
    session = request.session
    if not session.session_key:
        session.save()
        session.modified = True
    return session.session_key
