"""Product domain exceptions."""

from __future__ import annotations


class ProductNotFound(Exception):
    """The requested product does not exist or has been soft-deleted."""


class InactiveProduct(Exception):
    """The product is inactive and cannot be added to a cart."""
