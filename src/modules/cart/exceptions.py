"""Cart domain exceptions."""

from __future__ import annotations


class CartItemNotFound(Exception):
    """The line does not exist in this shopper's cart."""


class InvalidQuantity(Exception):
    """A quantity below zero was requested."""
