# backend/labstock/errors.py
"""
Error taxonomy for the stock core.

Routers translate these into HTTP responses; every other caller gets them
raised synchronously from the operation that rejected the input.
"""

from __future__ import annotations


class ValidationError(ValueError):
    """Raised when user input is rejected. No state has changed."""


class ItemNotFoundError(IndexError):
    """Raised when an index is out of bounds or an item id is unknown."""

    def __init__(self, category: str, ref: object) -> None:
        super().__init__(f"No item {ref!r} in {category}.")
        self.category = category
        self.ref = ref


class AuthError(Exception):
    """Raised when a supplied PIN does not match the stored PIN."""
