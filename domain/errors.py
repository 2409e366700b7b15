"""
Domain errors.

Error kinds surfaced to the presentation layer:
- ValidationError: malformed or missing input, raised before any write.
- ProductUnavailable: a sale was requested against an unknown or sold-out product.
- PersistenceError: the storage substrate failed to read or write.
- ConsistencyFault: a multi-step mutation was left partially applied.
"""

from __future__ import annotations

from typing import Mapping, Optional


class ShopError(Exception):
    """Base class for all errors raised by the shop core."""


class ValidationError(ShopError):
    """
    Input rejected at the boundary.

    field_errors maps a field name to a human-readable message so that callers
    can render each message next to the offending form field.
    """

    def __init__(self, message: str, field_errors: Optional[Mapping[str, str]] = None) -> None:
        super().__init__(message)
        self.field_errors: dict[str, str] = dict(field_errors or {})


class ProductUnavailable(ShopError):
    def __init__(self, product_id: str, reason: str) -> None:
        super().__init__(f"Product {product_id!r} is unavailable: {reason}")
        self.product_id = product_id
        self.reason = reason


class PersistenceError(ShopError):
    """Underlying storage read or write failed."""


class ConsistencyFault(ShopError):
    """A two-step mutation could not be completed or rolled back."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.detail = detail


__all__ = [
    "ShopError",
    "ValidationError",
    "ProductUnavailable",
    "PersistenceError",
    "ConsistencyFault",
]
