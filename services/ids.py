"""
Id and document-number generation.

Record ids, invoice numbers (INV-...) and purchase bill numbers (PUR-...) come
from an injectable generator so tests can produce deterministic ids without
depending on wall-clock timing.
"""

from __future__ import annotations

import itertools
from typing import Protocol
from uuid import uuid4

INVOICE_PREFIX = "INV-"
BILL_PREFIX = "PUR-"


class IdGenerator(Protocol):
    def new_id(self) -> str:
        ...

    def new_invoice_number(self) -> str:
        ...

    def new_bill_number(self) -> str:
        ...


class UuidIdGenerator:
    """Random UUID-based ids; the default for real sessions."""

    def new_id(self) -> str:
        return str(uuid4())

    def new_invoice_number(self) -> str:
        return f"{INVOICE_PREFIX}{uuid4().hex[:12].upper()}"

    def new_bill_number(self) -> str:
        return f"{BILL_PREFIX}{uuid4().hex[:12].upper()}"


class SequentialIdGenerator:
    """
    Monotonic counters: ids "1", "2", ...; INV-000001, PUR-000001, ...

    Each sequence is independent, so a product and its purchase get distinct ids.
    """

    def __init__(self, start: int = 1) -> None:
        self._ids = itertools.count(start)
        self._invoices = itertools.count(start)
        self._bills = itertools.count(start)

    def new_id(self) -> str:
        return str(next(self._ids))

    def new_invoice_number(self) -> str:
        return f"{INVOICE_PREFIX}{next(self._invoices):06d}"

    def new_bill_number(self) -> str:
        return f"{BILL_PREFIX}{next(self._bills):06d}"


__all__ = ["IdGenerator", "UuidIdGenerator", "SequentialIdGenerator", "INVOICE_PREFIX", "BILL_PREFIX"]
