"""
Pure domain layer.

Immutable data transfer objects with NO dependencies on the ORM, the
database, the clock or I/O.
"""

from procure_kernel.domain.dtos import (
    GRN_APPROVED,
    InvoiceMatchRecord,
    OrderedItem,
    ReceiptLine,
)

__all__ = [
    "GRN_APPROVED",
    "InvoiceMatchRecord",
    "OrderedItem",
    "ReceiptLine",
]
