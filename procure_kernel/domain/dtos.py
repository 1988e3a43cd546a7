"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable inputs that flow from the read side into the
    calculation engines: InvoiceMatchRecord (one invoice joined with its
    purchase order and linked GRNs), OrderedItem and ReceiptLine (ordered
    versus received goods per purchase order item).

Architecture position:
    Kernel > Domain -- pure data, zero I/O.
    Free of ORM dependencies.  Selectors build these from query rows;
    engines consume them.

Invariants enforced:
    - All DTOs are frozen dataclasses.
    - Amounts are not validated here; engines validate on use so that a
      malformed stored value fails at evaluation with a ValidationError.

Data flow:
    ORM rows -> selectors -> DTOs -> engines -> results
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

# GRN status whose lines count as received.
GRN_APPROVED = "approved"


@dataclass(frozen=True)
class InvoiceMatchRecord:
    """
    One invoice joined with its purchase order and linked GRNs.

    ``grn_value`` and ``linked_grn_count`` cover approved GRNs only.
    Amounts may be Decimal, int, str or float.
    """

    invoice_id: str | UUID
    invoice_amount: Any
    po_amount: Any | None = None
    grn_value: Any = Decimal("0")
    linked_grn_count: int = 0
    invoice_number: str = ""
    currency: str = "USD"
    purchase_order_id: str | UUID | None = None
    po_number: str | None = None
    vendor_id: str | UUID | None = None


@dataclass(frozen=True)
class OrderedItem:
    """A purchase order item as ordered."""

    po_item_id: str | UUID
    po_id: str | UUID
    quantity_ordered: int
    unit_price: Decimal
    ordered_value: Decimal
    description: str = ""


@dataclass(frozen=True)
class ReceiptLine:
    """One GRN line against a PO item, with the status of its GRN."""

    po_item_id: str | UUID
    grn_id: str | UUID
    grn_status: str
    quantity_accepted: int
    total_value: Decimal

    @property
    def counts(self) -> bool:
        return self.grn_status == GRN_APPROVED
