"""
procure_engines.receipt_status -- Goods receipt progress per PO item and PO.

Responsibility:
    Roll GRN lines up against the purchase order items they fulfil:
    received and pending quantities per item, received value, and a
    delivery status per purchase order.  Flags items received beyond what
    was ordered when over-receipt is not allowed.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Only lines of approved GRNs count as received.
    - Delivery status: nothing received -> pending; received >= ordered
      -> fully_received; otherwise partially_received.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from procure_engines.tracer import traced_engine
from procure_kernel.domain.dtos import OrderedItem, ReceiptLine
from procure_kernel.logging_config import get_logger
from procure_kernel.utils.numeric import to_non_negative_decimal

logger = get_logger("engines.receipt_status")


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_RECEIVED = "partially_received"
    FULLY_RECEIVED = "fully_received"


@dataclass(frozen=True)
class ItemReceiptStatus:
    po_item_id: str | UUID
    po_id: str | UUID
    description: str
    quantity_ordered: int
    quantity_received: int
    unit_price: Decimal
    ordered_value: Decimal
    received_value: Decimal

    @property
    def quantity_pending(self) -> int:
        """Negative when more was accepted than ordered."""
        return self.quantity_ordered - self.quantity_received

    @property
    def is_over_received(self) -> bool:
        return self.quantity_received > self.quantity_ordered


@dataclass(frozen=True)
class PODeliverySummary:
    po_id: str | UUID
    po_number: str
    po_value: Decimal
    grn_count: int
    total_ordered: int
    total_received: int
    delivery_status: DeliveryStatus

    @property
    def total_pending(self) -> int:
        return self.total_ordered - self.total_received


class ReceiptStatusCalculator:
    """
    Pure receipt roll-up calculator.

    Contract:
        No I/O; receipts of every GRN status may be passed in, the
        calculator decides which ones count.
    """

    def item_receipt_status(
        self,
        item: OrderedItem,
        receipts: Sequence[ReceiptLine],
    ) -> ItemReceiptStatus:
        """Accepted quantity and value received against one PO item."""
        counted = [
            line for line in receipts
            if line.counts and line.po_item_id == item.po_item_id
        ]
        received_qty = sum(line.quantity_accepted for line in counted)
        received_value = sum(
            (to_non_negative_decimal("total_value", line.total_value) for line in counted),
            Decimal("0"),
        )
        return ItemReceiptStatus(
            po_item_id=item.po_item_id,
            po_id=item.po_id,
            description=item.description,
            quantity_ordered=item.quantity_ordered,
            quantity_received=received_qty,
            unit_price=item.unit_price,
            ordered_value=item.ordered_value,
            received_value=received_value,
        )

    @traced_engine("receipt_status", "1.0", fingerprint_fields=("po_id", "items", "receipts"))
    def summarize_delivery(
        self,
        po_id: str | UUID,
        po_number: str,
        po_value: Decimal,
        items: Sequence[OrderedItem],
        receipts: Sequence[ReceiptLine],
    ) -> tuple[PODeliverySummary, list[ItemReceiptStatus]]:
        """
        Delivery summary for one purchase order plus its per-item status.

        ``grn_count`` counts distinct approved GRNs among ``receipts``.
        """
        statuses = [self.item_receipt_status(item, receipts) for item in items]
        total_ordered = sum(s.quantity_ordered for s in statuses)
        total_received = sum(s.quantity_received for s in statuses)
        grn_count = len({line.grn_id for line in receipts if line.counts})

        if total_received == 0:
            status = DeliveryStatus.PENDING
        elif total_received >= total_ordered:
            status = DeliveryStatus.FULLY_RECEIVED
        else:
            status = DeliveryStatus.PARTIALLY_RECEIVED

        logger.debug("po_delivery_summarized", extra={
            "po_id": str(po_id),
            "po_number": po_number,
            "grn_count": grn_count,
            "total_ordered": total_ordered,
            "total_received": total_received,
            "delivery_status": status.value,
        })

        summary = PODeliverySummary(
            po_id=po_id,
            po_number=po_number,
            po_value=po_value,
            grn_count=grn_count,
            total_ordered=total_ordered,
            total_received=total_received,
            delivery_status=status,
        )
        return summary, statuses

    def over_received_items(
        self,
        statuses: Sequence[ItemReceiptStatus],
        allow_over_receipt: bool,
        quantity_tolerance_percentage: Decimal = Decimal("0"),
    ) -> list[ItemReceiptStatus]:
        """
        Items received beyond ordered quantity plus the quantity tolerance.

        Empty when over-receipt is allowed.
        """
        if allow_over_receipt:
            return []
        tolerance = to_non_negative_decimal(
            "quantity_tolerance_percentage", quantity_tolerance_percentage
        )
        limit_factor = Decimal("1") + tolerance / Decimal("100")
        flagged = [
            s for s in statuses
            if Decimal(s.quantity_received) > Decimal(s.quantity_ordered) * limit_factor
        ]
        if flagged:
            logger.warning("over_received_items_detected", extra={
                "item_count": len(flagged),
                "po_item_ids": [str(s.po_item_id) for s in flagged],
            })
        return flagged
