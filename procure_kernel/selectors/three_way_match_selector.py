"""
Three-way match input selector.

Assembles the joined invoice / purchase order / GRN figures the
three-way match evaluator consumes, and the ordered-versus-received
inputs for delivery status.

Key decisions:
- Only invoices linked to a purchase order are returned.
- GRN value is the sum of ``total_value`` over the items of APPROVED GRNs
  linked to the invoice; the count is of distinct approved linked GRNs
  that carry at least one item.
- Receipt lines are returned for every GRN status; the receipt status
  engine decides which ones count.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, distinct, func, select

from procure_kernel.domain.dtos import InvoiceMatchRecord, OrderedItem, ReceiptLine
from procure_kernel.logging_config import get_logger
from procure_kernel.models.grn import (
    GoodsReceivedNoteModel,
    GRNInvoiceLinkModel,
    GRNItemModel,
    GRNStatus,
)
from procure_kernel.models.invoice import InvoiceModel
from procure_kernel.models.purchase_order import PurchaseOrderItemModel, PurchaseOrderModel
from procure_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.three_way_match")


def _as_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class POReceiptInputs:
    """A purchase order with its ordered items and every GRN line against it."""

    po_id: UUID
    po_number: str
    po_value: Decimal
    items: tuple[OrderedItem, ...]
    receipts: tuple[ReceiptLine, ...]


class ThreeWayMatchSelector(BaseSelector):
    """Read-only access to three-way match inputs."""

    def fetch_records(
        self,
        invoice_ids: Iterable[UUID] | None = None,
    ) -> list[InvoiceMatchRecord]:
        """
        One record per PO-linked invoice, ordered by invoice number.

        Args:
            invoice_ids: Restrict to these invoices; None means all.

        Raises:
            DataFetchError: on any database error.
        """
        grn_totals = (
            select(
                GRNInvoiceLinkModel.invoice_id.label("invoice_id"),
                func.count(distinct(GRNInvoiceLinkModel.grn_id)).label("grn_count"),
                func.sum(GRNItemModel.total_value).label("grn_value"),
            )
            .join(
                GoodsReceivedNoteModel,
                and_(
                    GoodsReceivedNoteModel.id == GRNInvoiceLinkModel.grn_id,
                    GoodsReceivedNoteModel.status == GRNStatus.APPROVED.value,
                ),
            )
            .join(GRNItemModel, GRNItemModel.grn_id == GoodsReceivedNoteModel.id)
            .group_by(GRNInvoiceLinkModel.invoice_id)
            .subquery("grn_totals")
        )

        stmt = (
            select(
                InvoiceModel.id,
                InvoiceModel.invoice_number,
                InvoiceModel.vendor_id,
                InvoiceModel.purchase_order_id,
                InvoiceModel.total_amount,
                InvoiceModel.currency,
                PurchaseOrderModel.po_number,
                PurchaseOrderModel.final_amount,
                grn_totals.c.grn_count,
                grn_totals.c.grn_value,
            )
            .select_from(InvoiceModel)
            .outerjoin(
                PurchaseOrderModel,
                PurchaseOrderModel.id == InvoiceModel.purchase_order_id,
            )
            .outerjoin(grn_totals, grn_totals.c.invoice_id == InvoiceModel.id)
            .where(InvoiceModel.purchase_order_id.is_not(None))
            .order_by(InvoiceModel.invoice_number, InvoiceModel.id)
        )
        if invoice_ids is not None:
            stmt = stmt.where(InvoiceModel.id.in_(list(invoice_ids)))

        rows = self._fetch(
            "three_way_match_records",
            lambda: self.session.execute(stmt).all(),
        )

        records = [
            InvoiceMatchRecord(
                invoice_id=row.id,
                invoice_number=row.invoice_number,
                invoice_amount=_as_decimal(row.total_amount),
                currency=row.currency,
                purchase_order_id=row.purchase_order_id,
                po_number=row.po_number,
                po_amount=(
                    _as_decimal(row.final_amount) if row.final_amount is not None else None
                ),
                grn_value=_as_decimal(row.grn_value),
                linked_grn_count=int(row.grn_count or 0),
                vendor_id=row.vendor_id,
            )
            for row in rows
        ]
        logger.debug("three_way_match_records_fetched", extra={
            "record_count": len(records),
            "filtered": invoice_ids is not None,
        })
        return records

    def fetch_receipt_inputs(self, po_id: UUID | None = None) -> list[POReceiptInputs]:
        """
        Ordered items and GRN lines per purchase order, ordered by PO number.

        Raises:
            DataFetchError: on any database error.
        """
        po_stmt = select(PurchaseOrderModel).order_by(PurchaseOrderModel.po_number)
        line_stmt = (
            select(
                GoodsReceivedNoteModel.purchase_order_id,
                GRNItemModel.po_item_id,
                GRNItemModel.grn_id,
                GoodsReceivedNoteModel.status,
                GRNItemModel.quantity_accepted,
                GRNItemModel.total_value,
            )
            .join(GoodsReceivedNoteModel, GoodsReceivedNoteModel.id == GRNItemModel.grn_id)
            .order_by(GRNItemModel.grn_id, GRNItemModel.id)
        )
        if po_id is not None:
            po_stmt = po_stmt.where(PurchaseOrderModel.id == po_id)
            line_stmt = line_stmt.where(GoodsReceivedNoteModel.purchase_order_id == po_id)

        def _query():
            orders = self.session.execute(po_stmt).scalars().all()
            lines = self.session.execute(line_stmt).all()
            return orders, lines

        orders, lines = self._fetch("po_receipt_inputs", _query)

        receipts_by_po: dict[UUID, list[ReceiptLine]] = defaultdict(list)
        for line in lines:
            receipts_by_po[line.purchase_order_id].append(
                ReceiptLine(
                    po_item_id=line.po_item_id,
                    grn_id=line.grn_id,
                    grn_status=line.status,
                    quantity_accepted=line.quantity_accepted,
                    total_value=_as_decimal(line.total_value),
                )
            )

        return [
            POReceiptInputs(
                po_id=po.id,
                po_number=po.po_number,
                po_value=_as_decimal(po.final_amount),
                items=tuple(
                    OrderedItem(
                        po_item_id=item.id,
                        po_id=po.id,
                        description=item.description,
                        quantity_ordered=item.quantity,
                        unit_price=_as_decimal(item.unit_price),
                        ordered_value=_as_decimal(item.total_price),
                    )
                    for item in sorted(po.items, key=_item_sort_key)
                ),
                receipts=tuple(receipts_by_po.get(po.id, ())),
            )
            for po in orders
        ]


def _item_sort_key(item: PurchaseOrderItemModel) -> tuple[str, str]:
    return (item.description, str(item.id))
