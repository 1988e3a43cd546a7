"""
Goods Received Note ORM models.

Responsibility
--------------
Persist physical receipts against purchase orders and their links to
invoices.  A GRN contributes receipt evidence to three-way matching only
once it is ``approved``; draft, pending, rejected and cancelled notes are
stored but ignored by the matching selectors.

Invariants enforced
-------------------
* ``GRNItemModel.total_value`` is ``quantity_accepted * unit_price``; use
  ``GRNItemModel.create`` to keep the two consistent.
* A GRN may be linked to many invoices and an invoice to many GRNs, but
  each (grn, invoice) pair at most once.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procure_kernel.db.base import TrackedBase


class GRNStatus(str, Enum):
    """GRN approval workflow states."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class GoodsReceivedNoteModel(TrackedBase):
    """A receipt of goods against a purchase order."""

    __tablename__ = "goods_received_notes"

    __table_args__ = (
        UniqueConstraint("grn_number", name="uq_grn_number"),
        Index("idx_grn_purchase_order", "purchase_order_id"),
        Index("idx_grn_status", "status"),
    )

    grn_number: Mapped[str] = mapped_column(String(50), nullable=False)
    purchase_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=False
    )
    vendor_id: Mapped[UUID | None]
    receipt_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=GRNStatus.DRAFT.value
    )
    remarks: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    items: Mapped[list["GRNItemModel"]] = relationship(
        "GRNItemModel",
        back_populates="grn",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_approved(self) -> bool:
        return self.status == GRNStatus.APPROVED.value

    def __repr__(self) -> str:
        return f"<GoodsReceivedNoteModel {self.grn_number} [{self.status}]>"


class GRNItemModel(TrackedBase):
    """A received line, tied back to the purchase order item it fulfils."""

    __tablename__ = "grn_items"

    __table_args__ = (
        Index("idx_grn_item_grn", "grn_id"),
        Index("idx_grn_item_po_item", "po_item_id"),
    )

    grn_id: Mapped[UUID] = mapped_column(
        ForeignKey("goods_received_notes.id"), nullable=False
    )
    po_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("purchase_order_items.id"), nullable=False
    )
    product_id: Mapped[UUID | None]
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    quantity_ordered: Mapped[int] = mapped_column(nullable=False, default=0)
    quantity_received: Mapped[int] = mapped_column(nullable=False, default=0)
    quantity_accepted: Mapped[int] = mapped_column(nullable=False, default=0)
    quantity_rejected: Mapped[int] = mapped_column(nullable=False, default=0)
    unit_price: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_value: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    grn: Mapped["GoodsReceivedNoteModel"] = relationship(
        "GoodsReceivedNoteModel",
        back_populates="items",
    )

    @classmethod
    def create(
        cls,
        *,
        po_item_id: UUID,
        quantity_ordered: int,
        quantity_received: int,
        quantity_accepted: int,
        unit_price: Decimal,
        description: str = "",
        product_id: UUID | None = None,
    ) -> "GRNItemModel":
        """Build an item whose total_value is derived from accepted quantity."""
        return cls(
            po_item_id=po_item_id,
            product_id=product_id,
            description=description,
            quantity_ordered=quantity_ordered,
            quantity_received=quantity_received,
            quantity_accepted=quantity_accepted,
            quantity_rejected=quantity_received - quantity_accepted,
            unit_price=unit_price,
            total_value=unit_price * quantity_accepted,
        )

    def __repr__(self) -> str:
        return f"<GRNItemModel {self.description!r} accepted={self.quantity_accepted}>"


class GRNInvoiceLinkModel(TrackedBase):
    """Many-to-many link between a GRN and an invoice it evidences."""

    __tablename__ = "grn_invoice_links"

    __table_args__ = (
        UniqueConstraint("grn_id", "invoice_id", name="uq_grn_invoice_link"),
        Index("idx_grn_invoice_link_invoice", "invoice_id"),
    )

    grn_id: Mapped[UUID] = mapped_column(
        ForeignKey("goods_received_notes.id"), nullable=False
    )
    invoice_id: Mapped[UUID] = mapped_column(ForeignKey("invoices.id"), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return f"<GRNInvoiceLinkModel grn={self.grn_id} invoice={self.invoice_id}>"
