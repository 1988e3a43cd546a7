"""Vendor invoice ORM model."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procure_kernel.db.base import TrackedBase
from procure_kernel.models.purchase_order import PurchaseOrderModel


class InvoiceModel(TrackedBase):
    """
    A vendor invoice, optionally raised against one purchase order.

    Only invoices with a ``purchase_order_id`` take part in three-way
    matching.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        Index("idx_invoice_purchase_order", "purchase_order_id"),
        Index("idx_invoice_vendor", "vendor_id"),
    )

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    vendor_id: Mapped[UUID | None]
    purchase_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("purchase_orders.id"), nullable=True
    )
    total_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    purchase_order: Mapped[PurchaseOrderModel | None] = relationship(
        "PurchaseOrderModel",
        lazy="joined",
    )

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_number} {self.total_amount} {self.currency}>"
