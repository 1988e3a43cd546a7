"""
Purchase order ORM models.

A purchase order is the committed baseline an invoice is reconciled
against: ``final_amount`` is the PO side of the three-way match, and the
items carry the ordered quantities that goods receipts are measured against.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procure_kernel.db.base import TrackedBase


class PurchaseOrderModel(TrackedBase):
    """A committed order to a vendor."""

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_purchase_order_number"),
        Index("idx_purchase_order_vendor", "vendor_id"),
    )

    po_number: Mapped[str] = mapped_column(String(50), nullable=False)
    vendor_id: Mapped[UUID | None]
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    final_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    items: Mapped[list["PurchaseOrderItemModel"]] = relationship(
        "PurchaseOrderItemModel",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.po_number} [{self.status}]>"


class PurchaseOrderItemModel(TrackedBase):
    """A line on a purchase order."""

    __tablename__ = "purchase_order_items"

    __table_args__ = (
        Index("idx_purchase_order_item_po", "po_id"),
    )

    po_id: Mapped[UUID] = mapped_column(ForeignKey("purchase_orders.id"), nullable=False)
    product_id: Mapped[UUID | None]
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    quantity: Mapped[int] = mapped_column(nullable=False, default=0)
    unit_price: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_price: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    purchase_order: Mapped["PurchaseOrderModel"] = relationship(
        "PurchaseOrderModel",
        back_populates="items",
    )

    def __repr__(self) -> str:
        return f"<PurchaseOrderItemModel {self.description!r} x{self.quantity}>"
