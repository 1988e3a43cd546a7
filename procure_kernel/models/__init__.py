"""ORM models. Importing this package registers every table on Base.metadata."""

from procure_kernel.models.grn import (
    GoodsReceivedNoteModel,
    GRNInvoiceLinkModel,
    GRNItemModel,
    GRNStatus,
)
from procure_kernel.models.invoice import InvoiceModel
from procure_kernel.models.matching_settings import MatchingSettingsModel
from procure_kernel.models.purchase_order import PurchaseOrderItemModel, PurchaseOrderModel

__all__ = [
    "PurchaseOrderModel",
    "PurchaseOrderItemModel",
    "InvoiceModel",
    "GoodsReceivedNoteModel",
    "GRNItemModel",
    "GRNInvoiceLinkModel",
    "GRNStatus",
    "MatchingSettingsModel",
]
