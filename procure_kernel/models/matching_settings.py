"""Persisted three-way matching settings row."""

from decimal import Decimal

from sqlalchemy.orm import Mapped, mapped_column

from procure_kernel.db.base import TrackedBase


class MatchingSettingsModel(TrackedBase):
    """
    Process-wide matching configuration.

    One row is expected; the oldest row wins if several exist.  Column
    defaults match ``procure_config.schema.MatchingSettings``.
    """

    __tablename__ = "matching_settings"

    price_tolerance_percentage: Mapped[Decimal] = mapped_column(default=Decimal("2.00"))
    quantity_tolerance_percentage: Mapped[Decimal] = mapped_column(default=Decimal("0.00"))
    tax_tolerance_percentage: Mapped[Decimal] = mapped_column(default=Decimal("1.00"))
    total_tolerance_percentage: Mapped[Decimal] = mapped_column(default=Decimal("2.00"))

    strict_matching_mode: Mapped[bool] = mapped_column(default=False)
    allow_over_receipt: Mapped[bool] = mapped_column(default=False)
    require_grn_for_invoice: Mapped[bool] = mapped_column(default=True)
    auto_approve_matched: Mapped[bool] = mapped_column(default=False)

    def to_dict(self) -> dict:
        return {
            "price_tolerance_percentage": self.price_tolerance_percentage,
            "quantity_tolerance_percentage": self.quantity_tolerance_percentage,
            "tax_tolerance_percentage": self.tax_tolerance_percentage,
            "total_tolerance_percentage": self.total_tolerance_percentage,
            "strict_matching_mode": self.strict_matching_mode,
            "allow_over_receipt": self.allow_over_receipt,
            "require_grn_for_invoice": self.require_grn_for_invoice,
            "auto_approve_matched": self.auto_approve_matched,
        }

    def __repr__(self) -> str:
        return f"<MatchingSettingsModel total_tolerance={self.total_tolerance_percentage}%>"
