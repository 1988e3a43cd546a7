"""
procure_engines.three_way_match -- PO / GRN / Invoice reconciliation.

Responsibility:
    Given an invoice's amount, its purchase order's amount and the
    aggregated value of the approved goods-received notes linked to it,
    compute the PO and GRN variances and classify the invoice into one of
    four match-confidence buckets using the configured total tolerance.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Delegates variance arithmetic to ``procure_engines.variance``.
    Does not import ``procure_config``: any object exposing
    ``total_tolerance_percentage`` is accepted as settings.

Classification (evaluated in this fixed order):
    1. linked_grn_count == 0                 -> no_grn
    2. either variance percent undefined     -> mismatch
    3. |po%| <= tol and |grn%| <= tol        -> matched
    4. |po%| <= 2*tol and |grn%| <= 2*tol    -> within_tolerance
    5. otherwise                             -> mismatch

    The four buckets partition the input space; the result is recomputed
    on every call and carries no workflow state.

Invariants enforced:
    - Replay safety: identical inputs produce identical outputs.
    - Decimal-only arithmetic.  Classification compares the exact
      percentages; rounding to 2 decimal places happens only in the
      ``reported_*`` properties of the result.
    - Every log line written while an invoice is evaluated carries its
      ``invoice_id`` and ``purchase_order_id`` through LogContext.
    - A zero or absent PO amount (or a zero GRN value with GRNs linked)
      leaves the percentage undefined and classifies as ``mismatch``:
      there is no valid baseline to reconcile against.

Failure modes:
    - ValidationError for negative, NaN or infinite amounts, a negative or
      non-integer GRN count, or a non-positive tolerance.

Usage:
    from procure_engines.three_way_match import InvoiceMatchRecord, evaluate

    result = evaluate(
        InvoiceMatchRecord(
            invoice_id="inv-1",
            invoice_amount=Decimal("1030"),
            po_amount=Decimal("1000"),
            grn_value=Decimal("1000"),
            linked_grn_count=1,
        ),
        MatchingSettings(total_tolerance_percentage=Decimal("2")),
    )
    result.match_status  # MatchStatus.WITHIN_TOLERANCE
"""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from procure_engines.tracer import traced_engine
from procure_engines.variance import VarianceCalculator, quantize_cents
from procure_kernel.domain.dtos import InvoiceMatchRecord
from procure_kernel.exceptions import UnknownMatchStatusError
from procure_kernel.logging_config import LogContext, get_logger
from procure_kernel.utils.numeric import (
    to_non_negative_decimal,
    to_non_negative_int,
    to_positive_decimal,
)

logger = get_logger("engines.three_way_match")

ALL_STATUSES = "all"


class MatchStatus(str, Enum):
    """Match-confidence bucket of an invoice."""

    NO_GRN = "no_grn"
    MATCHED = "matched"
    WITHIN_TOLERANCE = "within_tolerance"
    MISMATCH = "mismatch"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @classmethod
    def parse(cls, value: MatchStatus | str | None) -> MatchStatus | None:
        """
        Parse a status filter.  ``None`` and ``"all"`` mean no filter.

        Raises:
            UnknownMatchStatusError: for any other unrecognised value.
        """
        if value is None or isinstance(value, cls):
            return value
        if value == ALL_STATUSES:
            return None
        try:
            return cls(value)
        except ValueError as exc:
            raise UnknownMatchStatusError(str(value)) from exc


_STATUS_LABELS = {
    MatchStatus.NO_GRN: "No GRN",
    MatchStatus.MATCHED: "Matched",
    MatchStatus.WITHIN_TOLERANCE: "Within Tolerance",
    MatchStatus.MISMATCH: "Mismatch",
}


class ToleranceSettings(Protocol):
    """Anything carrying the classification tolerance (percentage points)."""

    total_tolerance_percentage: Any


@dataclass(frozen=True)
class ThreeWayMatchResult:
    """
    Derived reconciliation result for one invoice.

    Never persisted as authoritative state.  Percentages are None when not
    applicable: no PO amount or a zero PO amount for the PO side; no linked
    GRNs or a zero received value for the GRN side.

    Variances and percentages are exact; use the ``reported_*`` properties
    for figures rounded to cents.
    """

    invoice_id: str | UUID
    invoice_number: str
    po_number: str | None
    currency: str
    po_amount: Decimal | None
    grn_value: Decimal
    invoice_amount: Decimal
    linked_grn_count: int
    po_variance: Decimal | None
    po_variance_percent: Decimal | None
    grn_variance: Decimal
    grn_variance_percent: Decimal | None
    match_status: MatchStatus
    tolerance_percent: Decimal

    @property
    def label(self) -> str:
        return self.match_status.label

    @property
    def requires_review(self) -> bool:
        """True unless the invoice matched outright."""
        return self.match_status is not MatchStatus.MATCHED

    @property
    def reported_po_variance(self) -> Decimal | None:
        return None if self.po_variance is None else quantize_cents(self.po_variance)

    @property
    def reported_po_variance_percent(self) -> Decimal | None:
        if self.po_variance_percent is None:
            return None
        return quantize_cents(self.po_variance_percent)

    @property
    def reported_grn_variance(self) -> Decimal:
        return quantize_cents(self.grn_variance)

    @property
    def reported_grn_variance_percent(self) -> Decimal | None:
        if self.grn_variance_percent is None:
            return None
        return quantize_cents(self.grn_variance_percent)


class ThreeWayMatchEvaluator:
    """
    Pure three-way match evaluator.

    Contract:
        No I/O, no database access, no clock, no global settings.  The
        tolerance arrives with every call.
    Guarantees:
        - ``evaluate`` validates every numeric input before computing.
        - ``evaluate_batch`` preserves input order whether or not it runs
          on a thread pool.
    Non-goals:
        - Does not fetch or persist anything; callers join the invoice,
          PO and GRN rows and render the result.
        - Does not apply line-level or strict-mode matching.
    """

    def __init__(self) -> None:
        self._variance_calculator = VarianceCalculator()

    @staticmethod
    def classify(
        po_variance_percent: Decimal | None,
        grn_variance_percent: Decimal | None,
        linked_grn_count: int,
        tolerance: Decimal,
    ) -> MatchStatus:
        """Place an invoice in its bucket. See the module docstring for the order."""
        if linked_grn_count == 0:
            return MatchStatus.NO_GRN
        if po_variance_percent is None or grn_variance_percent is None:
            return MatchStatus.MISMATCH

        po_abs = abs(po_variance_percent)
        grn_abs = abs(grn_variance_percent)
        if po_abs <= tolerance and grn_abs <= tolerance:
            return MatchStatus.MATCHED
        wide = tolerance * 2
        if po_abs <= wide and grn_abs <= wide:
            return MatchStatus.WITHIN_TOLERANCE
        return MatchStatus.MISMATCH

    def evaluate(
        self,
        invoice_record: InvoiceMatchRecord,
        matching_settings: ToleranceSettings,
    ) -> ThreeWayMatchResult:
        """
        Reconcile one invoice against its PO and received goods.

        Args:
            invoice_record: The joined invoice / PO / GRN figures.
            matching_settings: Supplies ``total_tolerance_percentage``.

        Returns:
            ThreeWayMatchResult with variances and the match status.

        Raises:
            ValidationError: On malformed numeric input.
        """
        with LogContext.bind(
            invoice_id=invoice_record.invoice_id,
            purchase_order_id=invoice_record.purchase_order_id,
        ):
            return self._evaluate(invoice_record, matching_settings)

    @traced_engine(
        "three_way_match", "1.0",
        fingerprint_fields=("invoice_record", "matching_settings"),
    )
    def _evaluate(
        self,
        invoice_record: InvoiceMatchRecord,
        matching_settings: ToleranceSettings,
    ) -> ThreeWayMatchResult:
        invoice_amount = to_non_negative_decimal(
            "invoice_amount", invoice_record.invoice_amount
        )
        po_amount = (
            None if invoice_record.po_amount is None
            else to_non_negative_decimal("po_amount", invoice_record.po_amount)
        )
        grn_value = to_non_negative_decimal("grn_value", invoice_record.grn_value)
        linked_grn_count = to_non_negative_int(
            "linked_grn_count", invoice_record.linked_grn_count
        )
        tolerance = to_positive_decimal(
            "total_tolerance_percentage", matching_settings.total_tolerance_percentage
        )

        po_variance: Decimal | None = None
        po_variance_percent: Decimal | None = None
        if po_amount is not None:
            po_side = self._variance_calculator.amount_variance(
                expected=po_amount, actual=invoice_amount
            )
            po_variance = po_side.variance
            po_variance_percent = po_side.variance_percent

        grn_side = self._variance_calculator.amount_variance(
            expected=grn_value, actual=invoice_amount
        )
        grn_variance_percent = (
            grn_side.variance_percent if linked_grn_count > 0 else None
        )

        status = self.classify(
            po_variance_percent, grn_variance_percent, linked_grn_count, tolerance
        )

        if status is MatchStatus.MISMATCH and (
            po_variance_percent is None or grn_variance_percent is None
        ):
            logger.info("three_way_match_baseline_undefined", extra={
                "po_amount": str(po_amount) if po_amount is not None else None,
                "grn_value": str(grn_value),
                "invoice_amount": str(invoice_amount),
            })

        logger.debug("three_way_match_evaluated", extra={
            "match_status": status.value,
            "po_variance_percent": (
                str(po_variance_percent) if po_variance_percent is not None else None
            ),
            "grn_variance_percent": (
                str(grn_variance_percent) if grn_variance_percent is not None else None
            ),
            "tolerance_percent": str(tolerance),
        })

        return ThreeWayMatchResult(
            invoice_id=invoice_record.invoice_id,
            invoice_number=invoice_record.invoice_number,
            po_number=invoice_record.po_number,
            currency=invoice_record.currency,
            po_amount=po_amount,
            grn_value=grn_value,
            invoice_amount=invoice_amount,
            linked_grn_count=linked_grn_count,
            po_variance=po_variance,
            po_variance_percent=po_variance_percent,
            grn_variance=grn_side.variance,
            grn_variance_percent=grn_variance_percent,
            match_status=status,
            tolerance_percent=tolerance,
        )

    def evaluate_batch(
        self,
        records: Sequence[InvoiceMatchRecord],
        matching_settings: ToleranceSettings,
        max_workers: int | None = None,
    ) -> list[ThreeWayMatchResult]:
        """
        Evaluate many invoices.

        Evaluations share no state, so with ``max_workers > 1`` they run on
        a thread pool.  Results come back in input order either way; the
        first ValidationError raised propagates.  Worker threads see the
        caller's LogContext.
        """
        t0 = time.monotonic()
        logger.info("three_way_match_batch_started", extra={
            "record_count": len(records),
            "max_workers": max_workers,
        })

        if max_workers is not None and max_workers > 1 and len(records) > 1:
            contexts = [copy_context() for _ in records]
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                results = list(pool.map(
                    lambda ctx, record: ctx.run(self.evaluate, record, matching_settings),
                    contexts,
                    records,
                ))
        else:
            results = [self.evaluate(record, matching_settings) for record in records]

        counts = Counter(result.match_status.value for result in results)
        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("three_way_match_batch_completed", extra={
            "record_count": len(results),
            "status_counts": dict(sorted(counts.items())),
            "duration_ms": duration_ms,
        })
        return results


def evaluate(
    invoice_record: InvoiceMatchRecord,
    matching_settings: ToleranceSettings,
) -> ThreeWayMatchResult:
    """Convenience function: evaluate one invoice with a fresh evaluator."""
    return ThreeWayMatchEvaluator().evaluate(invoice_record, matching_settings)
