"""
procure_engines.variance -- Amount variance between a baseline and an actual.

Responsibility:
    Calculate the variance of an actual amount (an invoice total) against
    a baseline amount (a PO total or a received GRN value), both as an
    absolute amount and as a percentage of the baseline.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by ``procure_engines.three_way_match``.

Invariants enforced:
    - Replay safety: identical inputs produce identical outputs.
    - Decimal-only arithmetic; inputs are validated finite and non-negative.
    - Variance amounts and percentages are kept exact; the ``reported_*``
      properties quantize them to 2 decimal places (ROUND_HALF_UP), the
      precision results are reported at.
    - variance = actual - expected; positive means billed above baseline.

Failure modes:
    - ValidationError for negative, NaN or infinite inputs.
    - Division-by-zero safe: ``variance_percent`` is None when the
      baseline is zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from procure_engines.tracer import traced_engine
from procure_kernel.logging_config import get_logger
from procure_kernel.utils.numeric import to_non_negative_decimal

logger = get_logger("engines.variance")

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def quantize_cents(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class AmountVariance:
    """
    Variance of ``actual`` against ``expected``.

    ``variance_percent`` is None when ``expected`` is zero: there is no
    baseline to express the difference against.
    """

    expected: Decimal
    actual: Decimal
    variance: Decimal
    variance_percent: Decimal | None

    @property
    def is_favorable(self) -> bool:
        """True when billed below the baseline."""
        return self.variance < Decimal("0")

    @property
    def is_defined(self) -> bool:
        return self.variance_percent is not None

    @property
    def absolute_percent(self) -> Decimal | None:
        if self.variance_percent is None:
            return None
        return abs(self.variance_percent)

    @property
    def reported_variance(self) -> Decimal:
        return quantize_cents(self.variance)

    @property
    def reported_percent(self) -> Decimal | None:
        if self.variance_percent is None:
            return None
        return quantize_cents(self.variance_percent)


class VarianceCalculator:
    """
    Pure function calculator for amount variances.

    Contract:
        No I/O, no database access, fully deterministic.
    Guarantees:
        - variance = actual - expected
        - variance_percent = (actual - expected) / expected * 100, or None
          when expected == 0.  Neither is rounded.
    Non-goals:
        - Does not interpret tolerance; classification belongs to the
          three-way match evaluator.
    """

    @traced_engine("variance", "1.0", fingerprint_fields=("expected", "actual"))
    def amount_variance(self, expected: Any, actual: Any) -> AmountVariance:
        """
        Calculate the variance of ``actual`` against ``expected``.

        Args:
            expected: Baseline amount (PO amount or GRN received value).
            actual: Billed amount (invoice total).

        Raises:
            ValidationError: If either amount is negative or non-finite.
        """
        expected_d = to_non_negative_decimal("expected", expected)
        actual_d = to_non_negative_decimal("actual", actual)

        difference = actual_d - expected_d
        percent: Decimal | None = None
        if expected_d != Decimal("0"):
            percent = difference / expected_d * HUNDRED

        result = AmountVariance(
            expected=expected_d,
            actual=actual_d,
            variance=difference,
            variance_percent=percent,
        )

        logger.debug("amount_variance_calculated", extra={
            "expected": str(expected_d),
            "actual": str(actual_d),
            "variance": str(result.reported_variance),
            "variance_percent": (
                str(result.reported_percent) if percent is not None else None
            ),
        })
        return result
