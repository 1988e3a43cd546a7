"""
Module: procure_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  Canonical import surface for higher layers
    (procure_services, scripts).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import procure_kernel logging, exceptions and utils.
    MUST NOT import procure_config or procure_services.

Invariants enforced:
    - Purity: engines never read the clock, the database or settings files.
      Tolerances arrive as explicit parameters.
    - Decimal-only arithmetic for amounts and percentages.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine invocations are traced via ``@traced_engine`` (see
    ``procure_engines.tracer``), emitting PROCURE_ENGINE_TRACE records with
    engine name, version, input fingerprint and duration.
"""

from procure_engines.receipt_status import (
    DeliveryStatus,
    ItemReceiptStatus,
    OrderedItem,
    PODeliverySummary,
    ReceiptLine,
    ReceiptStatusCalculator,
)
from procure_engines.three_way_match import (
    ALL_STATUSES,
    InvoiceMatchRecord,
    MatchStatus,
    ThreeWayMatchEvaluator,
    ThreeWayMatchResult,
    evaluate,
)
from procure_engines.variance import AmountVariance, VarianceCalculator

__all__ = [
    # Three-way match
    "ThreeWayMatchEvaluator",
    "InvoiceMatchRecord",
    "ThreeWayMatchResult",
    "MatchStatus",
    "ALL_STATUSES",
    "evaluate",
    # Variance
    "VarianceCalculator",
    "AmountVariance",
    # Receipt status
    "ReceiptStatusCalculator",
    "OrderedItem",
    "ReceiptLine",
    "ItemReceiptStatus",
    "PODeliverySummary",
    "DeliveryStatus",
]
