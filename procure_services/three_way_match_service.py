"""
ThreeWayMatchService -- Reconciliation view over invoices, POs and GRNs.

Composes the read-only selectors with the pure three-way match and
receipt status engines.

Architecture: procure_services -- imperative shell.
    The service resolves matching settings once per call and passes them
    explicitly to the engines.  It owns the transaction boundary for the
    single write it performs (seeding the default settings row).

Contract:
    - ``match_results()`` returns one result per PO-linked invoice, ordered
      by invoice number, optionally filtered by match status.
    - Results are derived on every call (through the cache); nothing
      derived is persisted.
    - Each ``match_results()`` call logs under one correlation id, the
      caller's if one is bound.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from procure_config.schema import MatchingSettings
from procure_engines.receipt_status import (
    ItemReceiptStatus,
    PODeliverySummary,
    ReceiptStatusCalculator,
)
from procure_engines.three_way_match import (
    MatchStatus,
    ThreeWayMatchEvaluator,
    ThreeWayMatchResult,
)
from procure_kernel.exceptions import DataFetchError
from procure_kernel.logging_config import LogContext, get_logger
from procure_kernel.models.matching_settings import MatchingSettingsModel
from procure_kernel.selectors.matching_settings_selector import MatchingSettingsSelector
from procure_kernel.selectors.three_way_match_selector import ThreeWayMatchSelector
from procure_services.match_cache import MatchResultCache

logger = get_logger("services.three_way_match")


@dataclass(frozen=True)
class MatchSummary:
    """Result counts per match status."""

    total: int
    counts: dict[MatchStatus, int]

    def count(self, status: MatchStatus | str) -> int:
        """Results with ``status``; ``"all"`` gives the total.

        Raises:
            UnknownMatchStatusError: for an unrecognised status.
        """
        parsed = MatchStatus.parse(status)
        if parsed is None:
            return self.total
        return self.counts.get(parsed, 0)

    @property
    def matched(self) -> int:
        return self.count(MatchStatus.MATCHED)

    @property
    def within_tolerance(self) -> int:
        return self.count(MatchStatus.WITHIN_TOLERANCE)

    @property
    def mismatch(self) -> int:
        return self.count(MatchStatus.MISMATCH)

    @property
    def no_grn(self) -> int:
        return self.count(MatchStatus.NO_GRN)


class ThreeWayMatchService:
    """Service producing three-way match and delivery views.

    Non-goals:
        - Does NOT approve invoices; ``auto_approval_candidates`` only
          lists them.
        - Does NOT edit settings beyond seeding the defaults.
    """

    def __init__(
        self,
        session: Session,
        cache: MatchResultCache | None = None,
        evaluator: ThreeWayMatchEvaluator | None = None,
    ) -> None:
        self._session = session
        self._evaluator = evaluator or ThreeWayMatchEvaluator()
        self._cache = cache if cache is not None else MatchResultCache(self._evaluator)
        self._match_selector = ThreeWayMatchSelector(session)
        self._settings_selector = MatchingSettingsSelector(session)
        self._receipt_calculator = ReceiptStatusCalculator()

    @property
    def cache(self) -> MatchResultCache:
        return self._cache

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def load_settings(self) -> MatchingSettings:
        """The persisted settings, or the installation defaults if none exist."""
        row = self._settings_selector.get_current()
        if row is None:
            logger.info("matching_settings_not_found_using_defaults")
            return MatchingSettings.with_defaults()
        return MatchingSettings.from_dict(row, source="matching_settings")

    def ensure_default_settings(self, actor_id: UUID | str) -> MatchingSettings:
        """
        Seed the default settings row if none exists and return the settings.

        Commits on insert; rolls back and re-raises on failure.
        """
        with LogContext.bind(actor_id=str(actor_id)):
            row = self._settings_selector.get_current()
            if row is not None:
                return MatchingSettings.from_dict(row, source="matching_settings")

            defaults = MatchingSettings.with_defaults()
            try:
                self._session.add(MatchingSettingsModel(**defaults.to_dict()))
                self._session.commit()
            except SQLAlchemyError:
                self._session.rollback()
                logger.exception("matching_settings_seed_failed")
                raise

            logger.info("matching_settings_seeded", extra={
                "total_tolerance_percentage": str(defaults.total_tolerance_percentage),
            })
            return defaults

    # ------------------------------------------------------------------
    # Three-way match
    # ------------------------------------------------------------------

    def match_results(
        self,
        settings: MatchingSettings | None = None,
        status: MatchStatus | str | None = None,
        invoice_ids: Iterable[UUID] | None = None,
    ) -> list[ThreeWayMatchResult]:
        """
        Evaluate every PO-linked invoice and optionally filter by status.

        Args:
            settings: Tolerances to apply; loaded from the database if None.
            status: A MatchStatus, its value, ``"all"`` or None.
            invoice_ids: Restrict to these invoices.

        Raises:
            UnknownMatchStatusError: for an unrecognised status filter.
            DataFetchError: when the inputs cannot be read.
            ValidationError: when a stored amount is invalid.
        """
        status_filter = MatchStatus.parse(status)
        correlation_id = LogContext.get_all().get("correlation_id") or str(uuid4())

        with LogContext.bind(correlation_id=correlation_id):
            if settings is None:
                settings = self.load_settings()

            try:
                records = self._match_selector.fetch_records(invoice_ids)
            except DataFetchError as exc:
                logger.error("three_way_match_fetch_failed", extra={
                    "source": exc.source,
                    "reason": exc.reason,
                })
                raise

            results = self._cache.get_or_evaluate(
                records, settings, prune=invoice_ids is None
            )
            if status_filter is not None:
                results = [r for r in results if r.match_status is status_filter]

            logger.info("three_way_match_results_produced", extra={
                "record_count": len(records),
                "result_count": len(results),
                "status_filter": status_filter.value if status_filter else None,
                "total_tolerance_percentage": str(settings.total_tolerance_percentage),
            })
        return results

    @staticmethod
    def summarize(results: Sequence[ThreeWayMatchResult]) -> MatchSummary:
        """Count results per status; every status appears, zero if absent."""
        tally = Counter(result.match_status for result in results)
        return MatchSummary(
            total=len(results),
            counts={status: tally.get(status, 0) for status in MatchStatus},
        )

    def auto_approval_candidates(
        self,
        results: Sequence[ThreeWayMatchResult],
        settings: MatchingSettings,
    ) -> list[ThreeWayMatchResult]:
        """Matched invoices, when auto-approval of matches is enabled."""
        if not settings.auto_approve_matched:
            return []
        candidates = [r for r in results if r.match_status is MatchStatus.MATCHED]
        logger.info("auto_approval_candidates_selected", extra={
            "candidate_count": len(candidates),
            "result_count": len(results),
        })
        return candidates

    # ------------------------------------------------------------------
    # Receipt / delivery status
    # ------------------------------------------------------------------

    def _receipt_rollups(
        self, po_id: UUID | None,
    ) -> list[tuple[PODeliverySummary, list[ItemReceiptStatus]]]:
        rollups = []
        for inputs in self._match_selector.fetch_receipt_inputs(po_id):
            with LogContext.bind(purchase_order_id=inputs.po_id):
                rollups.append(self._receipt_calculator.summarize_delivery(
                    inputs.po_id,
                    inputs.po_number,
                    inputs.po_value,
                    inputs.items,
                    inputs.receipts,
                ))
        return rollups

    def delivery_summaries(self, po_id: UUID | None = None) -> list[PODeliverySummary]:
        """Delivery status per purchase order, ordered by PO number."""
        return [summary for summary, _ in self._receipt_rollups(po_id)]

    def item_receipt_statuses(self, po_id: UUID | None = None) -> list[ItemReceiptStatus]:
        """Received and pending quantities per purchase order item."""
        return [
            status
            for _, statuses in self._receipt_rollups(po_id)
            for status in statuses
        ]

    def over_received_items(
        self,
        settings: MatchingSettings | None = None,
        po_id: UUID | None = None,
    ) -> list[ItemReceiptStatus]:
        """Items received beyond order plus quantity tolerance, unless allowed."""
        if settings is None:
            settings = self.load_settings()
        return self._receipt_calculator.over_received_items(
            self.item_receipt_statuses(po_id),
            allow_over_receipt=settings.allow_over_receipt,
            quantity_tolerance_percentage=settings.quantity_tolerance_percentage,
        )
