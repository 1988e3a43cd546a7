"""
procure_services.match_cache -- Memoized three-way match results.

Responsibility:
    Keep the last result per invoice together with the fingerprint of the
    inputs that produced it, and re-evaluate only invoices whose record or
    tolerance changed since the previous projection.

Architecture position:
    Services -- stateful shell around the pure evaluator.  The cache holds
    derived values only; dropping it never loses information.

Invariants enforced:
    - A cached result is returned only when the record and tolerance
      fingerprint exactly as they did when it was computed.
    - Thread-safe: entry and counter updates happen under one lock.
      Evaluation itself runs outside the lock.
    - A pruning projection leaves exactly the invoices it was given in
      the cache; invoices the selector no longer returns are evicted.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from uuid import UUID

from procure_engines.three_way_match import (
    InvoiceMatchRecord,
    ThreeWayMatchEvaluator,
    ThreeWayMatchResult,
    ToleranceSettings,
)
from procure_engines.tracer import compute_input_fingerprint
from procure_kernel.logging_config import get_logger

logger = get_logger("services.match_cache")

_FINGERPRINT_FIELDS = ("record", "tolerance")


class MatchResultCache:
    """Per-invoice result cache keyed by invoice id."""

    def __init__(self, evaluator: ThreeWayMatchEvaluator | None = None) -> None:
        self._evaluator = evaluator or ThreeWayMatchEvaluator()
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[str, ThreeWayMatchResult]] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def fingerprint(
        record: InvoiceMatchRecord,
        matching_settings: ToleranceSettings,
    ) -> str:
        return compute_input_fingerprint(
            _FINGERPRINT_FIELDS,
            {
                "record": record,
                "tolerance": matching_settings.total_tolerance_percentage,
            },
        )

    def get_or_evaluate(
        self,
        records: Sequence[InvoiceMatchRecord],
        matching_settings: ToleranceSettings,
        prune: bool = True,
    ) -> list[ThreeWayMatchResult]:
        """
        Results for ``records`` in input order, evaluating only stale entries.

        With ``prune`` (the default) entries for invoices not in ``records``
        are dropped afterwards.  Pass ``prune=False`` when ``records`` is a
        subset of the full projection.

        Raises:
            ValidationError: from the evaluator; nothing is cached for the
                failing record.
        """
        results: list[ThreeWayMatchResult] = []
        hits = misses = 0
        for record in records:
            key = str(record.invoice_id)
            fp = self.fingerprint(record, matching_settings)
            with self._lock:
                cached = self._entries.get(key)
            if cached is not None and cached[0] == fp:
                hits += 1
                results.append(cached[1])
                continue

            result = self._evaluator.evaluate(record, matching_settings)
            with self._lock:
                self._entries[key] = (fp, result)
            misses += 1
            results.append(result)

        evicted = 0
        with self._lock:
            self.hits += hits
            self.misses += misses
            if prune:
                keep = {str(record.invoice_id) for record in records}
                stale = [key for key in self._entries if key not in keep]
                for key in stale:
                    del self._entries[key]
                evicted = len(stale)

        logger.debug("match_cache_projection", extra={
            "record_count": len(records),
            "hits": hits,
            "misses": misses,
            "evicted": evicted,
            "cached_entries": len(self),
        })
        return results

    def invalidate(self, invoice_id: str | UUID) -> bool:
        """Drop one invoice's entry. Returns True if it was cached."""
        with self._lock:
            removed = self._entries.pop(str(invoice_id), None) is not None
        if removed:
            logger.debug("match_cache_invalidated", extra={"invoice_id": str(invoice_id)})
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0
        logger.debug("match_cache_cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
