"""
Tests for ThreeWayMatchService.

Covers:
- End-to-end classification from persisted documents
- Status filtering and summaries
- Settings loading, seeding and their effect on results
- Auto-approval candidates
- Delivery status and over-receipt views
- Fetch failures
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from procure_config import get_matching_settings
from procure_config.schema import MatchingSettings
from procure_engines.receipt_status import DeliveryStatus
from procure_engines.three_way_match import MatchStatus
from procure_kernel.exceptions import DataFetchError, UnknownMatchStatusError
from procure_kernel.logging_config import LogContext
from procure_kernel.models import GRNStatus, MatchingSettingsModel
from procure_services.three_way_match_service import ThreeWayMatchService


@pytest.fixture
def invoices(make_purchase_order, make_grn, make_invoice):
    """One invoice per match bucket, plus one not linked to a PO."""
    po = make_purchase_order(1000)
    grn = make_grn(po, accepted=10)

    return {
        "matched": make_invoice(1000, po=po, grns=[grn], invoice_number="INV-1"),
        "within": make_invoice(1030, po=po, grns=[grn], invoice_number="INV-2"),
        "mismatch": make_invoice(1200, po=po, grns=[grn], invoice_number="INV-3"),
        "no_grn": make_invoice(1000, po=po, invoice_number="INV-4"),
        "unlinked": make_invoice(1000, invoice_number="INV-5"),
    }


class TestMatchResults:

    def test_each_bucket(self, session, invoices):
        results = ThreeWayMatchService(session).match_results()

        assert [(r.invoice_number, r.match_status) for r in results] == [
            ("INV-1", MatchStatus.MATCHED),
            ("INV-2", MatchStatus.WITHIN_TOLERANCE),
            ("INV-3", MatchStatus.MISMATCH),
            ("INV-4", MatchStatus.NO_GRN),
        ]

    @pytest.mark.parametrize("status", [MatchStatus.MISMATCH, "mismatch"])
    def test_status_filter(self, session, invoices, status):
        results = ThreeWayMatchService(session).match_results(status=status)

        assert [r.invoice_id for r in results] == [invoices["mismatch"].id]

    def test_all_filter(self, session, invoices):
        assert len(ThreeWayMatchService(session).match_results(status="all")) == 4

    def test_unknown_filter_rejected(self, session, invoices):
        with pytest.raises(UnknownMatchStatusError):
            ThreeWayMatchService(session).match_results(status="paid")

    def test_explicit_settings_override_persisted(self, session, invoices):
        results = ThreeWayMatchService(session).match_results(
            settings=MatchingSettings(total_tolerance_percentage=Decimal("5")),
            status=MatchStatus.MATCHED,
        )

        assert {r.invoice_number for r in results} == {"INV-1", "INV-2"}

    def test_repeat_call_served_from_cache(self, session, invoices):
        service = ThreeWayMatchService(session)

        service.match_results()
        service.match_results()

        assert service.cache.misses == 4
        assert service.cache.hits == 4

    def test_subset_call_keeps_other_cached_invoices(self, session, invoices):
        service = ThreeWayMatchService(session)
        service.match_results()

        service.match_results(invoice_ids=[invoices["matched"].id])

        assert len(service.cache) == 4
        assert service.cache.hits == 1

    def test_invoice_leaving_projection_evicted(self, session, invoices):
        service = ThreeWayMatchService(session)
        service.match_results()

        invoices["mismatch"].purchase_order_id = None
        session.flush()
        service.match_results()

        assert len(service.cache) == 3
        assert service.cache.invalidate(invoices["mismatch"].id) is False

    def test_one_correlation_id_per_call(self, session, invoices, captured_logs):
        service = ThreeWayMatchService(session)

        service.match_results(settings=MatchingSettings())
        service.match_results(settings=MatchingSettings())

        produced = [
            r for r in captured_logs() if r["message"] == "three_way_match_results_produced"
        ]
        evaluated = [
            r for r in captured_logs() if r["message"] == "three_way_match_evaluated"
        ]
        assert len(produced) == 2
        assert produced[0]["correlation_id"] != produced[1]["correlation_id"]
        assert {r["correlation_id"] for r in evaluated} == {produced[0]["correlation_id"]}
        assert "correlation_id" not in LogContext.get_all()

    def test_caller_correlation_id_kept(self, session, invoices, captured_logs):
        with LogContext.bind(correlation_id="report-run"):
            ThreeWayMatchService(session).match_results(settings=MatchingSettings())

        produced = [
            r for r in captured_logs() if r["message"] == "three_way_match_results_produced"
        ]
        assert produced[0]["correlation_id"] == "report-run"

    def test_fetch_failure_propagates(self, session, monkeypatch, captured_logs):
        def _fail(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        service = ThreeWayMatchService(session, cache=None)
        monkeypatch.setattr(session, "execute", _fail)

        with pytest.raises(DataFetchError):
            service.match_results(settings=MatchingSettings())

        assert any(r["message"] == "three_way_match_fetch_failed" for r in captured_logs())


class TestSummary:

    def test_counts_per_status(self, session, invoices):
        service = ThreeWayMatchService(session)
        summary = service.summarize(service.match_results())

        assert summary.total == 4
        assert summary.matched == 1
        assert summary.within_tolerance == 1
        assert summary.mismatch == 1
        assert summary.no_grn == 1
        assert summary.count("matched") == 1
        assert summary.count(MatchStatus.NO_GRN) == 1
        assert summary.count("all") == 4

    def test_count_unknown_status_raises(self, session):
        summary = ThreeWayMatchService.summarize([])

        with pytest.raises(UnknownMatchStatusError):
            summary.count("approved")

    def test_empty(self, session):
        summary = ThreeWayMatchService.summarize([])

        assert summary.total == 0
        assert set(summary.counts) == set(MatchStatus)
        assert all(count == 0 for count in summary.counts.values())


class TestSettings:

    def test_defaults_when_no_row(self, session):
        assert ThreeWayMatchService(session).load_settings() == MatchingSettings()

    def test_ensure_default_settings_seeds_once(self, session, captured_logs):
        service = ThreeWayMatchService(session)
        actor = uuid4()

        first = service.ensure_default_settings(actor)
        second = service.ensure_default_settings(actor)

        assert first == second == MatchingSettings()
        assert session.query(MatchingSettingsModel).count() == 1
        seeded = [r for r in captured_logs() if r["message"] == "matching_settings_seeded"]
        assert len(seeded) == 1
        assert seeded[0]["actor_id"] == str(actor)

    def test_persisted_tolerance_applied(self, session, invoices):
        session.add(MatchingSettingsModel(total_tolerance_percentage=Decimal("5")))
        session.flush()
        service = ThreeWayMatchService(session)

        results = service.match_results(status=MatchStatus.MATCHED)

        assert service.load_settings().total_tolerance_percentage == Decimal("5")
        assert {r.invoice_number for r in results} == {"INV-1", "INV-2"}


class TestAutoApproval:

    def test_disabled_returns_nothing(self, session, invoices):
        service = ThreeWayMatchService(session)
        results = service.match_results()

        assert service.auto_approval_candidates(results, MatchingSettings()) == []

    def test_enabled_returns_matched_only(self, session, invoices):
        service = ThreeWayMatchService(session)
        results = service.match_results()

        candidates = service.auto_approval_candidates(
            results, MatchingSettings(auto_approve_matched=True)
        )

        assert [c.invoice_id for c in candidates] == [invoices["matched"].id]

    def test_quoted_false_flag_keeps_auto_approval_off(self, session, invoices, tmp_path):
        path = tmp_path / "tolerances.yaml"
        path.write_text("matching_settings:\n  auto_approve_matched: \"false\"\n")
        service = ThreeWayMatchService(session)
        settings = get_matching_settings(path)

        candidates = service.auto_approval_candidates(service.match_results(settings), settings)

        assert settings.auto_approve_matched is False
        assert candidates == []


class TestDeliveryViews:

    def test_delivery_summaries(self, session, make_purchase_order, make_grn):
        pending = make_purchase_order(100, items=(("Paper", 10, "10.00"),), po_number="PO-A")
        partial = make_purchase_order(100, items=(("Ink", 10, "10.00"),), po_number="PO-B")
        full = make_purchase_order(100, items=(("Toner", 10, "10.00"),), po_number="PO-C")
        make_grn(pending, accepted=10, status=GRNStatus.DRAFT)
        make_grn(partial, accepted=4)
        make_grn(full, accepted=6)
        make_grn(full, accepted=4)

        summaries = ThreeWayMatchService(session).delivery_summaries()

        assert [(s.po_number, s.delivery_status, s.grn_count) for s in summaries] == [
            ("PO-A", DeliveryStatus.PENDING, 0),
            ("PO-B", DeliveryStatus.PARTIALLY_RECEIVED, 1),
            ("PO-C", DeliveryStatus.FULLY_RECEIVED, 2),
        ]

    def test_item_receipt_statuses(self, session, make_purchase_order, make_grn):
        po = make_purchase_order(100, items=(("Ink", 10, "10.00"),))
        make_grn(po, accepted=4)

        statuses = ThreeWayMatchService(session).item_receipt_statuses(po.id)

        assert len(statuses) == 1
        assert statuses[0].quantity_received == 4
        assert statuses[0].quantity_pending == 6
        assert statuses[0].received_value == Decimal("40")

    def test_over_received_items(self, session, make_purchase_order, make_grn):
        po = make_purchase_order(100, items=(("Ink", 10, "10.00"),))
        make_grn(po, accepted=12)
        service = ThreeWayMatchService(session)

        flagged = service.over_received_items()
        allowed = service.over_received_items(MatchingSettings(allow_over_receipt=True))

        assert [s.quantity_received for s in flagged] == [12]
        assert allowed == []
