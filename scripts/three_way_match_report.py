#!/usr/bin/env python3
"""
Print the three-way match report from persisted invoice, PO and GRN data.

Usage:
    python3 scripts/three_way_match_report.py
    python3 scripts/three_way_match_report.py --status mismatch
    python3 scripts/three_way_match_report.py --settings my_tolerances.yaml
    python3 scripts/three_way_match_report.py --deliveries
    python3 scripts/three_way_match_report.py --json

The database URL comes from --db-url or the DATABASE_URL environment
variable.  Tolerances come from --settings when given, otherwise from the
matching_settings table, otherwise from the packaged defaults.
"""

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

DEFAULT_DB_URL = os.environ.get("DATABASE_URL", "sqlite:///procure.db")

W = 100


# =============================================================================
# Formatting helpers
# =============================================================================


def banner(title: str) -> None:
    print()
    print("=" * W)
    print(f"  {title}")
    print("=" * W)


def fmt_amount(value) -> str:
    return "-" if value is None else f"{value:,.2f}"


def fmt_percent(value) -> str:
    return "-" if value is None else f"{value:+.2f}%"


def print_results(results, settings) -> None:
    banner(
        f"THREE-WAY MATCH  (tolerance {settings.total_tolerance_percentage}%, "
        f"{settings.mode_label} mode)"
    )
    print(
        f"  {'Invoice':<14} {'PO':<12} {'PO amount':>14} {'GRN value':>14} "
        f"{'Invoice amt':>14} {'PO var':>9} {'GRN var':>9}  Status"
    )
    print("  " + "-" * (W - 2))
    for r in results:
        print(
            f"  {r.invoice_number:<14} {r.po_number or '-':<12} "
            f"{fmt_amount(r.po_amount):>14} {fmt_amount(r.grn_value):>14} "
            f"{fmt_amount(r.invoice_amount):>14} "
            f"{fmt_percent(r.reported_po_variance_percent):>9} "
            f"{fmt_percent(r.reported_grn_variance_percent):>9}  {r.label}"
        )
    if not results:
        print("  (no invoices)")


def print_summary(summary) -> None:
    banner("SUMMARY")
    print(f"  {'Total':<18} {summary.total:>6}")
    for status, count in summary.counts.items():
        print(f"  {status.label:<18} {count:>6}")


def print_deliveries(deliveries) -> None:
    banner("DELIVERY STATUS")
    for d in deliveries:
        print(
            f"  {d.po_number:<12} GRNs {d.grn_count:>3}  "
            f"ordered {d.total_ordered:>6}  received {d.total_received:>6}  "
            f"pending {d.total_pending:>6}  {d.delivery_status.value}"
        )
    if not deliveries:
        print("  (no purchase orders)")


# =============================================================================
# Main
# =============================================================================


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Three-way match report (PO vs GRN vs invoice).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python3 scripts/three_way_match_report.py --status mismatch\n"
            "  python3 scripts/three_way_match_report.py --json\n"
        ),
    )
    parser.add_argument(
        "--status", type=str, default="all",
        help="Filter: all, matched, within_tolerance, mismatch, no_grn",
    )
    parser.add_argument(
        "--settings", type=Path, default=None,
        help="YAML file with matching_settings (default: database row)",
    )
    parser.add_argument(
        "--deliveries", action="store_true",
        help="Also print delivery status per purchase order",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Output results as JSON instead of a table",
    )
    parser.add_argument(
        "--db-url", type=str, default=DEFAULT_DB_URL,
        help=f"Database URL (default: {DEFAULT_DB_URL})",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Emit structured JSON logs to stderr",
    )

    args = parser.parse_args()

    if not args.verbose:
        logging.disable(logging.CRITICAL)

    from procure_config import get_matching_settings
    from procure_kernel.db.engine import init_engine_from_url, session_scope
    from procure_kernel.exceptions import (
        ConfigurationError,
        DataFetchError,
        UnknownMatchStatusError,
        ValidationError,
    )
    from procure_services.three_way_match_service import ThreeWayMatchService

    try:
        init_engine_from_url(args.db_url, echo=False)
    except Exception as exc:
        print(f"  ERROR: Cannot connect to database: {exc}", file=sys.stderr)
        return 1

    try:
        with session_scope() as session:
            service = ThreeWayMatchService(session)
            settings = (
                get_matching_settings(args.settings)
                if args.settings is not None
                else service.load_settings()
            )
            results = service.match_results(settings=settings, status=args.status)
            summary = service.summarize(results)
            deliveries = service.delivery_summaries() if args.deliveries else []
    except (UnknownMatchStatusError, ConfigurationError, ValidationError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2
    except DataFetchError as exc:
        print(f"  ERROR: Could not read match data: {exc}", file=sys.stderr)
        return 1

    if args.json:
        payload = {
            "settings": settings.to_dict(),
            "results": [
                {
                    **asdict(r),
                    "po_variance": r.reported_po_variance,
                    "po_variance_percent": r.reported_po_variance_percent,
                    "grn_variance": r.reported_grn_variance,
                    "grn_variance_percent": r.reported_grn_variance_percent,
                    "label": r.label,
                }
                for r in results
            ],
            "summary": {
                "total": summary.total,
                **{status.value: count for status, count in summary.counts.items()},
            },
        }
        if args.deliveries:
            payload["deliveries"] = [asdict(d) for d in deliveries]
        print(json.dumps(payload, indent=2, default=str))
        return 0

    print_results(results, settings)
    print_summary(summary)
    if args.deliveries:
        print_deliveries(deliveries)
    return 0


if __name__ == "__main__":
    sys.exit(main())
