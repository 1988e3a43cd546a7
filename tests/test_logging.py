"""Tests for the structured logging system (procure_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from procure_engines.three_way_match import MatchStatus
from procure_kernel.exceptions import DataFetchError
from procure_kernel.logging_config import (
    CONTEXT_FIELDS,
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite config."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "procure_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("evaluated", extra={"record_count": 3, "status": "matched"})

        record = _parse_log(stream)
        assert record["record_count"] == 3
        assert record["status"] == "matched"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", invoice_id="inv-456")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["invoice_id"] == "inv-456"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_code_extracted(self):
        """Kernel exceptions carry a .code attribute and structured fields."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        try:
            raise DataFetchError("three_way_match_records", "connection refused")
        except DataFetchError:
            logger.error("fetch_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "DATA_FETCH_ERROR"
        assert record["exc_type"] == "DataFetchError"
        assert record["exc_source"] == "three_way_match_records"
        assert record["exc_reason"] == "connection refused"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "invoice_id" not in record

    def test_uuid_decimal_and_enum_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("typed", extra={
            "purchase_order_id": uid,
            "po_amount": Decimal("1000.50"),
            "match_status": MatchStatus.WITHIN_TOLERANCE,
        })

        record = _parse_log(stream)
        assert record["purchase_order_id"] == str(uid)
        assert record["po_amount"] == "1000.50"
        assert record["match_status"] == "within_tolerance"

    def test_debug_filtered_at_default_level(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", purchase_order_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "purchase_order_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(actor_id="outer")
        with LogContext.bind(actor_id="inner"):
            assert LogContext.get_all()["actor_id"] == "inner"
        assert LogContext.get_all()["actor_id"] == "outer"

    def test_bind_restores_none(self):
        assert "invoice_id" not in LogContext.get_all()
        with LogContext.bind(invoice_id="temp"):
            assert LogContext.get_all()["invoice_id"] == "temp"
        assert "invoice_id" not in LogContext.get_all()

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            actor_id="a",
            invoice_id="i",
            purchase_order_id="p",
        )
        ctx = LogContext.get_all()
        assert set(ctx) == set(CONTEXT_FIELDS)
        assert ctx["purchase_order_id"] == "p"

    def test_ids_stored_as_strings(self):
        invoice_id = uuid4()
        with LogContext.bind(invoice_id=invoice_id):
            assert LogContext.get_all() == {"invoice_id": str(invoice_id)}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(entry_id="x")
        with pytest.raises(TypeError):
            with LogContext.bind(entry_id="x"):
                pass

    def test_bind_restores_on_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(correlation_id="run-1"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)

        # pytest's logging plugin may attach capture handlers of its own
        handlers = logging.getLogger("procure_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers

    def test_reset_removes_installed_handler(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        reset_logging()

        assert handler not in logging.getLogger("procure_kernel").handlers

    def test_get_logger_returns_child(self):
        assert get_logger("services.three_way_match").name == (
            "procure_kernel.services.three_way_match"
        )

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "procure_kernel.deep.nested.module"
