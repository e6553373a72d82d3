"""Tests for guard_kernel.logging_config and the engine tracer."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from guard_engines.tracer import compute_input_fingerprint, traced_engine
from guard_kernel.exceptions import MonthlyHoursNotFoundError
from guard_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def json_lines():
    """Configure logging onto a buffer; calling the fixture value parses what was written."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())

    def configure(level=logging.INFO):
        configure_logging(handler=handler, level=level)

    def read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    read.configure = configure
    return read


# ---------------------------------------------------------------------------
# Record format
# ---------------------------------------------------------------------------


class TestStructuredFormatter:

    def test_envelope(self, json_lines):
        json_lines.configure()
        get_logger("test").info("hello")

        (record,) = json_lines()
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "guard_kernel.test"
        assert "ts" in record
        assert "correlation_id" not in record

    def test_extra_and_context(self, json_lines):
        json_lines.configure()
        LogContext.set(correlation_id="abc-123", guard_id="g-456")
        get_logger("test").info("monthly_hours_recorded", extra={"year": 2024, "record_created": True})

        (record,) = json_lines()
        assert record["year"] == 2024
        assert record["record_created"] is True
        assert record["correlation_id"] == "abc-123"
        assert record["guard_id"] == "g-456"

    def test_uuid_and_decimal_values(self, json_lines):
        json_lines.configure()
        uid = uuid4()
        get_logger("test").info("with_values", extra={"row_id_value": uid, "hours": Decimal("7.50")})

        (record,) = json_lines()
        assert record["row_id_value"] == str(uid)
        assert record["hours"] == "7.50"

    def test_plain_exception(self, json_lines):
        json_lines.configure()
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        (record,) = json_lines()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "traceback" in record

    def test_ledger_exception_fields(self, json_lines):
        json_lines.configure()
        try:
            raise MonthlyHoursNotFoundError("g-1", 2024, 3)
        except MonthlyHoursNotFoundError:
            get_logger("test").error("lookup_failed", exc_info=True)

        (record,) = json_lines()
        assert record["exc_code"] == "MONTHLY_HOURS_NOT_FOUND"
        assert record["exc_type"] == "MonthlyHoursNotFoundError"
        assert (record["exc_guard_id"], record["exc_year"], record["exc_month"]) == ("g-1", 2024, 3)

    def test_level_filtering(self, json_lines):
        json_lines.configure()
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        assert [r["message"] for r in json_lines()] == ["first", "second"]


# ---------------------------------------------------------------------------
# Context fields
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_only_overwrites_given_fields(self):
        LogContext.set(correlation_id="x", row_id="y")
        LogContext.set(row_id="z")
        assert LogContext.get_all() == {"correlation_id": "x", "row_id": "z"}

    def test_clear(self):
        LogContext.set(correlation_id="x", batch_id="b")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(guard_id="outer")
        with LogContext.bind(guard_id="inner"):
            assert LogContext.get_all()["guard_id"] == "inner"
        assert LogContext.get_all()["guard_id"] == "outer"

    def test_bind_restores_absence(self):
        with LogContext.bind(batch_id="temp"):
            assert LogContext.get_all() == {"batch_id": "temp"}
        assert LogContext.get_all() == {}

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(row_id="r"):
                raise RuntimeError
        assert LogContext.get_all() == {}

    def test_bind_skips_unknown_and_none(self):
        with LogContext.bind(not_a_field="x", row_id="r", guard_id=None):
            assert LogContext.get_all() == {"row_id": "r"}

    def test_every_field(self):
        LogContext.set(correlation_id="c", actor_id="a", guard_id="g", row_id="r", batch_id="b")
        assert LogContext.get_all() == {
            "correlation_id": "c", "actor_id": "a", "guard_id": "g", "row_id": "r", "batch_id": "b",
        }


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_second_call_is_ignored(self, json_lines):
        json_lines.configure()
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert len(logging.getLogger("guard_kernel").handlers) == 1

    def test_children_share_the_handler(self, json_lines):
        json_lines.configure(level=logging.DEBUG)
        child = get_logger("modules.roster.service")
        child.debug("hierarchy_test")

        assert child.name == "guard_kernel.modules.roster.service"
        assert json_lines()[0]["logger"] == "guard_kernel.modules.roster.service"


# ---------------------------------------------------------------------------
# Engine tracer
# ---------------------------------------------------------------------------


class _Engine:

    @traced_engine("sample", "2.1", fingerprint_fields=("hours", "slots"))
    def run(self, hours, slots=(), note=None):
        return hours


class TestTracedEngine:

    def test_fingerprint_is_order_independent_for_mappings(self):
        a = compute_input_fingerprint(("x",), {"x": {"b": 1, "a": 2}})
        b = compute_input_fingerprint(("x",), {"x": {"a": 2, "b": 1}})
        assert a == b
        assert len(a) == 16

    def test_missing_field_hashes_as_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(("x",), {"x": None})

    def test_trace_emitted_with_positional_arguments(self, json_lines):
        json_lines.configure()
        assert _Engine().run(Decimal("8"), ["a"]) == Decimal("8")
        assert _Engine().run(hours=Decimal("8"), slots=["a"], note="ignored") == Decimal("8")

        first, second = json_lines()
        assert first["message"] == "GUARD_ENGINE_TRACE"
        assert first["engine_name"] == "sample"
        assert first["engine_version"] == "2.1"
        assert first["function"] == "_Engine.run"
        assert first["input_fingerprint"] == second["input_fingerprint"]
