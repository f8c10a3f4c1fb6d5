"""Tests for safedecode.logging module."""

from __future__ import annotations

import io
import json
import logging

import pytest

from safedecode.logging import (
    CorrelationContext,
    JsonFormatter,
    LoggerAdapter,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    with_fields,
)


def _json_logger(name: str) -> tuple[logging.Logger, io.StringIO]:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter())
    logger = logging.getLogger(name)
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger, stream


class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_logger_adapter(self) -> None:
        """get_logger returns a LoggerAdapter instance."""
        assert isinstance(get_logger(__name__), LoggerAdapter)

    def test_logger_has_null_handler(self) -> None:
        """A fresh library logger only has a NullHandler."""
        logger = get_logger(f"{__name__}.null_handler")
        handlers = logger.logger.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.NullHandler)


class TestJsonFormatter:
    """Tests for JsonFormatter class."""

    def test_formats_structured_fields(self) -> None:
        """Records render as one JSON object with structured extras."""
        logger, stream = _json_logger(f"{__name__}.json")
        logger.info(
            "Field coerced",
            extra={"operation": "safedecode.decode", "status": "success", "path": "user.id"},
        )
        payload = json.loads(stream.getvalue())
        assert payload["message"] == "Field coerced"
        assert payload["level"] == "INFO"
        assert payload["operation"] == "safedecode.decode"
        assert payload["path"] == "user.id"
        assert payload["ts"].endswith("Z")

    def test_includes_correlation_id_from_context(self) -> None:
        """The contextvar correlation ID is used when the record has none."""
        logger, stream = _json_logger(f"{__name__}.correlation")
        set_correlation_id("req-123")
        try:
            logger.info("Decoding")
        finally:
            set_correlation_id(None)
        assert json.loads(stream.getvalue())["correlation_id"] == "req-123"


class TestLoggerAdapter:
    """Structured field injection."""

    def test_infers_status_from_level(self, caplog: pytest.LogCaptureFixture) -> None:
        """Status defaults follow the level and operation defaults to unknown."""
        caplog.set_level(logging.DEBUG, logger=f"{__name__}.status")
        logger = get_logger(f"{__name__}.status")
        logger.info("ok")
        logger.warning("hmm")
        logger.error("bad")
        statuses = [record.__dict__["status"] for record in caplog.records]
        assert statuses == ["success", "warning", "error"]
        assert {record.__dict__["operation"] for record in caplog.records} == {"unknown"}

    def test_log_failure_records_exception(self, caplog: pytest.LogCaptureFixture) -> None:
        """log_failure adds the exception type and detail."""
        caplog.set_level(logging.INFO, logger=f"{__name__}.failure")
        logger = get_logger(f"{__name__}.failure")
        logger.log_failure("Load failed", exception=ValueError("nope"), operation="load")
        record = caplog.records[-1].__dict__
        assert record["status"] == "error"
        assert record["error_type"] == "ValueError"
        assert record["error_detail"] == "nope"

    def test_log_success_duration(self, caplog: pytest.LogCaptureFixture) -> None:
        """log_success records duration and custom fields."""
        caplog.set_level(logging.INFO, logger=f"{__name__}.success")
        get_logger(f"{__name__}.success").log_success(
            "Done", operation="decode", duration_ms=1.5, fields_decoded=3
        )
        record = caplog.records[-1].__dict__
        assert record["duration_ms"] == 1.5
        assert record["fields_decoded"] == 3


class TestCorrelationContext:
    """Tests for CorrelationContext."""

    def test_sets_and_restores(self) -> None:
        """The previous correlation ID returns on exit."""
        set_correlation_id("outer")
        try:
            with CorrelationContext("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"
        finally:
            set_correlation_id(None)


class TestWithFields:
    """Tests for with_fields."""

    def test_binds_fields(self, caplog: pytest.LogCaptureFixture) -> None:
        """Bound fields appear on every record; per-call extras win."""
        caplog.set_level(logging.INFO, logger=f"{__name__}.bound")
        base = get_logger(f"{__name__}.bound")
        with with_fields(base, operation="decode", batch="b1") as log:
            log.info("first")
            log.info("second", extra={"batch": "b2"})
        batches = [record.__dict__["batch"] for record in caplog.records]
        assert batches == ["b1", "b2"]
        assert all(record.__dict__["operation"] == "decode" for record in caplog.records)

    def test_correlation_id_scoped(self) -> None:
        """A correlation_id field is pushed into context for the block."""
        with with_fields(get_logger(__name__), correlation_id="cid-9"):
            assert get_correlation_id() == "cid-9"
        assert get_correlation_id() is None
