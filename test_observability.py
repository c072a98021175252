"""
Observability Validation Test

This test validates the logging stack:
1. Correlation context carries document, batch, order and invoice ids
2. Nested with_correlation blocks merge and restore the context
3. StructuredFormatter emits JSON with the correlation ids and extra fields
4. HumanReadableFormatter shows the key ids inline
5. Settings drive the log level and are re-read after reset_settings

Pass criteria: a log line for one order can be traced back to its batch and
source document.
"""

import json
import logging

import pytest


def _record(msg="Test message", level=logging.INFO, **extra_fields):
    record = logging.LogRecord(
        name="extraction.segmenter",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    if extra_fields:
        record.extra_fields = extra_fields
    return record


def test_observability_imports():
    """Verify the observability package exports its API."""
    from core.observability import (
        get_logger, configure_logging, CorrelationContext, with_correlation,
    )
    assert get_logger is not None
    assert configure_logging is not None
    assert CorrelationContext is not None
    assert with_correlation is not None


class TestCorrelationContext:
    """Test correlation context values."""

    def test_context_creation(self):
        """Create correlation context with all fields."""
        from core.observability.logging import CorrelationContext

        ctx = CorrelationContext(
            document_id="bdc_118.txt",
            document_type="batch_manifest",
            batch_id="upload-1",
            order_number="3561",
            stage="extract",
        )

        assert ctx.document_id == "bdc_118.txt"
        assert ctx.invoice_number is None
        assert ctx.to_dict() == {
            "document_id": "bdc_118.txt",
            "document_type": "batch_manifest",
            "batch_id": "upload-1",
            "order_number": "3561",
            "stage": "extract",
        }

    def test_merge_ignores_none(self):
        """Merging None keeps the existing value."""
        from core.observability.logging import CorrelationContext

        ctx = CorrelationContext(batch_id="upload-1").merge(batch_id=None, document_id="a.xml")

        assert ctx.batch_id == "upload-1"
        assert ctx.document_id == "a.xml"

    def test_nested_blocks_restore(self):
        """Inner blocks add ids; leaving a block restores the outer context."""
        from core.observability.logging import get_correlation_context, with_correlation

        assert get_correlation_context().batch_id is None

        with with_correlation(batch_id="upload-1"):
            with with_correlation(document_id="bdc.txt", order_number="1001"):
                inner = get_correlation_context()
                assert inner.batch_id == "upload-1"
                assert inner.order_number == "1001"
            outer = get_correlation_context()
            assert outer.batch_id == "upload-1"
            assert outer.order_number is None

        assert get_correlation_context().batch_id is None

    def test_context_restored_after_error(self):
        from core.observability.logging import get_correlation_context, with_correlation

        with pytest.raises(RuntimeError):
            with with_correlation(invoice_number="FA-1"):
                raise RuntimeError("boom")

        assert get_correlation_context().invoice_number is None


class TestFormatters:
    """Test log line rendering."""

    def test_structured_formatter_json_output(self):
        """StructuredFormatter outputs valid JSON with ids and extra fields."""
        from core.observability.logging import StructuredFormatter, with_correlation

        formatter = StructuredFormatter()

        with with_correlation(batch_id="upload-1", document_id="bdc.txt"):
            data = json.loads(formatter.format(_record(segments=3)))

        assert data["message"] == "Test message"
        assert data["level"] == "INFO"
        assert data["logger"] == "extraction.segmenter"
        assert data["batch_id"] == "upload-1"
        assert data["document_id"] == "bdc.txt"
        assert data["segments"] == 3

    def test_structured_formatter_non_json_values(self):
        """Values JSON cannot encode are written as text."""
        from decimal import Decimal
        from core.observability.logging import StructuredFormatter

        data = json.loads(StructuredFormatter().format(_record(price=Decimal("0.90000"))))

        assert data["price"] == "0.90000"

    def test_human_readable_formatter(self):
        """Key ids appear inline, extra fields at the end."""
        from core.observability.logging import HumanReadableFormatter, with_correlation

        with with_correlation(document_id="bdc.txt", order_number="1001"):
            line = HumanReadableFormatter().format(_record("Order extracted", quantity=15000))

        assert "[bdc.txt/ord:1001]" in line
        assert "Order extracted" in line
        assert line.endswith("quantity=15000")

    def test_human_readable_without_context(self):
        from core.observability.logging import HumanReadableFormatter

        assert "[-]" in HumanReadableFormatter().format(_record())


class TestCorrelatedLogger:
    """Test the logger wrapper."""

    def test_same_logger_per_name(self):
        from core.observability import get_logger

        assert get_logger("extraction.test") is get_logger("extraction.test")

    def test_extra_fields_reach_handler(self):
        """extra_fields passed to a log call are attached to the record."""
        from core.observability import get_logger

        records = []

        class Collect(logging.Handler):
            def emit(self, record):
                records.append(record)

        logger = get_logger("margin.test_capture")
        handler = Collect()
        base = logging.getLogger("margin.test_capture")
        base.addHandler(handler)
        base.setLevel(logging.DEBUG)
        try:
            logger.info("Built margin rows", extra_fields={"rows": 2})
        finally:
            base.removeHandler(handler)

        assert records[0].getMessage() == "Built margin rows"
        assert records[0].extra_fields == {"rows": 2}

    def test_exception_carries_traceback(self):
        from core.observability import get_logger

        records = []

        class Collect(logging.Handler):
            def emit(self, record):
                records.append(record)

        logger = get_logger("extraction.test_exception")
        handler = Collect()
        base = logging.getLogger("extraction.test_exception")
        base.addHandler(handler)
        try:
            try:
                raise ValueError("bad cell")
            except ValueError:
                logger.exception("Document extraction failed")
        finally:
            base.removeHandler(handler)

        assert records[0].levelno == logging.ERROR
        assert records[0].exc_info[0] is ValueError


class TestConfigureLogging:
    """Test that engine logs reach the host application's handlers."""

    def test_host_root_handler_receives_engine_logs(self, monkeypatch):
        """A configured root logger is left alone and engine records propagate to it."""
        import core.observability.logging as engine_logging

        records = []

        class Collect(logging.Handler):
            def emit(self, record):
                records.append(record)

        root = logging.getLogger()
        host_handler = Collect()
        root.addHandler(host_handler)
        monkeypatch.setattr(engine_logging, "_configured", False)
        try:
            before = list(root.handlers)
            engine_logging.configure_logging(level=logging.INFO)

            assert root.handlers == before
            for name in engine_logging.ENGINE_LOGGERS:
                assert logging.getLogger(name).propagate is True

            engine_logging.get_logger("price_resolver.test_host").warning(
                "No matching price column", extra_fields={"supplier": "TAMOIL"},
            )
        finally:
            root.removeHandler(host_handler)

        assert [r.getMessage() for r in records] == ["No matching price column"]
        assert records[0].extra_fields == {"supplier": "TAMOIL"}


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch):
        from core.config import Settings

        for name in ("LOG_LEVEL", "PRICE_DATE_WINDOW_DAYS", "WEIGHT_TOLERANCE_KG"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()

        assert settings.log_level == "INFO"
        assert settings.price_date_window_days == 7
        assert settings.weight_tolerance_kg == 50

    def test_from_env(self, monkeypatch):
        """Values come from the environment; blank values are unset."""
        from core.config import get_settings, reset_settings

        monkeypatch.setenv("PRICE_DATE_WINDOW_DAYS", "3")
        monkeypatch.setenv("LOG_JSON", "true")
        monkeypatch.setenv("LOG_LEVEL", "  ")
        reset_settings()
        try:
            settings = get_settings()
            assert settings.price_date_window_days == 3
            assert settings.log_json is True
            assert settings.log_level == "INFO"
        finally:
            monkeypatch.undo()
            reset_settings()

    def test_cached_until_reset(self, monkeypatch):
        from core.config import get_settings, reset_settings

        reset_settings()
        first = get_settings()
        monkeypatch.setenv("PRICE_DATE_WINDOW_DAYS", "1")
        try:
            assert get_settings() is first
        finally:
            monkeypatch.undo()
            reset_settings()
