"""Unit tests for observability module."""

import json
import logging
import sys

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
from prometheus_client import REGISTRY
import pytest

from vault_search.observability import (
    INDEX_OPERATIONS,
    JsonFormatter,
    bind_operation,
    configure_logging,
    create_span,
    get_metrics,
    get_operation_context,
    init_tracing,
    track_latency,
    tracing as tracing_module,
)


def _record(msg: str = "test message", level: int = logging.INFO, name: str = "vault_search.search.index"):
    return logging.LogRecord(name=name, level=level, pathname="test.py", lineno=1, msg=msg, args=(), exc_info=None)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def span_exporter(monkeypatch):
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setitem(tracing_module._tracer_holder, "tracer", provider.get_tracer("test"))
    return exporter


@pytest.mark.unit
class TestJsonFormatter:
    """Tests for structured JSON logging."""

    def test_format_includes_trace_context(self):
        data = json.loads(JsonFormatter().format(_record()))

        assert data["message"] == "test message"
        assert data["level"] == "INFO"
        assert data["component"] == "index"
        assert "timestamp" in data
        assert len(data["trace_id"]) == 32
        assert len(data["span_id"]) == 16

    def test_format_includes_operation(self):
        bind_operation("search_in_vault")
        data = json.loads(JsonFormatter().format(_record()))
        assert data["operation"] == "search_in_vault"

    def test_format_includes_extra_fields(self):
        record = _record()
        record.vault_path = "notes/a.md"
        record.terms = {"beta", "alpha"}
        data = json.loads(JsonFormatter().format(record))
        assert data["vault_path"] == "notes/a.md"
        assert data["terms"] == ["alpha", "beta"]

    def test_format_includes_exception(self):
        try:
            raise ValueError("broken snapshot")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()
        data = json.loads(JsonFormatter().format(record))
        assert "ValueError: broken snapshot" in data["exception"]

    def test_long_messages_are_truncated(self):
        data = json.loads(JsonFormatter().format(_record("x" * 5000)))
        assert len(data["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3


@pytest.mark.unit
class TestConfigureLogging:
    def test_json_output_on_stderr(self, restore_root_logger):
        configure_logging("debug", json_output=True)

        [handler] = restore_root_logger.handlers
        assert isinstance(handler.formatter, JsonFormatter)
        assert handler.stream is sys.stderr
        assert restore_root_logger.level == logging.DEBUG

    def test_plain_output(self, restore_root_logger):
        configure_logging("warning", json_output=False)

        [handler] = restore_root_logger.handlers
        assert not isinstance(handler.formatter, JsonFormatter)
        assert restore_root_logger.level == logging.WARNING

    def test_quiets_jieba_and_applies_overrides(self, restore_root_logger):
        configure_logging("debug", json_output=False, logger_levels={"vault_search.search": "error"})

        assert logging.getLogger("jieba").level == logging.WARNING
        assert logging.getLogger("vault_search.search").level == logging.ERROR
        logging.getLogger("vault_search.search").setLevel(logging.NOTSET)

    def test_unknown_level_defaults_to_info(self, restore_root_logger):
        configure_logging("chatty", json_output=False)
        assert restore_root_logger.level == logging.INFO


@pytest.mark.unit
class TestMetrics:
    def test_track_latency_observes(self):
        before = REGISTRY.get_sample_value("vault_search_search_latency_seconds_count", {"kind": "unit"}) or 0

        with track_latency("unit"):
            pass

        after = REGISTRY.get_sample_value("vault_search_search_latency_seconds_count", {"kind": "unit"})
        assert after == before + 1

    def test_track_latency_observes_on_error(self):
        before = REGISTRY.get_sample_value("vault_search_search_latency_seconds_count", {"kind": "failing"}) or 0

        with pytest.raises(RuntimeError), track_latency("failing"):
            raise RuntimeError("boom")

        after = REGISTRY.get_sample_value("vault_search_search_latency_seconds_count", {"kind": "failing"})
        assert after == before + 1

    def test_exposition_lists_index_counters(self):
        INDEX_OPERATIONS.labels(operation="upsert", outcome="ok").inc()
        payload = get_metrics().decode()
        assert 'vault_search_index_operations_total{operation="upsert",outcome="ok"}' in payload
        assert "vault_search_indexed_documents" in payload


@pytest.mark.unit
class TestTracing:
    def test_span_records_attributes_and_log_context(self, span_exporter):
        with create_span("vault_search.test", attributes={"query.length": 5}) as span:
            span_id = format(span.get_span_context().span_id, "016x")
            assert get_operation_context()["span_id"] == span_id

        [finished] = span_exporter.get_finished_spans()
        assert finished.name == "vault_search.test"
        assert finished.attributes["query.length"] == 5

    def test_span_marks_errors(self, span_exporter):
        with pytest.raises(ValueError), create_span("vault_search.failing"):
            raise ValueError("bad")

        [finished] = span_exporter.get_finished_spans()
        assert finished.status.status_code is StatusCode.ERROR
        assert finished.events[0].name == "exception"

    def test_init_tracing_returns_provider(self):
        provider = init_tracing("vault-search-test", {"deployment.environment": "test"})
        assert provider.resource.attributes["service.name"] == "vault-search-test"
        assert provider.resource.attributes["deployment.environment"] == "test"
