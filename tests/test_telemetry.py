from __future__ import annotations

from unittest.mock import patch

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import NoOpTracerProvider, StatusCode

from parley.core import telemetry
from parley.core.telemetry import (
    ERROR_KIND_ATTRIBUTE,
    build_resource,
    init_tracing,
    record_chat_error,
    shutdown_tracing,
)
from parley.errors import RateLimitedError


class TestInitTracing:
    def setup_method(self) -> None:
        telemetry._tracer_provider = None

    def test_no_endpoint_is_noop(self) -> None:
        assert isinstance(init_tracing(endpoint=None), NoOpTracerProvider)
        shutdown_tracing()

    def test_endpoint_tags_served_surfaces(self) -> None:
        with patch("parley.core.telemetry.BatchSpanProcessor"):
            provider = init_tracing(
                env="test", endpoint="localhost:4317", surfaces=["messenger", "direct"]
            )
            assert isinstance(provider, TracerProvider)
            attrs = dict(provider.resource.attributes)
            assert attrs["deployment.environment"] == "test"
            assert tuple(attrs["parley.surfaces"]) == ("direct", "messenger")
            shutdown_tracing()


def test_resource_defaults() -> None:
    attrs = dict(build_resource().attributes)
    assert attrs["service.name"] == "parley"
    assert "parley.surfaces" not in attrs


def test_record_chat_error_marks_span() -> None:
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))

    with provider.get_tracer("test").start_as_current_span("conversation.send_turn") as span:
        record_chat_error(span, RateLimitedError("slow down"))

    (finished,) = exporter.get_finished_spans()
    assert finished.attributes[ERROR_KIND_ATTRIBUTE] == "rate_limited"
    assert finished.status.status_code is StatusCode.ERROR
