"""Tracing for the conversation pipeline.

Spans are tagged with the chat surface and, on failure, the error kind from
the taxonomy, so one trace backend can tell messenger and direct-message
traffic apart. Without an OTLP endpoint a no-op provider is installed.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import NoOpTracerProvider, Span, Status, StatusCode

from parley.errors import ChatError

logger = logging.getLogger(__name__)

SURFACE_ATTRIBUTE = "parley.surface"
ERROR_KIND_ATTRIBUTE = "parley.error_kind"

_tracer_provider: TracerProvider | NoOpTracerProvider | None = None


def build_resource(
    service_name: str = "parley", env: str = "dev", surfaces: Sequence[str] = ()
) -> Resource:
    try:
        parley_version = pkg_version("parley")
    except PackageNotFoundError:
        parley_version = "0.0.0"
    attributes: dict[str, str | list[str]] = {
        "service.name": service_name,
        "service.version": parley_version,
        "deployment.environment": env,
    }
    if surfaces:
        attributes["parley.surfaces"] = sorted(surfaces)
    return Resource.create(attributes)


def init_tracing(
    *,
    service_name: str = "parley",
    env: str = "dev",
    endpoint: str | None = None,
    surfaces: Sequence[str] = (),
) -> TracerProvider | NoOpTracerProvider:
    """Install the global tracer provider for the surfaces this process serves."""
    global _tracer_provider  # noqa: PLW0603

    if not endpoint:
        provider = NoOpTracerProvider()
        trace.set_tracer_provider(provider)
        _tracer_provider = provider
        logger.info("tracing disabled; no OTLP endpoint configured")
        return provider

    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    provider = TracerProvider(resource=build_resource(service_name, env, surfaces))
    exporter = OTLPSpanExporter(endpoint=endpoint, insecure=True)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    served = ", ".join(sorted(surfaces)) or service_name
    logger.info("tracing %s to %s (env=%s)", served, endpoint, env)

    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    return provider


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def record_chat_error(span: Span, error: ChatError) -> None:
    """Mark ``span`` failed with the error's taxonomy kind."""
    span.set_attribute(ERROR_KIND_ATTRIBUTE, error.kind.value)
    span.set_status(Status(StatusCode.ERROR, str(error)))


def shutdown_tracing() -> None:
    if isinstance(_tracer_provider, TracerProvider):
        _tracer_provider.shutdown()


__all__ = [
    "ERROR_KIND_ATTRIBUTE",
    "SURFACE_ATTRIBUTE",
    "build_resource",
    "get_tracer",
    "init_tracing",
    "record_chat_error",
    "shutdown_tracing",
]
