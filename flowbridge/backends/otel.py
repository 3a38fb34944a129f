"""OpenTelemetry tracing backend.

Requires ``opentelemetry-api`` and ``opentelemetry-sdk`` to be installed.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from flowbridge._context import get_conversion_context
from flowbridge.backends.base import TracingBackend

try:
    from opentelemetry import trace  # type: ignore[import-not-found]

    _HAS_OTEL = True
except ImportError:  # pragma: no cover
    _HAS_OTEL = False


class OTelBackend(TracingBackend):
    """Emits real OpenTelemetry spans for each conversion.

    Requires ``opentelemetry-api`` to be installed.  Raises
    :class:`RuntimeError` at construction time if the package is missing.
    """

    def __init__(self, tracer_name: str = "flowbridge") -> None:
        if not _HAS_OTEL:
            raise RuntimeError(
                "opentelemetry-api is required for OTelBackend. "
                "Install it with: pip install opentelemetry-api opentelemetry-sdk"
            )
        self._tracer = trace.get_tracer(tracer_name)

    @contextmanager
    def span(self, operation: str, **attrs: Any) -> Iterator[None]:
        attributes = {
            f"flowbridge.{key}": value for key, value in attrs.items() if value is not None
        }
        with self._tracer.start_as_current_span(
            f"flowbridge.{operation}", attributes=attributes
        ) as span:
            try:
                yield
            finally:
                ctx = get_conversion_context()
                if ctx is not None and ctx.dialect is not None:
                    span.set_attribute("flowbridge.dialect", ctx.dialect)

    def get_correlation_id(self) -> str:
        span = trace.get_current_span()
        ctx = span.get_span_context()
        if ctx is not None and ctx.trace_id:
            return format(ctx.trace_id, "032x")
        return ""
