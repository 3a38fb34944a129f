"""Global backend and converter configuration (thread-safe)."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from flowbridge.backends.base import TracingBackend

if TYPE_CHECKING:
    from flowbridge._convert import ConversionService

_lock = threading.Lock()
_backend: TracingBackend | None = None
_configured = False
_converter: ConversionService | None = None


def configure(
    backend: TracingBackend | str = "auto",
    *,
    converter: ConversionService | None = None,
) -> None:
    """Set the global tracing backend and, optionally, the converter.

    *backend* can be:
    - A :class:`TracingBackend` instance
    - ``"logging"``: use the built-in :class:`LoggingBackend`
    - ``"otel"``: use :class:`OTelBackend` (requires opentelemetry-api)
    - ``"auto"``: try OTel, fall back to logging

    *converter* replaces the converter used by :func:`flowbridge.convert` and
    :func:`flowbridge.render`; when omitted the current one is kept.
    """
    global _backend, _configured, _converter
    with _lock:
        if isinstance(backend, TracingBackend):
            _backend = backend
        elif backend == "logging":
            from flowbridge.backends.logging import LoggingBackend

            _backend = LoggingBackend()
        elif backend == "otel":
            from flowbridge.backends.otel import OTelBackend

            _backend = OTelBackend()
        elif backend == "auto":
            _backend = _auto_detect()
        else:
            raise ValueError(f"Unknown backend: {backend!r}")
        _configured = True
        if converter is not None:
            _converter = converter


def get_backend() -> TracingBackend:
    """Return the configured backend, auto-detecting on first call."""
    global _backend, _configured
    if _configured:
        assert _backend is not None
        return _backend
    with _lock:
        if _configured:
            assert _backend is not None
            return _backend
        _backend = _auto_detect()
        _configured = True
        return _backend


def get_converter() -> ConversionService:
    """Return the configured converter, composing the default one on first call.

    The default converter uses the packaged step catalog, whose warm-up is
    started here and awaited on first lookup.
    """
    global _converter
    if _converter is not None:
        return _converter
    with _lock:
        if _converter is None:
            from flowbridge._catalog import StepCatalog
            from flowbridge._convert import ConversionService
            from flowbridge.dialects import default_registry

            catalog = StepCatalog.from_package().warm_up()
            _converter = ConversionService(default_registry(catalog))
        return _converter


def reset() -> None:
    """Reset configuration to unconfigured state. Intended for testing."""
    global _backend, _configured, _converter
    with _lock:
        _backend = None
        _configured = False
        _converter = None


def _auto_detect() -> TracingBackend:
    """Try to import OTel; fall back to LoggingBackend."""
    try:
        from flowbridge.backends.otel import OTelBackend

        return OTelBackend()
    except RuntimeError:
        from flowbridge.backends.logging import LoggingBackend

        return LoggingBackend()
