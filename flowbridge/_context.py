"""Conversion context propagation via contextvars."""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar


class ConversionContext:
    """Carries a correlation ID and the resolved dialect through one call.

    Thread-safe and async-safe via ``contextvars``: each ``convert`` or
    ``render`` call installs its own context with :func:`conversion_scope`.
    """

    __slots__ = ("correlation_id", "dialect", "operation")

    def __init__(
        self,
        operation: str,
        correlation_id: str | None = None,
        dialect: str | None = None,
    ) -> None:
        self.operation = operation
        self.correlation_id: str = correlation_id or uuid.uuid4().hex
        self.dialect = dialect


_conversion_context_var: ContextVar[ConversionContext | None] = ContextVar(
    "flowbridge_conversion_context", default=None
)


@contextmanager
def conversion_scope(
    operation: str, correlation_id: str | None = None
) -> Iterator[ConversionContext]:
    """Install a fresh context for the duration of the block."""
    ctx = ConversionContext(operation, correlation_id)
    token = _conversion_context_var.set(ctx)
    try:
        yield ctx
    finally:
        _conversion_context_var.reset(token)


def current_conversion_id() -> str | None:
    """Return the current correlation ID, or ``None`` outside a conversion."""
    ctx = _conversion_context_var.get()
    return ctx.correlation_id if ctx is not None else None


def get_conversion_context() -> ConversionContext | None:
    """Return the current :class:`ConversionContext`, or ``None``."""
    return _conversion_context_var.get()
