"""Logging-based tracing backend (zero external dependencies)."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from flowbridge._context import current_conversion_id, get_conversion_context
from flowbridge.backends.base import TracingBackend

logger = logging.getLogger("flowbridge")


class LoggingBackend(TracingBackend):
    """Emits structured log records when a conversion starts and ends."""

    @contextmanager
    def span(self, operation: str, **attrs: Any) -> Iterator[None]:
        extra = {
            "operation": operation,
            "conversion_id": self.get_correlation_id(),
            **attrs,
        }
        logger.info(f"{operation}.start", extra=extra)
        start = time.monotonic()
        try:
            yield
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            ctx = get_conversion_context()
            logger.info(
                f"{operation}.end",
                extra={
                    **extra,
                    "dialect": ctx.dialect if ctx is not None else None,
                    "duration_ms": duration_ms,
                },
            )

    def get_correlation_id(self) -> str:
        cid = current_conversion_id()
        return cid if cid is not None else ""
