"""Abstract base class for tracing backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class TracingBackend(ABC):
    """Interface that all flowbridge tracing backends must implement."""

    @abstractmethod
    @contextmanager
    def span(self, operation: str, **attrs: Any) -> Iterator[None]:
        """Open a tracing span for the duration of a conversion."""

    @abstractmethod
    def get_correlation_id(self) -> str:
        """Return the current correlation ID."""
