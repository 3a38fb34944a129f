"""structlog processor that injects the active conversion into log entries.

Usage::

    import structlog
    from flowbridge.contrib.structlog import conversion_processor

    structlog.configure(
        processors=[
            conversion_processor,
            structlog.dev.ConsoleRenderer(),
        ]
    )

Every log entry emitted while ``convert`` or ``render`` runs will include a
``conversion_id`` key and, once dispatch has resolved it, a ``dialect`` key.
"""

from __future__ import annotations

from typing import Any

from flowbridge._context import get_conversion_context


def conversion_processor(
    _logger: Any, _method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor that adds ``conversion_id`` and ``dialect``.

    When no conversion is active the keys are omitted rather than set to
    ``None``, keeping logs clean outside of conversions.
    """
    ctx = get_conversion_context()
    if ctx is not None:
        event_dict["conversion_id"] = ctx.correlation_id
        if ctx.dialect is not None:
            event_dict["dialect"] = ctx.dialect
    return event_dict
