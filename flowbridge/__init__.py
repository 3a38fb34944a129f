"""Convert integration flows between YAML dialects and a canonical model."""

from __future__ import annotations

from flowbridge._catalog import StepCatalog, StepDescriptor
from flowbridge._config import configure, get_backend, get_converter, reset
from flowbridge._context import current_conversion_id, get_conversion_context
from flowbridge._convert import ConversionService, ensure_unique_names
from flowbridge._errors import FormatError, ParserFault, UnknownDialectError
from flowbridge._registry import DialectRegistry, Probe, ProbeOutcome, Resolution
from flowbridge._types import (
    Document,
    Flow,
    ParseResult,
    Step,
    StepRole,
    UnrecognizedDialect,
)


def convert(text: str, dsl: str | None = None) -> Document:
    """Parse *text* with the configured converter. See :meth:`ConversionService.convert`."""
    return get_converter().convert(text, dsl)


def render(document: Document) -> str:
    """Render *document* with the configured converter."""
    return get_converter().render(document)


__all__ = [
    "ConversionService",
    "DialectRegistry",
    "Document",
    "Flow",
    "FormatError",
    "ParseResult",
    "ParserFault",
    "Probe",
    "ProbeOutcome",
    "Resolution",
    "Step",
    "StepCatalog",
    "StepDescriptor",
    "StepRole",
    "UnknownDialectError",
    "UnrecognizedDialect",
    "configure",
    "convert",
    "current_conversion_id",
    "ensure_unique_names",
    "get_backend",
    "get_conversion_context",
    "get_converter",
    "render",
    "reset",
]
