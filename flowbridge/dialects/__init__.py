"""Supported dialects, in dispatch order."""

from __future__ import annotations

from flowbridge._catalog import StepCatalog
from flowbridge._registry import DialectRegistry
from flowbridge.dialects.base import (
    DialectGenerator,
    DialectParser,
    DialectSpecification,
)
from flowbridge.dialects.binding import KameletBindingGenerator, KameletBindingParser
from flowbridge.dialects.integration import IntegrationGenerator, IntegrationParser
from flowbridge.dialects.kamelet import KameletGenerator, KameletParser
from flowbridge.dialects.route import CamelRouteGenerator, CamelRouteParser

_DIALECTS: tuple[tuple[type[DialectParser], type[DialectGenerator]], ...] = (
    (KameletBindingParser, KameletBindingGenerator),
    (KameletParser, KameletGenerator),
    (IntegrationParser, IntegrationGenerator),
    (CamelRouteParser, CamelRouteGenerator),
)


def default_specifications(catalog: StepCatalog) -> list[DialectSpecification]:
    """Build one specification per supported dialect, in registration order."""
    specifications = []
    for parser_cls, generator_cls in _DIALECTS:
        parser = parser_cls(catalog)
        specifications.append(
            DialectSpecification(
                identifier=parser.identifier,
                applies_to=parser.applies_to,
                parser=parser,
                generator=generator_cls(),
            )
        )
    return specifications


def default_registry(catalog: StepCatalog) -> DialectRegistry:
    return DialectRegistry(default_specifications(catalog))


__all__ = [
    "DialectGenerator",
    "DialectParser",
    "DialectSpecification",
    "default_registry",
    "default_specifications",
]
