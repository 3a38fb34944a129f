"""Top-level conversion between dialect text and canonical documents."""

from __future__ import annotations

import dataclasses
import itertools
import logging
import random
from collections.abc import Iterable

from flowbridge._config import get_backend
from flowbridge._context import conversion_scope
from flowbridge._registry import DialectRegistry
from flowbridge._types import Document, Flow, ParseResult, UnrecognizedDialect

logger = logging.getLogger(__name__)


def ensure_unique_names(flows: Iterable[Flow], rng: random.Random) -> list[Flow]:
    """Give every flow a ``name`` and suffix names already seen in the batch.

    Missing names become ``<dialect, lowercased, no spaces><NN>``; a repeated
    name gets one more random two-digit suffix. This is a single pass: a
    suffixed name may still collide with a later flow.
    """
    used: list[str] = []
    result: list[Flow] = []
    for flow in flows:
        metadata = dict(flow.metadata)
        if not metadata.get("name"):
            prefix = flow.dialect.lower().replace(" ", "")
            metadata["name"] = f"{prefix}{rng.randrange(10, 100)}"
        if metadata["name"] in used:
            metadata["name"] = f"{metadata['name']}{rng.randrange(10, 100)}"
        used.append(metadata["name"])
        result.append(dataclasses.replace(flow, metadata=metadata))
    return result


class ConversionService:
    """Parses any supported dialect into a :class:`Document` and back.

    Stateless apart from the injected registry and random source, so one
    instance can serve concurrent callers.
    """

    def __init__(
        self,
        registry: DialectRegistry,
        rng: random.Random | None = None,
    ) -> None:
        self.registry = registry
        self._rng = rng if rng is not None else random.Random()

    def convert(self, text: str, dsl: str | None = None) -> Document:
        """Parse *text*, using *dsl* as a hint for its dialect.

        Returns an :class:`UnrecognizedDialect` when no dialect applies.
        Raises ``FormatError`` when the chosen dialect cannot parse the text.
        """
        with conversion_scope("convert") as ctx, get_backend().span("convert", hint=dsl):
            resolution = self.registry.resolve(dsl, text)
            spec = resolution.specification
            if spec is None:
                logger.info("No dialect applies to the input")
                return UnrecognizedDialect(notes=resolution.notes)
            ctx.dialect = spec.identifier

            # A header met after a flow opens a later YAML document of the
            # stream: its values are also kept on the flow that follows it.
            metadata: dict = {}
            parameters: dict = {}
            pending_metadata: dict = {}
            pending_parameters: dict = {}
            flows: list[Flow] = []
            for result in spec.parser.get_parsed_flows(text):
                if result.is_metadata_only:
                    targets = [(metadata, parameters)]
                    if flows:
                        targets.append((pending_metadata, pending_parameters))
                    for target_metadata, target_parameters in targets:
                        for key, value in result.metadata.items():
                            target_metadata.setdefault(key, value)
                        for key, value in result.parameters.items():
                            target_parameters.setdefault(key, value)
                    continue
                flows.append(
                    Flow(
                        steps=result.steps or (),
                        metadata={**pending_metadata, **result.metadata},
                        parameters={**pending_parameters, **result.parameters},
                        dialect=spec.identifier,
                    )
                )
                pending_metadata, pending_parameters = {}, {}
            logger.debug("Parsed %d flow(s) as %s", len(flows), spec.identifier)
            return Document(
                flows=tuple(ensure_unique_names(flows, self._rng)),
                metadata=metadata,
                parameters=parameters,
                dialect=spec.identifier,
                notes=resolution.notes,
            )

    def render(self, document: Document) -> str:
        """Generate the text for *document*.

        Consecutive flows of a dialect that holds several flows per document
        are rendered together; every other flow gets its own YAML document.
        Raises ``UnknownDialectError`` for a flow tagged with an unregistered
        dialect.
        """
        with conversion_scope("render") as ctx, get_backend().span("render"):
            ctx.dialect = document.dialect
            header = ParseResult(
                steps=None,
                metadata=dict(document.metadata),
                parameters=dict(document.parameters),
            )
            flows = ensure_unique_names(document.flows, self._rng)
            if not flows:
                if document.dialect is None:
                    return ""
                return self.registry.get(document.dialect).generator.generate_flows([header])

            chunks: list[str] = []
            for dialect, group in itertools.groupby(flows, key=lambda flow: flow.dialect):
                generator = self.registry.get(dialect).generator
                results = [flow.to_parse_result() for flow in group]
                if generator.supports_multiple_flows:
                    chunks.append(generator.generate_flows([header, *results]))
                else:
                    chunks.extend(generator.generate_flows([header, r]) for r in results)
            return "---\n".join(chunks)
