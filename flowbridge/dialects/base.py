"""Contracts shared by every dialect parser and generator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import yaml

from flowbridge._catalog import StepCatalog
from flowbridge._errors import FormatError
from flowbridge._types import ParseResult, Step
from flowbridge._yaml import yaml_load_all

# Metadata key holding the recorded key order of a parsed document, by section.
KEY_ORDER = "key-order"

# Header keys that describe the whole document and are not inherited by flows.
DOCUMENT_ONLY_KEYS = frozenset({"description", KEY_ORDER})

# Sections of a custom resource laid out the same way by every CRD dialect.
DOCUMENT_KEYS = ("apiVersion", "kind", "metadata", "spec")

_MISSING = object()


class DialectParser(ABC):
    """Turns dialect text into canonical :class:`ParseResult` units."""

    identifier: str

    def __init__(self, catalog: StepCatalog) -> None:
        self.catalog = catalog

    @abstractmethod
    def applies_to(self, text: str) -> bool:
        """Cheap structural check. Must never raise."""

    @abstractmethod
    def parse_document(self, data: Any) -> list[ParseResult]:
        """Parse one loaded YAML document. Raises :class:`FormatError`."""

    def get_parsed_flows(self, text: str) -> list[ParseResult]:
        """Extract the header (if any) and every flow of *text*."""
        if not self.applies_to(text):
            raise self.format_error(f"not a {self.identifier} document")
        try:
            documents = yaml_load_all(text)
        except yaml.YAMLError as exc:
            raise self.format_error(f"invalid YAML ({exc})") from exc
        results: list[ParseResult] = []
        for data in documents:
            results.extend(self.parse_document(data))
        return results

    def deep_parse(self, text: str) -> ParseResult:
        """Parse the first flow of *text*, flattening the header into it."""
        header: dict[str, Any] = {}
        parameters: dict[str, Any] = {}
        for result in self.get_parsed_flows(text):
            if result.is_metadata_only:
                header.update(result.metadata)
                parameters.update(result.parameters)
                continue
            metadata = dict(result.metadata)
            for key, value in header.items():
                metadata.setdefault(key, value)
            if KEY_ORDER in header and KEY_ORDER in result.metadata:
                metadata[KEY_ORDER] = {**header[KEY_ORDER], **result.metadata[KEY_ORDER]}
            return ParseResult(
                steps=result.steps,
                metadata=metadata,
                parameters={**parameters, **result.parameters},
            )
        return ParseResult(steps=(), metadata=header, parameters=parameters)

    # -- helpers for subclasses ----------------------------------------------

    def format_error(self, detail: str) -> FormatError:
        return FormatError(self.identifier, detail)

    def expect_mapping(self, value: Any, where: str) -> dict[str, Any]:
        if not isinstance(value, dict):
            raise self.format_error(f"'{where}' must be a mapping")
        return value

    def expect_list(self, value: Any, where: str) -> list[Any]:
        if not isinstance(value, list):
            raise self.format_error(f"'{where}' must be a list")
        return value

    def expect_string(self, value: Any, where: str) -> str:
        if not isinstance(value, str) or not value:
            raise self.format_error(f"'{where}' must be a non-empty string")
        return value

    def expect_kind(
        self, data: Any, api_version: str | tuple[str, ...], kind: str
    ) -> dict[str, Any]:
        versions = (api_version,) if isinstance(api_version, str) else api_version
        document = self.expect_mapping(data, "document")
        if document.get("kind") != kind or document.get("apiVersion") not in versions:
            raise self.format_error(f"expected {' or '.join(versions)} {kind}")
        return document


class DialectGenerator(ABC):
    """Turns canonical :class:`ParseResult` units back into dialect text."""

    identifier: str
    supports_multiple_flows = False

    def generate(
        self,
        steps: Sequence[Step],
        metadata: dict[str, Any],
        parameters: dict[str, Any],
    ) -> str:
        """Render a single flow."""
        return self.generate_flows(
            [ParseResult(steps=tuple(steps), metadata=metadata, parameters=parameters)]
        )

    @abstractmethod
    def generate_flows(self, results: Sequence[ParseResult]) -> str:
        """Render a header (optional) plus flows as one document."""


@dataclass(frozen=True, slots=True)
class DialectSpecification:
    """One registered dialect. Immutable once built."""

    identifier: str
    applies_to: Callable[[str], bool]
    parser: DialectParser
    generator: DialectGenerator

    def matches_identifier(self, identifier: str) -> bool:
        return self.identifier.casefold() == identifier.casefold()


# ---------------------------------------------------------------------------
# Header helpers
# ---------------------------------------------------------------------------


def inherit(header: dict[str, Any], local: dict[str, Any]) -> dict[str, Any]:
    """Flow metadata: *local* in its own order, then inheritable header keys."""
    merged = dict(local)
    for key, value in header.items():
        if key not in DOCUMENT_ONLY_KEYS:
            merged.setdefault(key, value)
    return merged


def local_values(metadata: dict[str, Any], header: dict[str, Any]) -> dict[str, Any]:
    """Entries of *metadata* that differ from what *header* would provide."""
    return {
        k: v for k, v in metadata.items() if header.get(k, _MISSING) != v
    }


def split_results(
    results: Sequence[ParseResult],
) -> tuple[ParseResult, list[ParseResult]]:
    """Merge metadata-only results into one header and return it with the flows.

    The first value seen for a header key wins.
    """
    metadata: dict[str, Any] = {}
    parameters: dict[str, Any] = {}
    flows: list[ParseResult] = []
    for result in results:
        if result.is_metadata_only:
            for key, value in result.metadata.items():
                metadata.setdefault(key, value)
            for key, value in result.parameters.items():
                parameters.setdefault(key, value)
        else:
            flows.append(result)
    return ParseResult(steps=None, metadata=metadata, parameters=parameters), flows


def pop_description(metadata: dict[str, Any]) -> tuple[dict[str, Any], Any]:
    """Split the ``description`` annotation out of a CRD ``metadata`` block.

    Returns a copy of *metadata* without it (dropping ``annotations`` when it
    becomes empty) and the description, or ``None``.
    """
    metadata = dict(metadata)
    annotations = metadata.get("annotations")
    if not isinstance(annotations, dict) or "description" not in annotations:
        return metadata, None
    annotations = dict(annotations)
    description = annotations.pop("description")
    if annotations:
        metadata["annotations"] = annotations
    else:
        del metadata["annotations"]
    return metadata, description


def put_description(metadata: dict[str, Any], description: Any) -> dict[str, Any]:
    """Inverse of :func:`pop_description`."""
    metadata = dict(metadata)
    if description is None:
        return metadata
    annotations = dict(metadata.get("annotations") or {})
    annotations["description"] = description
    metadata["annotations"] = annotations
    return metadata


# ---------------------------------------------------------------------------
# Key order helpers
# ---------------------------------------------------------------------------


def changed_order(original: Iterable[str], rendered: Iterable[str]) -> list[str] | None:
    """Return *original* as a list when regenerating would emit *rendered* instead."""
    original = list(original)
    return original if original != list(rendered) else None


def remember_order(
    target: dict[str, Any],
    section: str,
    original: Iterable[str],
    rendered: Iterable[str],
) -> None:
    """Record the key order of *section* under :data:`KEY_ORDER` when needed."""
    order = changed_order(original, rendered)
    if order is not None:
        target.setdefault(KEY_ORDER, {})[section] = order


def recorded_order(metadata: dict[str, Any], section: str) -> list[str] | None:
    return (metadata.get(KEY_ORDER) or {}).get(section)


def restore_order(mapping: dict[str, Any], order: Sequence[str] | None) -> dict[str, Any]:
    """Lay *mapping* out in a recorded key order.

    Recorded keys come first. Keys the recorded layout did not have follow in
    their current order, except null or empty placeholders, which are dropped.
    """
    if order is None:
        return dict(mapping)
    ordered = {k: mapping[k] for k in order if k in mapping}
    for key, value in mapping.items():
        if key not in ordered and value not in (None, {}, []):
            ordered[key] = value
    return ordered


def remember_document_order(
    target: dict[str, Any],
    document: dict[str, Any],
    metadata: dict[str, Any],
    stripped: dict[str, Any],
    description: Any,
) -> None:
    """Record how a custom resource lays out its top level and ``metadata``.

    *metadata* is the block as read, *stripped* the same block once the
    description annotation was taken out of it.
    """
    remember_order(
        target, "document", (k for k in document if k in DOCUMENT_KEYS), DOCUMENT_KEYS
    )
    rebuilt = put_description(stripped, description)
    remember_order(target, "metadata", metadata, rebuilt)
    annotations = metadata.get("annotations")
    if isinstance(annotations, dict):
        remember_order(target, "annotations", annotations, rebuilt.get("annotations", {}))


def render_document(
    api_version: str,
    kind: str,
    metadata: dict[str, Any],
    spec: dict[str, Any],
    orders: dict[str, Any],
) -> dict[str, Any]:
    """Assemble a custom resource, honouring the key order recorded at parse time."""
    metadata = restore_order(metadata, orders.get("metadata"))
    annotations = metadata.get("annotations")
    if isinstance(annotations, dict):
        metadata["annotations"] = restore_order(annotations, orders.get("annotations"))
    return restore_order(
        {
            "apiVersion": api_version,
            "kind": kind,
            "metadata": metadata,
            "spec": restore_order(spec, orders.get("spec")),
        },
        orders.get("document"),
    )
