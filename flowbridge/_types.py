"""Core type definitions for the canonical flow model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StepRole(str, Enum):
    """Position of a step, taken from the dialect slot it was parsed from."""

    START = "START"
    MIDDLE = "MIDDLE"
    END = "END"
    UNCLASSIFIED = "UNCLASSIFIED"


@dataclass(frozen=True, slots=True)
class Step:
    """A single step of a flow.

    ``attributes`` holds the dialect-native details of the slot the step came
    from (a binding ``ref`` block, a Camel endpoint ``uri``...) so generators
    can write the step back exactly as it was read.
    """

    kind: str
    name: str
    role: StepRole = StepRole.UNCLASSIFIED
    parameters: dict[str, Any] = field(default_factory=dict)
    id: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ParseResult:
    """One unit extracted from a document.

    ``steps`` is ``None`` for a metadata-only unit (a shared document header).
    """

    steps: tuple[Step, ...] | None
    metadata: dict[str, Any] = field(default_factory=dict)
    parameters: dict[str, Any] = field(default_factory=dict)

    @property
    def is_metadata_only(self) -> bool:
        return self.steps is None


@dataclass(frozen=True, slots=True)
class Flow:
    """Canonical flow tagged with the dialect it is rendered in."""

    steps: tuple[Step, ...]
    metadata: dict[str, Any]
    parameters: dict[str, Any]
    dialect: str

    @property
    def name(self) -> str | None:
        return self.metadata.get("name")

    def to_parse_result(self) -> ParseResult:
        return ParseResult(
            steps=self.steps,
            metadata=dict(self.metadata),
            parameters=dict(self.parameters),
        )


@dataclass(frozen=True, slots=True)
class Document:
    """Result of converting one text: its flows plus the shared header."""

    flows: tuple[Flow, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    parameters: dict[str, Any] = field(default_factory=dict)
    dialect: str | None = None
    notes: tuple[str, ...] = ()

    @property
    def is_recognized(self) -> bool:
        return self.dialect is not None

    def effective_metadata(self, flow: Flow) -> dict[str, Any]:
        """Return the header metadata overlaid with *flow*'s own metadata."""
        return {**self.metadata, **flow.metadata}


@dataclass(frozen=True, slots=True)
class UnrecognizedDialect(Document):
    """Returned when no registered dialect accepts the input."""
