"""Ordered, immutable registry of dialects and the dispatch over it."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from flowbridge._errors import ParserFault, UnknownDialectError

if TYPE_CHECKING:
    from flowbridge.dialects.base import DialectSpecification

logger = logging.getLogger(__name__)


class ProbeOutcome(Enum):
    MATCH = "match"
    NO_MATCH = "no_match"
    FAULTED = "faulted"


@dataclass(frozen=True, slots=True)
class Probe:
    """Outcome of asking one dialect whether it accepts a text."""

    specification: DialectSpecification
    outcome: ProbeOutcome
    fault: ParserFault | None = None

    @property
    def matched(self) -> bool:
        return self.outcome is ProbeOutcome.MATCH


@dataclass(frozen=True, slots=True)
class Resolution:
    """Dialect chosen for a text, with notes about how it was chosen."""

    specification: DialectSpecification | None
    hint: str | None = None
    notes: tuple[str, ...] = ()

    @property
    def hint_mismatch(self) -> bool:
        return bool(self.notes)


class DialectRegistry:
    """Closed set of dialects, scanned in registration order.

    Built once at composition time and never mutated, so it is safe to share
    between threads without locking.
    """

    def __init__(self, specifications: Iterable[DialectSpecification]) -> None:
        specs = tuple(specifications)
        seen: set[str] = set()
        for spec in specs:
            key = spec.identifier.casefold()
            if key in seen:
                raise ValueError(f"Conflicting registration for dialect '{spec.identifier}'")
            seen.add(key)
        self._specifications = specs

    def __iter__(self) -> Iterator[DialectSpecification]:
        return iter(self._specifications)

    def __len__(self) -> int:
        return len(self._specifications)

    def identifiers(self) -> list[str]:
        """Return identifiers in registration order."""
        return [spec.identifier for spec in self._specifications]

    def find(self, identifier: str) -> DialectSpecification | None:
        """Case-insensitive lookup, ``None`` when unknown."""
        return next(
            (s for s in self._specifications if s.matches_identifier(identifier)),
            None,
        )

    def get(self, identifier: str | None) -> DialectSpecification:
        """Like :meth:`find` but raises ``UnknownDialectError`` when unknown."""
        spec = self.find(identifier) if identifier is not None else None
        if spec is None:
            raise UnknownDialectError(identifier)
        return spec

    # -- dispatch -------------------------------------------------------------

    def probe(self, spec: DialectSpecification, text: str) -> Probe:
        """Run *spec*'s applicability predicate, absorbing any fault."""
        try:
            accepted = spec.applies_to(text)
        except Exception as exc:
            fault = ParserFault(spec.identifier, exc)
            logger.warning(
                "Dialect %s threw an unexpected error while probing input",
                spec.identifier,
                exc_info=exc,
            )
            return Probe(spec, ProbeOutcome.FAULTED, fault)
        return Probe(spec, ProbeOutcome.MATCH if accepted else ProbeOutcome.NO_MATCH)

    def probe_all(self, text: str) -> list[Probe]:
        """Probe every dialect, in registration order."""
        return [self.probe(spec, text) for spec in self._specifications]

    def identify(self, text: str) -> DialectSpecification | None:
        """Return the first dialect whose predicate accepts *text*."""
        for spec in self._specifications:
            if self.probe(spec, text).matched:
                return spec
        return None

    def resolve(self, hint: str | None, text: str) -> Resolution:
        """Pick the dialect for *text*, preferring *hint* when it agrees.

        A hint naming an unknown dialect, or one whose predicate rejects the
        text, is ignored in favour of :meth:`identify` and a note is recorded.
        """
        if hint is None:
            return Resolution(self.identify(text))

        hinted = self.find(hint)
        if hinted is not None and self.probe(hinted, text).matched:
            return Resolution(hinted, hint)

        spec = self.identify(text)
        if spec is None:
            note = f"Dialect hint '{hint}' does not match the input and no dialect applies"
        else:
            note = f"Dialect hint '{hint}' does not match the input, which is a {spec.identifier}"
        logger.warning(note)
        return Resolution(spec, hint, (note,))
