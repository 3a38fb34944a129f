"""Camel Route dialect: a bare YAML list of ``from`` / ``route`` entries."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from flowbridge._types import ParseResult
from flowbridge._yaml import yaml_dump
from flowbridge.dialects._camel import parse_route_entry, render_route_entry
from flowbridge.dialects.base import (
    KEY_ORDER,
    DialectGenerator,
    DialectParser,
    local_values,
    recorded_order,
    split_results,
)

IDENTIFIER = "Camel Route"

_NOT_ROUTE_KEYS = frozenset({"name", KEY_ORDER})
_ENTRY_RE = re.compile(r"^-\s+(?:from|route)\s*:", re.MULTILINE)


class CamelRouteParser(DialectParser):
    identifier = IDENTIFIER

    def applies_to(self, text: str) -> bool:
        if not isinstance(text, str):
            return False
        return _ENTRY_RE.search(text) is not None

    def parse_document(self, data: Any) -> list[ParseResult]:
        entries = self.expect_list(data, "document")
        results = []
        for index, entry in enumerate(entries):
            local, steps = parse_route_entry(self, entry, f"[{index}]")
            results.append(ParseResult(steps=tuple(steps), metadata=local))
        return results


class CamelRouteGenerator(DialectGenerator):
    identifier = IDENTIFIER
    supports_multiple_flows = True

    def generate_flows(self, results: Sequence[ParseResult]) -> str:
        # Route lists have no header: only route-local values are written.
        header, flows = split_results(results)
        entries = []
        for flow in flows:
            local = {
                k: v
                for k, v in local_values(flow.metadata, header.metadata).items()
                if k not in _NOT_ROUTE_KEYS
            }
            entries.append(
                render_route_entry(local, flow.steps or (), recorded_order(flow.metadata, "route"))
            )
        return yaml_dump(entries)
