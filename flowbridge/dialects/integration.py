"""Integration dialect: several Camel routes under one custom resource."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from flowbridge._types import ParseResult
from flowbridge._yaml import yaml_dump
from flowbridge.dialects._camel import parse_route_entry, render_route_entry
from flowbridge.dialects.base import (
    DOCUMENT_ONLY_KEYS,
    KEY_ORDER,
    DialectGenerator,
    DialectParser,
    inherit,
    local_values,
    pop_description,
    put_description,
    recorded_order,
    remember_document_order,
    remember_order,
    render_document,
    split_results,
)

IDENTIFIER = "Integration"
API_VERSION = "camel.apache.org/v1"

# Flow metadata that belongs to the route rather than to the document.
ROUTE_ONLY_KEYS = ("id",)
# Flow metadata never written on a route.
NOT_ROUTE_KEYS = frozenset({"name", KEY_ORDER})

_KIND_RE = re.compile(r"^kind:\s*[\"']?Integration[\"']?\s*$", re.MULTILINE)
_API_RE = re.compile(r"^apiVersion:\s*[\"']?camel\.apache\.org/v1[\"']?\s*$", re.MULTILINE)


class IntegrationParser(DialectParser):
    identifier = IDENTIFIER

    def applies_to(self, text: str) -> bool:
        if not isinstance(text, str):
            return False
        return bool(_KIND_RE.search(text) and _API_RE.search(text))

    def parse_document(self, data: Any) -> list[ParseResult]:
        document = self.expect_kind(data, API_VERSION, IDENTIFIER)
        raw_metadata = document.get("metadata")
        raw_metadata = (
            self.expect_mapping(raw_metadata, "metadata") if raw_metadata is not None else {}
        )
        stripped, description = pop_description(raw_metadata)
        metadata = dict(stripped)
        if description is not None:
            metadata["description"] = description
        spec = self.expect_mapping(document.get("spec"), "spec")
        entries = spec.get("flows")
        entries = self.expect_list(entries, "spec.flows") if entries is not None else []
        parameters = {k: v for k, v in spec.items() if k != "flows"}

        remember_document_order(metadata, document, raw_metadata, stripped, description)
        remember_order(metadata, "spec", spec, ["flows", *parameters])

        results: list[ParseResult] = []
        if metadata or parameters:
            results.append(ParseResult(steps=None, metadata=metadata, parameters=parameters))
        for index, entry in enumerate(entries):
            local, steps = parse_route_entry(self, entry, f"spec.flows[{index}]")
            results.append(
                ParseResult(steps=tuple(steps), metadata=inherit(metadata, local))
            )
        return results


class IntegrationGenerator(DialectGenerator):
    identifier = IDENTIFIER
    supports_multiple_flows = True

    def generate_flows(self, results: Sequence[ParseResult]) -> str:
        header, flows = split_results(results)
        metadata = dict(header.metadata)
        parameters = dict(header.parameters)
        # Flows carry their own description only when a document header exists.
        own_keys: frozenset[str] = DOCUMENT_ONLY_KEYS
        if not metadata and not parameters and flows:
            # Single-flow form: the document fields travel on the flow itself.
            first = flows[0]
            metadata = {k: v for k, v in first.metadata.items() if k not in ROUTE_ONLY_KEYS}
            parameters = dict(first.parameters)
            own_keys = frozenset()

        entries = []
        for flow in flows:
            local = local_values(flow.metadata, metadata)
            local.update((k, v) for k, v in flow.metadata.items() if k in own_keys)
            local = {k: v for k, v in local.items() if k not in NOT_ROUTE_KEYS}
            entries.append(
                render_route_entry(local, flow.steps or (), recorded_order(flow.metadata, "route"))
            )
            for key, value in flow.parameters.items():
                parameters.setdefault(key, value)

        orders = metadata.pop(KEY_ORDER, None) or {}
        description = metadata.pop("description", None)
        return yaml_dump(
            render_document(
                API_VERSION,
                IDENTIFIER,
                put_description(metadata, description),
                {"flows": entries, **parameters},
                orders,
            )
        )
