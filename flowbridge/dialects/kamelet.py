"""Kamelet dialect: a reusable route template with a typed definition.

The ``spec.definition.properties`` schema becomes the flow parameters; the
template's ``from`` block becomes the steps. Everything else the document
carries is kept in the flow metadata so it can be written back:

- ``title`` / ``description`` from the definition,
- ``definition``: other definition keys (``required``, ``type``...),
- ``template``: template keys besides ``from`` (``beans``),
- ``spec``: other spec keys (``dependencies``, ``types``...),
- ``template-key``: ``flow`` for documents using the legacy ``spec.flow`` key,
- ``api-version``: the ``apiVersion`` when it is not ``v1alpha1``.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from flowbridge._types import ParseResult
from flowbridge._yaml import yaml_dump
from flowbridge.dialects._camel import parse_from, render_from
from flowbridge.dialects.base import (
    KEY_ORDER,
    DialectGenerator,
    DialectParser,
    recorded_order,
    remember_document_order,
    remember_order,
    render_document,
    restore_order,
    split_results,
)

IDENTIFIER = "Kamelet"
API_VERSION = "camel.apache.org/v1alpha1"
API_VERSIONS = (API_VERSION, "camel.apache.org/v1")

_TEMPLATE_KEYS = ("template", "flow")
_DEFINITION_KEYS = ("title", "description", "properties")
_FLOW_KEYS = frozenset(
    {
        "title",
        "description",
        "definition",
        "template",
        "spec",
        "template-key",
        "api-version",
        KEY_ORDER,
    }
)
_KIND_RE = re.compile(r"^kind:\s*[\"']?Kamelet[\"']?\s*$", re.MULTILINE)
_API_RE = re.compile(
    r"^apiVersion:\s*[\"']?camel\.apache\.org/v1(?:alpha1)?[\"']?\s*$", re.MULTILINE
)


class KameletParser(DialectParser):
    identifier = IDENTIFIER

    def applies_to(self, text: str) -> bool:
        if not isinstance(text, str):
            return False
        return bool(_KIND_RE.search(text) and _API_RE.search(text))

    def parse_document(self, data: Any) -> list[ParseResult]:
        document = self.expect_kind(data, API_VERSIONS, IDENTIFIER)
        metadata = document.get("metadata")
        metadata = self.expect_mapping(metadata, "metadata") if metadata is not None else {}
        flow_metadata = dict(metadata)
        spec = self.expect_mapping(document.get("spec"), "spec")

        template_key = next((k for k in _TEMPLATE_KEYS if k in spec), None)
        if template_key is None:
            raise self.format_error("'spec.template' is required")
        template = self.expect_mapping(spec[template_key], f"spec.{template_key}")
        steps = parse_from(self, template.get("from"), f"spec.{template_key}.from")

        definition = spec.get("definition")
        definition = (
            self.expect_mapping(definition, "spec.definition")
            if definition is not None
            else {}
        )
        properties = definition.get("properties")
        parameters = (
            dict(self.expect_mapping(properties, "spec.definition.properties"))
            if properties is not None
            else {}
        )

        for key in ("title", "description"):
            if key in definition:
                flow_metadata[key] = definition[key]
        self._keep(flow_metadata, "definition", definition, _DEFINITION_KEYS)
        self._keep(flow_metadata, "template", template, ("from",))
        self._keep(flow_metadata, "spec", spec, ("definition", template_key))
        if template_key != "template":
            flow_metadata["template-key"] = template_key
        if document["apiVersion"] != API_VERSION:
            flow_metadata["api-version"] = document["apiVersion"]

        remember_document_order(flow_metadata, document, metadata, metadata, None)
        spec_extras = [k for k in spec if k not in ("definition", template_key)]
        remember_order(flow_metadata, "spec", spec, ["definition", *spec_extras, template_key])
        remember_order(
            flow_metadata,
            "definition",
            definition,
            [
                *(k for k in ("title", "description") if k in definition),
                *(k for k in definition if k not in _DEFINITION_KEYS),
                *(["properties"] if parameters else []),
            ],
        )
        remember_order(
            flow_metadata,
            "template",
            template,
            [*(k for k in template if k != "from"), "from"],
        )

        return [
            ParseResult(steps=tuple(steps), metadata=flow_metadata, parameters=parameters)
        ]

    @staticmethod
    def _keep(
        target: dict[str, Any],
        key: str,
        source: dict[str, Any],
        consumed: Sequence[str],
    ) -> None:
        rest = {k: v for k, v in source.items() if k not in consumed}
        if rest:
            target[key] = rest


class KameletGenerator(DialectGenerator):
    identifier = IDENTIFIER

    def generate_flows(self, results: Sequence[ParseResult]) -> str:
        header, flows = split_results(results)
        if len(flows) > 1:
            raise ValueError(
                f"A {IDENTIFIER} document holds a single flow, got {len(flows)}"
            )
        flow = flows[0] if flows else ParseResult(steps=())
        metadata = {**header.metadata, **flow.metadata}
        parameters = {**header.parameters, **flow.parameters}
        orders = metadata.get(KEY_ORDER) or {}

        definition: dict[str, Any] = {}
        for key in ("title", "description"):
            if key in metadata:
                definition[key] = metadata[key]
        definition.update(metadata.get("definition", {}))
        if parameters or "properties" in (orders.get("definition") or ()):
            definition["properties"] = parameters

        template_key = metadata.get("template-key", "template")
        spec: dict[str, Any] = {"definition": restore_order(definition, orders.get("definition"))}
        spec.update(metadata.get("spec", {}))
        spec[template_key] = restore_order(
            {**metadata.get("template", {}), "from": render_from(flow.steps or ())},
            recorded_order(metadata, "template"),
        )

        return yaml_dump(
            render_document(
                metadata.get("api-version", API_VERSION),
                IDENTIFIER,
                {k: v for k, v in metadata.items() if k not in _FLOW_KEYS},
                spec,
                orders,
            )
        )
