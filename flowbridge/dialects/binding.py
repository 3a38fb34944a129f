"""KameletBinding dialect: a source, optional action steps and a sink."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from flowbridge._catalog import StepDescriptor
from flowbridge._types import ParseResult, Step, StepRole
from flowbridge._yaml import yaml_dump
from flowbridge.dialects.base import (
    KEY_ORDER,
    DialectGenerator,
    DialectParser,
    changed_order,
    inherit,
    pop_description,
    put_description,
    remember_document_order,
    remember_order,
    render_document,
    restore_order,
    split_results,
)

IDENTIFIER = "KameletBinding"
API_VERSION = "camel.apache.org/v1alpha1"

_SLOTS = ("source", "steps", "sink")
_ENDPOINT_KEYS = ("ref", "uri", "properties")
_KIND_RE = re.compile(r"^kind:\s*[\"']?KameletBinding[\"']?\s*$", re.MULTILINE)
_API_RE = re.compile(
    r"^apiVersion:\s*[\"']?camel\.apache\.org/v1alpha1[\"']?\s*$", re.MULTILINE
)


class KameletBindingParser(DialectParser):
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
        metadata, description = pop_description(raw_metadata)
        spec = self.expect_mapping(document.get("spec"), "spec")

        steps: list[Step] = []
        if spec.get("source") is not None:
            steps.append(self._endpoint(spec["source"], StepRole.START, "spec.source"))
        actions = spec.get("steps")
        if actions is not None:
            for index, item in enumerate(self.expect_list(actions, "spec.steps")):
                steps.append(self._endpoint(item, StepRole.MIDDLE, f"spec.steps[{index}]"))
        if spec.get("sink") is not None:
            steps.append(self._endpoint(spec["sink"], StepRole.END, "spec.sink"))
        parameters = {k: v for k, v in spec.items() if k not in _SLOTS}

        results: list[ParseResult] = []
        header: dict[str, Any] = {}
        if description is not None:
            if "name" in metadata:
                header["name"] = metadata["name"]
            header["description"] = description
            results.append(ParseResult(steps=None, metadata=header))

        flow_metadata = inherit(header, metadata)
        remember_document_order(flow_metadata, document, raw_metadata, metadata, description)
        remember_order(
            flow_metadata,
            "spec",
            spec,
            ["source", *(["steps"] if actions else []), "sink", *parameters],
        )
        results.append(
            ParseResult(steps=tuple(steps), metadata=flow_metadata, parameters=parameters)
        )
        return results

    def _endpoint(self, value: Any, role: StepRole, where: str) -> Step:
        endpoint = self.expect_mapping(value, where)
        properties = endpoint.get("properties")
        parameters = (
            dict(self.expect_mapping(properties, f"{where}.properties"))
            if properties is not None
            else {}
        )
        attributes: dict[str, Any] = {}
        if "ref" in endpoint:
            ref = self.expect_mapping(endpoint["ref"], f"{where}.ref")
            kind = self.expect_string(ref.get("kind"), f"{where}.ref.kind")
            name = self.expect_string(ref.get("name"), f"{where}.ref.name")
            attributes["ref"] = dict(ref)
            descriptor = self._lookup(kind, name)
            target = "ref"
        elif "uri" in endpoint:
            uri = self.expect_string(endpoint["uri"], f"{where}.uri")
            name = uri.partition(":")[0]
            attributes["uri"] = uri
            descriptor = self.catalog.by_id(name)
            kind = descriptor.kind if descriptor is not None else "Camel-Connector"
            target = "uri"
        else:
            raise self.format_error(f"'{where}' needs either a 'ref' or a 'uri'")

        extra = {k: v for k, v in endpoint.items() if k not in _ENDPOINT_KEYS}
        if extra:
            attributes["extra"] = extra
        order = changed_order(
            endpoint, [target, *(["properties"] if parameters else []), *extra]
        )
        if order is not None:
            attributes[KEY_ORDER] = order
        return Step(
            kind=kind,
            name=name,
            role=role,
            parameters=parameters,
            id=descriptor.id if descriptor is not None else None,
            attributes=attributes,
        )

    def _lookup(self, kind: str, name: str) -> StepDescriptor | None:
        return next((d for d in self.catalog.by_name(name) if d.kind == kind), None)


class KameletBindingGenerator(DialectGenerator):
    """Writes one YAML document per flow.

    A header applies to the flow that follows it. Its description is only
    written on a flow of the same name, so a document header rendered in front
    of every flow of a stream stays with its own document.
    """

    identifier = IDENTIFIER

    def generate_flows(self, results: Sequence[ParseResult]) -> str:
        documents: list[str] = []
        pending: list[ParseResult] = []
        for result in results:
            pending.append(result)
            if not result.is_metadata_only:
                documents.append(self._document(pending))
                pending = []
        if pending or not documents:
            documents.append(self._document(pending))
        return "---\n".join(documents)

    def _document(self, results: Sequence[ParseResult]) -> str:
        header, flows = split_results(results)
        flow = flows[0] if flows else ParseResult(steps=())
        steps = flow.steps or ()

        metadata = inherit(header.metadata, flow.metadata)
        orders = metadata.pop(KEY_ORDER, {})
        description = metadata.pop("description", None)
        if description is None and header.metadata.get("name") in (None, metadata.get("name")):
            description = header.metadata.get("description")

        source = next((s for s in steps if s.role is StepRole.START), None)
        sink = next((s for s in reversed(steps) if s.role is StepRole.END), None)
        middle = [s for s in steps if s is not source and s is not sink]
        spec_order = orders.get("spec") or ()

        spec: dict[str, Any] = {"source": self._endpoint(source)}
        if middle or "steps" in spec_order:
            spec["steps"] = [self._endpoint(step) for step in middle]
        spec["sink"] = self._endpoint(sink)
        spec.update({**header.parameters, **flow.parameters})

        return yaml_dump(
            render_document(
                API_VERSION, IDENTIFIER, put_description(metadata, description), spec, orders
            )
        )

    @staticmethod
    def _endpoint(step: Step | None) -> dict[str, Any] | None:
        if step is None:
            return None
        order = step.attributes.get(KEY_ORDER)
        endpoint: dict[str, Any] = {}
        if "uri" in step.attributes:
            endpoint["uri"] = step.attributes["uri"]
        else:
            ref = dict(step.attributes.get("ref") or {"apiVersion": API_VERSION})
            ref["kind"] = step.kind
            ref["name"] = step.name
            endpoint["ref"] = ref
        if step.parameters or (order and "properties" in order):
            endpoint["properties"] = dict(step.parameters)
        endpoint.update(step.attributes.get("extra", {}))
        return restore_order(endpoint, order)
