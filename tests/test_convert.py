"""Tests for flowbridge._convert."""

from __future__ import annotations

import logging
import random
import re
from collections.abc import Callable

import pytest

import flowbridge
from flowbridge._config import configure
from flowbridge._convert import ConversionService, ensure_unique_names
from flowbridge._errors import FormatError, UnknownDialectError
from flowbridge._types import Document, Flow, Step, StepRole, UnrecognizedDialect
from flowbridge._yaml import normalize_whitespace

ROUND_TRIP_FIXTURES = [
    "twitter-search-source-binding.yaml",
    "knative-binding.yaml",
    "null-source.binding.yaml",
    "null-sink.binding.yaml",
    "null-source-null-sink.binding.yaml",
    "name-desc.binding.yaml",
    "uri-sink.binding.yaml",
    "timer-greeting-source.kamelet.yaml",
    "legacy-flow.kamelet.yaml",
    "dropbox-sink.kamelet.yaml",
    "shared-header.integration.yaml",
    "routes.yaml",
    "multi-doc.binding.yaml",
    "key-order.binding.yaml",
    "key-order.integration.yaml",
    "key-order.routes.yaml",
    "v1.kamelet.yaml",
]


def _flow(name: str | None, dialect: str = "Camel Route") -> Flow:
    metadata = {} if name is None else {"name": name}
    return Flow(steps=(), metadata=metadata, parameters={}, dialect=dialect)


class TestRoundTrip:
    @pytest.mark.parametrize("name", ROUND_TRIP_FIXTURES)
    def test_render_convert_is_identity(
        self,
        converter: ConversionService,
        fixture_text: Callable[[str], str],
        name: str,
    ) -> None:
        text = fixture_text(name)
        document = converter.convert(text)
        assert normalize_whitespace(converter.render(document)) == normalize_whitespace(text)

    def test_module_level_helpers(self, fixture_text: Callable[[str], str]) -> None:
        configure("logging")
        text = fixture_text("knative-binding.yaml")
        document = flowbridge.convert(text, "KameletBinding")
        assert document.dialect == "KameletBinding"
        assert normalize_whitespace(flowbridge.render(document)) == normalize_whitespace(text)


class TestConvert:
    def test_shared_header_document(
        self, converter: ConversionService, fixture_text: Callable[[str], str]
    ) -> None:
        document = converter.convert(fixture_text("shared-header.integration.yaml"))

        assert document.dialect == "Integration"
        assert document.metadata == {
            "name": "shared-header",
            "description": "Two routes sharing one header",
        }
        assert document.parameters == {"traits": {"logging": {"level": "INFO"}}}
        assert len(document.flows) == 2

        first, second = document.flows
        assert first.name == "shared-header"
        assert first.metadata["id"] == "greeter"
        assert second.name is not None
        assert re.fullmatch(r"shared-header\d\d", second.name)
        assert all(flow.dialect == "Integration" for flow in document.flows)

    def test_effective_metadata_includes_header(
        self, converter: ConversionService, fixture_text: Callable[[str], str]
    ) -> None:
        document = converter.convert(fixture_text("name-desc.binding.yaml"))
        (flow,) = document.flows
        assert "description" not in flow.metadata
        assert document.effective_metadata(flow)["description"] == (
            "The name-desc KameletBinding description"
        )

    def test_later_header_belongs_to_its_flow(
        self, converter: ConversionService, fixture_text: Callable[[str], str]
    ) -> None:
        document = converter.convert(fixture_text("multi-doc.binding.yaml"))

        assert document.metadata == {
            "name": "greeting-to-log",
            "description": "Sends greetings to the log",
        }
        first, second, third = document.flows
        assert [flow.name for flow in document.flows] == [
            "greeting-to-log",
            "greeting-to-channel",
            "tweets-to-log",
        ]
        assert "description" not in first.metadata
        assert "description" not in second.metadata
        assert third.metadata["description"] == "Logs every tweet"

        rendered = converter.render(document).split("---\n")
        assert "Sends greetings to the log" not in rendered[1]
        assert "Sends greetings to the log" not in rendered[2]

    def test_route_flows_get_generated_names(
        self, converter: ConversionService, fixture_text: Callable[[str], str]
    ) -> None:
        document = converter.convert(fixture_text("routes.yaml"))
        names = [flow.name for flow in document.flows]
        assert len(names) == 2
        assert len(set(names)) == 2
        for name in names:
            assert name is not None
            assert re.fullmatch(r"camelroute\d\d(\d\d)?", name)

    def test_steps_are_canonical(
        self, converter: ConversionService, fixture_text: Callable[[str], str]
    ) -> None:
        document = converter.convert(fixture_text("twitter-search-source-binding.yaml"))
        (flow,) = document.flows
        assert [s.role for s in flow.steps] == [
            StepRole.START,
            StepRole.MIDDLE,
            StepRole.END,
        ]

    def test_hint_matches(
        self, converter: ConversionService, fixture_text: Callable[[str], str]
    ) -> None:
        document = converter.convert(fixture_text("routes.yaml"), "camel route")
        assert document.dialect == "Camel Route"
        assert document.notes == ()

    def test_wrong_hint_falls_back_with_note(
        self, converter: ConversionService, fixture_text: Callable[[str], str]
    ) -> None:
        document = converter.convert(fixture_text("routes.yaml"), "Kamelet")
        assert document.dialect == "Camel Route"
        assert len(document.notes) == 1
        assert "Kamelet" in document.notes[0]

    def test_unrecognized_input(self, converter: ConversionService) -> None:
        document = converter.convert("greeting: hello\n", "Integration")
        assert isinstance(document, UnrecognizedDialect)
        assert not document.is_recognized
        assert document.flows == ()
        assert len(document.notes) == 1

    def test_empty_input(self, converter: ConversionService) -> None:
        document = converter.convert("")
        assert isinstance(document, UnrecognizedDialect)
        assert document.notes == ()

    def test_format_error_propagates(
        self, converter: ConversionService, fixture_text: Callable[[str], str]
    ) -> None:
        with pytest.raises(FormatError) as exc_info:
            converter.convert(fixture_text("invalid/binding-steps-mapping.yaml"))
        assert exc_info.value.dialect == "KameletBinding"

    def test_convert_is_repeatable(
        self, converter: ConversionService, fixture_text: Callable[[str], str]
    ) -> None:
        text = fixture_text("twitter-search-source-binding.yaml")
        assert converter.convert(text) == converter.convert(text)


class TestRender:
    def test_empty_document(self, converter: ConversionService) -> None:
        assert converter.render(Document()) == ""

    def test_header_only_document(self, converter: ConversionService) -> None:
        yaml = converter.render(Document(metadata={"name": "empty"}, dialect="Integration"))
        assert yaml == (
            "apiVersion: camel.apache.org/v1\n"
            "kind: Integration\n"
            "metadata:\n"
            "  name: empty\n"
            "spec:\n"
            "  flows: []\n"
        )

    def test_unknown_flow_dialect(self, converter: ConversionService) -> None:
        with pytest.raises(UnknownDialectError, match="'Pipe'"):
            converter.render(Document(flows=(_flow("a", dialect="Pipe"),)))

    def test_mixed_dialects(self, converter: ConversionService) -> None:
        source = Step(
            kind="Kamelet",
            name="timer-source",
            role=StepRole.START,
            attributes={
                "ref": {
                    "apiVersion": "camel.apache.org/v1alpha1",
                    "kind": "Kamelet",
                    "name": "timer-source",
                }
            },
        )
        tick = Step(
            kind="Camel-Connector",
            name="timer",
            role=StepRole.START,
            attributes={"uri": "timer:tick"},
        )
        document = Document(
            flows=(
                Flow(steps=(source,), metadata={"name": "b"}, parameters={},
                     dialect="KameletBinding"),
                Flow(steps=(tick,), metadata={"name": "r1"}, parameters={},
                     dialect="Camel Route"),
                Flow(steps=(tick,), metadata={"name": "r2"}, parameters={},
                     dialect="Camel Route"),
            )
        )

        chunks = converter.render(document).split("---\n")

        assert len(chunks) == 2
        assert chunks[0].startswith("apiVersion: camel.apache.org/v1alpha1\nkind: KameletBinding\n")
        assert chunks[1] == (
            "- from:\n"
            "    uri: timer:tick\n"
            "- from:\n"
            "    uri: timer:tick\n"
        )

    def test_single_flow_dialect_renders_one_document_per_flow(
        self, converter: ConversionService
    ) -> None:
        document = Document(
            flows=(_flow("a", "KameletBinding"), _flow("b", "KameletBinding")),
        )
        chunks = converter.render(document).split("---\n")
        assert len(chunks) == 2
        assert "name: a" in chunks[0]
        assert "name: b" in chunks[1]

    def test_render_names_nameless_flows(self, converter: ConversionService) -> None:
        yaml = converter.render(Document(flows=(_flow(None, "KameletBinding"),)))
        assert re.search(r"name: kameletbinding\d\d\n", yaml)


class TestEnsureUniqueNames:
    def test_missing_and_duplicate_names(self) -> None:
        flows = [_flow(None), _flow("a"), _flow("a"), _flow("")]
        named = ensure_unique_names(flows, random.Random(3))

        names = [flow.name for flow in named]
        assert all(name for name in names)
        assert re.fullmatch(r"camelroute\d\d", names[0])
        assert names[1] == "a"
        assert re.fullmatch(r"a\d\d", names[2])
        assert re.fullmatch(r"camelroute\d\d(\d\d)?", names[3])
        assert names[0] != names[3]

    def test_inputs_not_mutated(self) -> None:
        flow = _flow(None)
        ensure_unique_names([flow], random.Random(1))
        assert flow.metadata == {}

    def test_unique_names_kept(self) -> None:
        flows = [_flow("x"), _flow("y")]
        assert [f.name for f in ensure_unique_names(flows, random.Random(1))] == ["x", "y"]

    def test_many_duplicates_never_raise(self) -> None:
        flows = [_flow("same") for _ in range(200)]
        named = ensure_unique_names(flows, random.Random(5))
        assert len(named) == 200
        assert all(flow.name for flow in named)

    def test_dialect_prefix_has_no_spaces(self) -> None:
        (flow,) = ensure_unique_names([_flow(None, "Camel Route")], random.Random(2))
        assert flow.name is not None
        assert " " not in flow.name


class TestObservability:
    def test_convert_logs_span(
        self,
        converter: ConversionService,
        fixture_text: Callable[[str], str],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        configure("logging")
        with caplog.at_level(logging.INFO, logger="flowbridge"):
            converter.convert(fixture_text("routes.yaml"))

        spans = [r for r in caplog.records if r.name == "flowbridge"]
        assert [r.getMessage() for r in spans] == ["convert.start", "convert.end"]
        start, end = spans
        assert start.conversion_id == end.conversion_id  # type: ignore[attr-defined]
        assert len(start.conversion_id) == 32  # type: ignore[attr-defined]
        assert end.dialect == "Camel Route"  # type: ignore[attr-defined]

    def test_unrecognized_is_logged(
        self, converter: ConversionService, caplog: pytest.LogCaptureFixture
    ) -> None:
        configure("logging")
        with caplog.at_level(logging.INFO, logger="flowbridge"):
            converter.convert("plain: text\n")
        assert any(r.getMessage() == "No dialect applies to the input" for r in caplog.records)
