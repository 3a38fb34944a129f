"""Tests for flowbridge.dialects.route and the shared Camel codec."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from flowbridge._catalog import StepCatalog
from flowbridge._errors import FormatError
from flowbridge._types import Step, StepRole
from flowbridge._yaml import normalize_whitespace
from flowbridge.dialects._camel import endpoint_id, endpoint_name, render_step
from flowbridge.dialects.route import CamelRouteGenerator, CamelRouteParser


@pytest.fixture
def parser(catalog: StepCatalog) -> CamelRouteParser:
    return CamelRouteParser(catalog)


@pytest.fixture
def generator() -> CamelRouteGenerator:
    return CamelRouteGenerator()


class TestAppliesTo:
    def test_route_list(self, parser: CamelRouteParser, fixture_text: Callable[[str], str]) -> None:
        assert parser.applies_to(fixture_text("routes.yaml"))

    def test_integration_flows_are_indented(
        self, parser: CamelRouteParser, fixture_text: Callable[[str], str]
    ) -> None:
        assert not parser.applies_to(fixture_text("shared-header.integration.yaml"))


class TestParse:
    def test_two_routes(self, parser: CamelRouteParser, fixture_text: Callable[[str], str]) -> None:
        first, second = parser.get_parsed_flows(fixture_text("routes.yaml"))

        assert first.metadata == {"id": "tick-route", "description": "Logs every tick"}
        assert first.steps is not None
        assert [(s.name, s.role) for s in first.steps] == [
            ("timer", StepRole.START),
            ("set-body", StepRole.MIDDLE),
            ("sink", StepRole.END),
        ]
        assert second.metadata == {}
        assert second.steps is not None
        assert [(s.kind, s.name) for s in second.steps] == [
            ("Kamelet", "source"),
            ("EIP", "log"),
        ]

    def test_null_from_is_an_empty_flow(self, parser: CamelRouteParser) -> None:
        (flow,) = parser.get_parsed_flows("- from: null\n")
        assert flow.steps == ()

    def test_endpoint_needs_uri(self, parser: CamelRouteParser) -> None:
        text = "- from:\n    uri: timer:a\n    steps:\n    - to:\n        parameters: {}\n"
        with pytest.raises(FormatError, match=r"'\[0\].from.steps\[0\].to.uri'"):
            parser.get_parsed_flows(text)


class TestRoundTrip:
    def test_routes(
        self,
        parser: CamelRouteParser,
        generator: CamelRouteGenerator,
        fixture_text: Callable[[str], str],
    ) -> None:
        text = fixture_text("routes.yaml")
        yaml = generator.generate_flows(parser.get_parsed_flows(text))
        assert normalize_whitespace(yaml) == normalize_whitespace(text)

    def test_generated_names_are_not_written(
        self, parser: CamelRouteParser, generator: CamelRouteGenerator
    ) -> None:
        (flow,) = parser.get_parsed_flows("- from:\n    uri: timer:a\n")
        flow.metadata["name"] = "camelroute12"
        assert generator.generate_flows([flow]) == "- from:\n    uri: timer:a\n"

    def test_empty_skeleton(self, generator: CamelRouteGenerator) -> None:
        assert generator.generate([], {}, {}) == "- from: null\n"

    def test_key_order_and_empty_steps(
        self,
        parser: CamelRouteParser,
        generator: CamelRouteGenerator,
        fixture_text: Callable[[str], str],
    ) -> None:
        text = fixture_text("key-order.routes.yaml")
        first, second = parser.get_parsed_flows(text)
        assert first.metadata["id"] == "tick-route"
        assert second.steps is not None and len(second.steps) == 1

        yaml = generator.generate_flows([first, second])
        assert normalize_whitespace(yaml) == normalize_whitespace(text)

    def test_empty_from_steps_kept(
        self, parser: CamelRouteParser, generator: CamelRouteGenerator
    ) -> None:
        text = "- from:\n    uri: timer:a\n    steps: []\n"
        assert generator.generate_flows(parser.get_parsed_flows(text)) == text

    def test_endpoint_body_order(
        self, parser: CamelRouteParser, generator: CamelRouteGenerator
    ) -> None:
        text = (
            "- from:\n"
            "    parameters:\n"
            "      period: 10\n"
            "    uri: timer:a\n"
            "    steps:\n"
            "    - to:\n"
            "        parameters: {}\n"
            "        uri: log:a\n"
        )
        assert generator.generate_flows(parser.get_parsed_flows(text)) == text


class TestCodec:
    @pytest.mark.parametrize(
        ("uri", "expected_id", "expected_name"),
        [
            ("timer:tick", "timer", "timer"),
            ("kamelet:sink", "kamelet:sink", "sink"),
            ("kamelet:log-sink?level=INFO", "kamelet:log-sink", "log-sink"),
        ],
    )
    def test_endpoint_naming(self, uri: str, expected_id: str, expected_name: str) -> None:
        assert endpoint_id(uri) == expected_id
        assert endpoint_name(uri) == expected_name

    def test_render_step_without_slot_details(self) -> None:
        assert render_step(Step(kind="Kamelet", name="log-sink")) == {
            "to": {"uri": "kamelet:log-sink"}
        }
        assert render_step(Step(kind="EIP", name="set-body", parameters={"constant": "x"})) == {
            "set-body": {"constant": "x"}
        }
