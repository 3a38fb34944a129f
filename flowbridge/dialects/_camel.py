"""Codec for Camel ``from`` blocks shared by route-carrying dialects."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from flowbridge._types import Step, StepRole
from flowbridge.dialects.base import KEY_ORDER, DialectParser, changed_order, restore_order

ENDPOINT_EIPS = frozenset({"to", "toD", "wireTap"})
_ENDPOINT_KEYS = ("uri", "parameters", "steps")


def endpoint_id(uri: str) -> str:
    """Catalog id of an endpoint URI: the scheme, or ``kamelet:<name>``."""
    scheme, _, rest = uri.partition(":")
    if scheme == "kamelet":
        return f"kamelet:{rest.split('?', 1)[0].split('/', 1)[0]}"
    return scheme


def endpoint_name(uri: str) -> str:
    scheme, _, rest = uri.partition(":")
    if scheme == "kamelet":
        return rest.split("?", 1)[0]
    return scheme


def _optional_mapping(parser: DialectParser, value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    return dict(parser.expect_mapping(value, where))


def _remember_node_order(
    attributes: dict[str, Any], node: dict[str, Any], rendered: list[str]
) -> None:
    order = changed_order(node, rendered)
    if order is not None:
        attributes[KEY_ORDER] = order


def _endpoint_step(
    parser: DialectParser,
    uri: str,
    parameters: dict[str, Any],
    role: StepRole,
    attributes: dict[str, Any],
) -> Step:
    descriptor = parser.catalog.by_id(endpoint_id(uri))
    if descriptor is not None:
        kind = descriptor.kind
    else:
        kind = "Kamelet" if uri.startswith("kamelet:") else "Camel-Connector"
    if role is StepRole.MIDDLE and descriptor is not None and descriptor.role is StepRole.END:
        role = StepRole.END
    return Step(
        kind=kind,
        name=endpoint_name(uri),
        role=role,
        parameters=parameters,
        id=descriptor.id if descriptor is not None else None,
        attributes=attributes,
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_from(parser: DialectParser, value: Any, where: str) -> list[Step]:
    """Parse a ``from`` block into its START step plus the steps it carries.

    ``from: null`` yields no steps at all.
    """
    if value is None:
        return []
    node = parser.expect_mapping(value, where)
    uri = parser.expect_string(node.get("uri"), f"{where}.uri")
    attributes: dict[str, Any] = {"uri": uri}
    extra = {k: v for k, v in node.items() if k not in _ENDPOINT_KEYS}
    if extra:
        attributes["extra"] = extra
    parameters = _optional_mapping(parser, node.get("parameters"), f"{where}.parameters")
    items = node.get("steps")
    _remember_node_order(
        attributes,
        node,
        ["uri", *(["parameters"] if parameters else []), *extra, *(["steps"] if items else [])],
    )
    steps = [_endpoint_step(parser, uri, parameters, StepRole.START, attributes)]
    if items is not None:
        for index, item in enumerate(parser.expect_list(items, f"{where}.steps")):
            steps.append(parse_step(parser, item, f"{where}.steps[{index}]"))
    return steps


def parse_step(parser: DialectParser, item: Any, where: str) -> Step:
    """Parse one single-key entry of a ``steps`` list."""
    entry = parser.expect_mapping(item, where)
    if len(entry) != 1:
        raise parser.format_error(f"'{where}' must hold exactly one processor")
    ((eip, body),) = entry.items()
    eip = parser.expect_string(eip, where)

    if eip in ENDPOINT_EIPS:
        if isinstance(body, str):
            return _endpoint_step(
                parser, body, {}, StepRole.MIDDLE,
                {"eip": eip, "uri": body, "shorthand": True},
            )
        node = parser.expect_mapping(body, f"{where}.{eip}")
        uri = parser.expect_string(node.get("uri"), f"{where}.{eip}.uri")
        attributes: dict[str, Any] = {"eip": eip, "uri": uri}
        extra = {k: v for k, v in node.items() if k not in _ENDPOINT_KEYS}
        if extra:
            attributes["extra"] = extra
        parameters = _optional_mapping(
            parser, node.get("parameters"), f"{where}.{eip}.parameters"
        )
        _remember_node_order(
            attributes, node, ["uri", *(["parameters"] if parameters else []), *extra]
        )
        return _endpoint_step(parser, uri, parameters, StepRole.MIDDLE, attributes)

    descriptor = next(
        (d for d in parser.catalog.by_name(eip) if d.kind == "EIP"), None
    )
    if isinstance(body, dict):
        parameters, attributes = dict(body), {}
    else:
        parameters, attributes = {}, {"value": body}
    return Step(
        kind="EIP",
        name=eip,
        role=StepRole.MIDDLE,
        parameters=parameters,
        id=descriptor.id if descriptor is not None else None,
        attributes=attributes,
    )


def parse_route_entry(
    parser: DialectParser, entry: Any, where: str
) -> tuple[dict[str, Any], list[Step]]:
    """Parse a ``- from:`` or ``- route:`` entry.

    Returns the route-local metadata (``id``, ``description``...) and steps.
    """
    node = parser.expect_mapping(entry, where)
    if len(node) == 1 and "from" in node:
        return {}, parse_from(parser, node["from"], f"{where}.from")
    if len(node) == 1 and "route" in node:
        route = parser.expect_mapping(node["route"], f"{where}.route")
        local = {k: v for k, v in route.items() if k != "from"}
        steps = parse_from(parser, route.get("from"), f"{where}.route.from")
        order = changed_order(route, [*local, "from"])
        if order is not None or not local:
            local[KEY_ORDER] = {"route": list(route)}
        return local, steps
    raise parser.format_error(f"'{where}' must be a single 'from' or 'route'")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _uri(step: Step) -> str:
    uri = step.attributes.get("uri")
    if uri is not None:
        return uri
    if step.kind == "Kamelet":
        return f"kamelet:{step.name}"
    return step.name


def render_step(step: Step) -> dict[str, Any]:
    eip = step.attributes.get("eip")
    if eip is None and step.kind == "EIP":
        if "value" in step.attributes:
            return {step.name: step.attributes["value"]}
        return {step.name: dict(step.parameters)}

    eip = eip or "to"
    order = step.attributes.get(KEY_ORDER)
    if step.attributes.get("shorthand") and not step.parameters:
        return {eip: _uri(step)}
    body: dict[str, Any] = {"uri": _uri(step)}
    if step.parameters or (order and "parameters" in order):
        body["parameters"] = dict(step.parameters)
    body.update(step.attributes.get("extra", {}))
    return {eip: restore_order(body, order)}


def render_from(steps: Sequence[Step]) -> dict[str, Any] | None:
    """Inverse of :func:`parse_from`. The first step becomes the consumer."""
    if not steps:
        return None
    start, *rest = steps
    order = start.attributes.get(KEY_ORDER) or ()
    node: dict[str, Any] = {"uri": _uri(start)}
    if start.parameters or "parameters" in order:
        node["parameters"] = dict(start.parameters)
    node.update(start.attributes.get("extra", {}))
    if rest or "steps" in order:
        node["steps"] = [render_step(step) for step in rest]
    return restore_order(node, order or None)


def render_route_entry(
    local: dict[str, Any],
    steps: Sequence[Step],
    order: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Inverse of :func:`parse_route_entry`.

    *order* is the recorded key order of the ``route`` block; a route is
    written in ``route`` form whenever it has local values or a recorded order.
    """
    node = render_from(steps)
    if local or order is not None:
        return {"route": restore_order({**local, "from": node}, order)}
    return {"from": node}
