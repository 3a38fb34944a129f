"""YAML serialization helpers shared by all dialects."""

from __future__ import annotations

from typing import Any

import yaml


class _NoAliasDumper(yaml.SafeDumper):
    """Dumper that never emits anchors or aliases."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def yaml_dump(data: Any) -> str:
    """Dump *data* in block style, keeping key insertion order."""
    return yaml.dump(
        data,
        Dumper=_NoAliasDumper,
        sort_keys=False,
        default_flow_style=False,
        indent=2,
        width=100,
        allow_unicode=True,
        explicit_start=False,
        explicit_end=False,
    )


def yaml_load_all(text: str) -> list[Any]:
    """Load every non-empty document of a YAML stream."""
    return [doc for doc in yaml.safe_load_all(text) if doc is not None]


def normalize_whitespace(text: str) -> str:
    """Collapse newline styles and trailing blanks for text comparisons."""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return "\n".join(line.rstrip() for line in lines).strip("\n") + "\n"
