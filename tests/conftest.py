from __future__ import annotations

import random
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from flowbridge._catalog import StepCatalog
from flowbridge._config import reset
from flowbridge._convert import ConversionService
from flowbridge._registry import DialectRegistry
from flowbridge.dialects import default_registry

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _reset_config() -> Iterator[None]:
    reset()
    yield
    reset()


@pytest.fixture(scope="session")
def catalog() -> StepCatalog:
    catalog = StepCatalog.from_package()
    catalog.wait_for_warm_up()
    return catalog


@pytest.fixture
def registry(catalog: StepCatalog) -> DialectRegistry:
    return default_registry(catalog)


@pytest.fixture
def converter(registry: DialectRegistry) -> ConversionService:
    return ConversionService(registry, rng=random.Random(7))


@pytest.fixture
def fixture_text() -> Callable[[str], str]:
    def read(name: str) -> str:
        return (FIXTURES / name).read_text(encoding="utf-8")

    return read
