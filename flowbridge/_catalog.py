"""Read-only step catalog consulted by parsers for kind and role lookups."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from importlib import resources
from typing import Any

import yaml

from flowbridge._types import StepRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StepDescriptor:
    """Canonical description of a known step kind."""

    id: str
    name: str
    kind: str
    role: StepRole = StepRole.UNCLASSIFIED
    title: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StepDescriptor:
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            kind=data["kind"],
            role=StepRole(data.get("role", StepRole.UNCLASSIFIED.value)),
            title=data.get("title", ""),
            description=data.get("description", ""),
        )


Loader = Callable[[], Iterable[StepDescriptor]]


class StepCatalog:
    """Step descriptors indexed by id and by name.

    The catalog is filled once by *loader* on a background thread started by
    :meth:`warm_up`. Every lookup blocks until that warm-up has finished, so
    callers never observe a partially loaded catalog. After warm-up the
    catalog is never mutated.
    """

    def __init__(self, loader: Loader) -> None:
        self._loader = loader
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._thread: threading.Thread | None = None
        self._error: BaseException | None = None
        self._by_id: dict[str, StepDescriptor] = {}
        self._by_name: dict[str, list[StepDescriptor]] = {}

    @classmethod
    def from_descriptors(cls, descriptors: Iterable[StepDescriptor]) -> StepCatalog:
        """Build a catalog that is ready as soon as it is returned."""
        items = list(descriptors)
        catalog = cls(lambda: items)
        catalog.warm_up()
        catalog.wait_for_warm_up()
        return catalog

    @classmethod
    def from_package(cls) -> StepCatalog:
        """Catalog backed by the descriptor list shipped with flowbridge."""
        return cls(_load_packaged_descriptors)

    # -- lifecycle ------------------------------------------------------------

    def warm_up(self) -> StepCatalog:
        """Start loading descriptors in the background. Idempotent."""
        with self._lock:
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._load, name="flowbridge-catalog", daemon=True
                )
                self._thread.start()
        return self

    def wait_for_warm_up(self, timeout: float | None = None) -> None:
        """Block until warm-up completed, starting it if needed.

        Raises ``TimeoutError`` if *timeout* expires and ``RuntimeError`` if
        the loader failed.
        """
        self.warm_up()
        if not self._ready.wait(timeout):
            raise TimeoutError("Step catalog warm-up did not finish in time")
        if self._error is not None:
            raise RuntimeError("Step catalog failed to warm up") from self._error

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set() and self._error is None

    def _load(self) -> None:
        try:
            for descriptor in self._loader():
                self._by_id[descriptor.id] = descriptor
                self._by_name.setdefault(descriptor.name, []).append(descriptor)
            logger.debug("Step catalog loaded %d descriptors", len(self._by_id))
        except Exception as exc:
            logger.error("Step catalog warm-up failed", exc_info=exc)
            self._error = exc
        finally:
            self._ready.set()

    # -- lookups --------------------------------------------------------------

    def by_id(self, step_id: str) -> StepDescriptor | None:
        self.wait_for_warm_up()
        return self._by_id.get(step_id)

    def by_name(self, name: str) -> list[StepDescriptor]:
        self.wait_for_warm_up()
        return list(self._by_name.get(name, ()))

    def all(self) -> list[StepDescriptor]:
        self.wait_for_warm_up()
        return list(self._by_id.values())


def _load_packaged_descriptors() -> list[StepDescriptor]:
    text = resources.files("flowbridge").joinpath("data/steps.yaml").read_text(
        encoding="utf-8"
    )
    return [StepDescriptor.from_dict(item) for item in yaml.safe_load(text) or []]
