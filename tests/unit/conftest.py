from typing import Any, Dict, List, Mapping, Optional, Tuple

import pytest

from pagesync.core.actions import Actions
from pagesync.core.synchronizer import Synchronizer


class FakeClock:
    """Millisecond clock that only moves when something sleeps."""

    def __init__(self) -> None:
        self.now = 0
        self.sleeps: List[int] = []

    def __call__(self) -> int:
        return self.now

    def sleep(self, ms: int) -> None:
        self.sleeps.append(ms)
        self.now += ms


class FakeElement:
    def __init__(self, page: "FakePage", kind: str, value: str, scope: Optional["FakeElement"]) -> None:
        self.page = page
        self.key = (kind, value)
        self.scope = scope

    def _mutate(self, name: str, arg: Any = None) -> None:
        queue = self.page.mutation_failures.get(self.key)
        if queue:
            raise queue.pop(0)
        self.page.mutations.append((name, self.key, arg))

    def click(self) -> None:
        self._mutate("click")

    def set(self, value: Any) -> None:
        self._mutate("set", value)
        self.page.values[self.key] = value

    def select_option(self) -> None:
        self._mutate("select_option", self.scope.key if self.scope else None)

    def unselect_option(self) -> None:
        self._mutate("unselect_option", self.scope.key if self.scope else None)

    def find(self, kind, value, filters: Mapping[str, Any]) -> "FakeElement":
        return self.page._lookup(kind, value, filters, scope=self)


class FakePage:
    """
    Search context recording every lookup. `find_failures` and
    `mutation_failures` hold exceptions raised (in order) before succeeding.
    """

    def __init__(self) -> None:
        self.lookups: List[Tuple[str, str, Dict[str, Any]]] = []
        self.mutations: List[Tuple[str, Tuple[str, str], Any]] = []
        self.values: Dict[Tuple[str, str], Any] = {}
        self.find_failures: Dict[Tuple[str, str], List[Exception]] = {}
        self.mutation_failures: Dict[Tuple[str, str], List[Exception]] = {}

    def _lookup(self, kind, value, filters, scope=None) -> FakeElement:
        kind = getattr(kind, "value", kind)
        self.lookups.append((kind, value, dict(filters)))
        queue = self.find_failures.get((kind, value))
        if queue:
            raise queue.pop(0)
        return FakeElement(self, kind, value, scope)

    def find(self, kind, value, filters: Mapping[str, Any]) -> FakeElement:
        return self._lookup(kind, value, filters)


class SpySynchronizer(Synchronizer):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.calls: List[Optional[int]] = []

    def synchronize(self, fn, wait_ms=None):
        self.calls.append(wait_ms)
        return super().synchronize(fn, wait_ms)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def page() -> FakePage:
    return FakePage()


@pytest.fixture
def sync(clock: FakeClock) -> SpySynchronizer:
    return SpySynchronizer(1000, 50, clock=clock, sleep=clock.sleep)


@pytest.fixture
def actions(page: FakePage, sync: SpySynchronizer) -> Actions:
    return Actions(page, sync)
