"""
Shared fixtures: deterministic clocks and ids, stores, and an ASGI client.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from taskflow_server.core.config import Settings
from taskflow_server.main import create_app
from taskflow_server.services.tasks import TaskStore
from taskflow_shared.schemas.common import KANBAN_COLUMNS

START = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)


class StepClock:
    """Clock that advances by ``step`` on every reading."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


def sequential_ids(prefix: str = "t"):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def assert_dense(store: TaskStore) -> None:
    """Every column's orders are exactly 0..n-1, matching iteration order."""
    for status in KANBAN_COLUMNS:
        column = list(store.get_by_status(status))
        assert [t.order for t in column] == list(range(len(column))), status
        assert all(t.status == status for t in column)


def column_titles(store: TaskStore, status) -> list[str]:
    return [t.title for t in store.get_by_status(status)]


def dump(store: TaskStore) -> list[str]:
    return [t.model_dump_json() for t in store.all()]


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def store(clock) -> TaskStore:
    return TaskStore(clock=clock, id_factory=sequential_ids())


@pytest.fixture
def todo_abc(store):
    """Store seeded with A, B, C in the todo column (orders 0, 1, 2)."""
    return [store.create({"title": title}) for title in ("A", "B", "C")]


@pytest.fixture
def settings() -> Settings:
    return Settings(seed_demo_data=False, snapshot_path=None, log_format="text", log_level="warning")


@pytest.fixture
async def client(store, settings):
    app = create_app(store=store, settings=settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
