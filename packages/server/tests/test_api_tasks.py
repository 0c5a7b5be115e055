"""
Integration tests for Task endpoints through the ASGI app.

Tests cover:
- CRUD status codes and error envelopes (400 / 404 / 409)
- Move endpoint and status-change-as-move via PUT
- Board, calendar, files and filtered list views
"""

from __future__ import annotations

import inspect

import pytest
from fastapi.routing import APIRoute
from httpx import ASGITransport, AsyncClient

from taskflow_server.main import create_app

BASE = "/api/v1/tasks"


async def _create(client: AsyncClient, **fields) -> dict:
    response = await client.post(BASE, json=fields)
    assert response.status_code == 201, response.text
    return response.json()


def _error_code(response) -> str:
    return response.json()["error"]["code"]


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_and_get(client: AsyncClient):
    created = await _create(client, title="Write docs", priority="high", due_date="2025-02-03")
    assert created["status"] == "todo"
    assert created["order"] == 0
    assert created["version"] == 1

    response = await client.get(f"{BASE}/{created['id']}")
    assert response.status_code == 200
    assert response.json() == created


@pytest.mark.asyncio
async def test_create_without_title_is_400(client: AsyncClient):
    response = await client.post(BASE, json={"description": "nothing else"})
    assert response.status_code == 400
    assert _error_code(response) == "VALIDATION_FAILED"


@pytest.mark.asyncio
async def test_create_with_empty_title_is_400(client: AsyncClient):
    response = await client.post(BASE, json={"title": "  "})
    assert response.status_code == 400
    assert response.json()["error"]["status"] == 400


@pytest.mark.asyncio
async def test_get_unknown_is_404(client: AsyncClient):
    response = await client.get(f"{BASE}/nope")
    assert response.status_code == 404
    assert _error_code(response) == "TASK_NOT_FOUND"


@pytest.mark.asyncio
async def test_list_all(client: AsyncClient):
    await _create(client, title="b", status="done")
    await _create(client, title="a")
    response = await client.get(BASE)
    assert response.status_code == 200
    assert [t["title"] for t in response.json()] == ["a", "b"]


@pytest.mark.asyncio
async def test_put_updates(client: AsyncClient):
    task = await _create(client, title="old")
    response = await client.put(f"{BASE}/{task['id']}", json={"title": "new", "category": "Work"})
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "new"
    assert body["category"] == "Work"
    assert body["version"] == 2


@pytest.mark.asyncio
async def test_patch_is_accepted(client: AsyncClient):
    task = await _create(client, title="old")
    response = await client.patch(f"{BASE}/{task['id']}", json={"description": "d"})
    assert response.status_code == 200
    assert response.json()["description"] == "d"


@pytest.mark.asyncio
async def test_put_unknown_is_404(client: AsyncClient):
    response = await client.put(f"{BASE}/nope", json={"title": "x"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_put_empty_title_is_400_and_unchanged(client: AsyncClient):
    task = await _create(client, title="keep")
    response = await client.put(f"{BASE}/{task['id']}", json={"title": ""})
    assert response.status_code == 400
    assert (await client.get(f"{BASE}/{task['id']}")).json()["title"] == "keep"


@pytest.mark.asyncio
async def test_put_status_change_rebalances_columns(client: AsyncClient):
    a = await _create(client, title="A")
    b = await _create(client, title="B")
    response = await client.put(f"{BASE}/{a['id']}", json={"status": "inprogress"})
    assert response.json()["order"] == 0
    assert (await client.get(f"{BASE}/{b['id']}")).json()["order"] == 0


@pytest.mark.asyncio
async def test_stale_version_is_409(client: AsyncClient):
    task = await _create(client, title="t")
    await client.put(f"{BASE}/{task['id']}", json={"title": "t2"})
    response = await client.put(f"{BASE}/{task['id']}", json={"title": "t3", "expected_version": 1})
    assert response.status_code == 409
    assert _error_code(response) == "VERSION_CONFLICT"

    response = await client.delete(f"{BASE}/{task['id']}", params={"expected_version": 1})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete(client: AsyncClient):
    a = await _create(client, title="A")
    b = await _create(client, title="B")
    response = await client.delete(f"{BASE}/{a['id']}")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "id": a["id"]}
    assert (await client.get(f"{BASE}/{a['id']}")).status_code == 404
    assert (await client.get(f"{BASE}/{b['id']}")).json()["order"] == 0


@pytest.mark.asyncio
async def test_delete_unknown_is_404(client: AsyncClient):
    response = await client.delete(f"{BASE}/nope")
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Move
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_move_clamps_and_reorders(client: AsyncClient):
    await _create(client, title="d1", status="done")
    await _create(client, title="d2", status="done")
    task = await _create(client, title="x")

    response = await client.post(f"{BASE}/{task['id']}/move", json={"to_status": "done", "order": 999})
    assert response.status_code == 200
    assert response.json()["order"] == 2

    response = await client.post(f"{BASE}/{task['id']}/move", json={"to_status": "done", "order": 0})
    assert response.json()["order"] == 0
    board = (await client.get(f"{BASE}/board")).json()
    done = next(col for col in board if col["status"] == "done")
    assert [t["title"] for t in done["tasks"]] == ["x", "d1", "d2"]
    assert [t["order"] for t in done["tasks"]] == [0, 1, 2]


@pytest.mark.asyncio
async def test_move_negative_order_is_400(client: AsyncClient):
    task = await _create(client, title="x")
    response = await client.post(f"{BASE}/{task['id']}/move", json={"to_status": "done", "order": -1})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_move_unknown_status_is_400(client: AsyncClient):
    task = await _create(client, title="x")
    response = await client.post(f"{BASE}/{task['id']}/move", json={"to_status": "blocked", "order": 0})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_move_unknown_task_is_404(client: AsyncClient):
    response = await client.post(f"{BASE}/nope/move", json={"to_status": "done", "order": 0})
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_board_has_every_column(client: AsyncClient):
    response = await client.get(f"{BASE}/board")
    assert response.status_code == 200
    assert [col["status"] for col in response.json()] == ["todo", "inprogress", "done"]


@pytest.mark.asyncio
async def test_filtered_sorted_list(client: AsyncClient):
    await _create(client, title="Beta", priority="high")
    await _create(client, title="alpha", priority="low", category="Work")
    await _create(client, title="Gamma", priority="high", status="done")

    response = await client.get(BASE, params={"priority": "high", "sort": "title", "direction": "descending"})
    assert [t["title"] for t in response.json()] == ["Gamma", "Beta"]

    response = await client.get(BASE, params=[("status", "todo"), ("status", "done"), ("q", "work")])
    assert [t["title"] for t in response.json()] == ["alpha"]


@pytest.mark.asyncio
async def test_list_unknown_sort_is_400(client: AsyncClient):
    response = await client.get(BASE, params={"sort": "colour"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_calendar(client: AsyncClient):
    await _create(client, title="later", due_date="2025-03-02")
    await _create(client, title="sooner", due_date="2025-03-01")
    await _create(client, title="undated")

    days = (await client.get(f"{BASE}/calendar")).json()
    assert [d["day"] for d in days] == ["2025-03-01", "2025-03-02"]

    days = (await client.get(f"{BASE}/calendar", params={"start": "2025-03-02"})).json()
    assert [[t["title"] for t in d["tasks"]] for d in days] == [["later"]]


@pytest.mark.asyncio
async def test_files(client: AsyncClient):
    attachment = {"id": "f1", "name": "spec.pdf", "url": "#", "size": 100, "type": "application/pdf"}
    task = await _create(client, title="with file", files=[attachment])
    response = await client.get(f"{BASE}/files")
    assert response.json() == [{"task_id": task["id"], "task_title": "with file", "file": attachment}]


# ---------------------------------------------------------------------------
# Error mapping and request context
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unexpected_error_is_500(store, settings, monkeypatch):
    def boom(task_id):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(store, "get_by_id", boom)
    app = create_app(store=store, settings=settings)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get(f"{BASE}/anything")
    assert response.status_code == 500
    assert _error_code(response) == "INTERNAL_ERROR"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get(BASE, headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    response = await client.get(BASE)
    assert response.headers["X-Request-ID"]


def test_task_handlers_run_in_threadpool(settings, store):
    app = create_app(store=store, settings=settings)
    endpoints = [
        route.endpoint
        for route in app.routes
        if isinstance(route, APIRoute) and route.path.startswith(BASE)
    ]
    assert endpoints
    assert not any(inspect.iscoroutinefunction(endpoint) for endpoint in endpoints)
