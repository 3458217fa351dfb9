from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test-import.db")
os.environ.setdefault("BASIC_AUTH_USERNAME", "test-user")
os.environ.setdefault("BASIC_AUTH_PASSWORD", "test-pass")

from app.core.db import get_session  # noqa: E402
from app.main import create_app  # noqa: E402


AUTH = ("test-user", "test-pass")


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app()

    async def _session_override():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.mark.asyncio
async def test_requires_basic_auth(client) -> None:
    resp = await client.get("/api/v1/catalog-items")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"].startswith("Basic")

    resp = await client.get("/api/v1/catalog-items", auth=("test-user", "wrong"))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_relocates_assets(client, settings, stage_upload) -> None:
    resp = await client.post(
        "/api/v1/catalog-items",
        auth=AUTH,
        json={
            "title": "Slack digest",
            "status": "PUBLISHED",
            "cover": stage_upload("tmp/cover.png", b"c"),
            "gallery": ["https://example.com/shot.png"],
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["code"] == 1
    assert body["cover"] == "/uploads/items/1/images/cover.png"
    assert body["gallery"] == ["https://example.com/shot.png"]
    assert body["published_at"] is not None
    assert (settings.items_dir / "1" / "images" / "cover.png").exists()

    resp = await client.get(f"/api/v1/catalog-items/{body['id']}", auth=AUTH)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Slack digest"


@pytest.mark.asyncio
async def test_create_rejects_archived_status(client, settings) -> None:
    resp = await client.post("/api/v1/catalog-items", auth=AUTH, json={"title": "x", "status": "ARCHIVED"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_patch_sweeps_replaced_files(client, settings, stage_upload) -> None:
    created = (
        await client.post(
            "/api/v1/catalog-items",
            auth=AUTH,
            json={"title": "Sheets export", "attachments": [stage_upload("tmp/v1.json", b"1")]},
        )
    ).json()

    resp = await client.patch(
        f"/api/v1/catalog-items/{created['id']}",
        auth=AUTH,
        json={"attachments": [stage_upload("tmp/v2.json", b"2")]},
    )
    assert resp.status_code == 200
    assert resp.json()["attachments"] == ["/uploads/items/1/files/v2.json"]
    assert sorted(p.name for p in (settings.items_dir / "1" / "files").iterdir()) == ["v2.json"]


@pytest.mark.asyncio
async def test_unknown_item_returns_404(client, settings) -> None:
    missing = uuid.uuid4()

    assert (await client.get(f"/api/v1/catalog-items/{missing}", auth=AUTH)).status_code == 404
    assert (await client.patch(f"/api/v1/catalog-items/{missing}", auth=AUTH, json={"title": "x"})).status_code == 404
    assert (await client.post(f"/api/v1/catalog-items/{missing}/duplicate", auth=AUTH)).status_code == 404
    assert (await client.delete(f"/api/v1/catalog-items/{missing}", auth=AUTH)).status_code == 404


@pytest.mark.asyncio
async def test_duplicate_then_delete(client, settings, stage_upload) -> None:
    created = (
        await client.post(
            "/api/v1/catalog-items",
            auth=AUTH,
            json={"title": "Invoice OCR", "cover": stage_upload("tmp/c.png", b"c")},
        )
    ).json()

    resp = await client.post(f"/api/v1/catalog-items/{created['id']}/duplicate", auth=AUTH)
    assert resp.status_code == 201
    copy = resp.json()
    assert copy["code"] == 2
    assert copy["title"] == "Invoice OCR (copy)"
    assert copy["cover"] == "/uploads/items/2/images/c.png"

    resp = await client.delete(f"/api/v1/catalog-items/{created['id']}", auth=AUTH)
    assert resp.status_code == 204
    assert not (settings.items_dir / "1").exists()
    assert (settings.items_dir / "2" / "images" / "c.png").exists()

    resp = await client.post(f"/api/v1/catalog-items/{created['id']}/duplicate", auth=AUTH)
    assert resp.status_code == 409

    live = (await client.get("/api/v1/catalog-items", auth=AUTH)).json()
    assert [i["id"] for i in live] == [copy["id"]]

    everything = (await client.get("/api/v1/catalog-items", params={"include_archived": "true"}, auth=AUTH)).json()
    archived = next(i for i in everything if i["id"] == created["id"])
    assert archived["status"] == "ARCHIVED"
    assert archived["code"] is None


@pytest.mark.asyncio
async def test_patch_status_on_archived_item_conflicts(client, settings) -> None:
    created = (await client.post("/api/v1/catalog-items", auth=AUTH, json={"title": "Retired"})).json()
    assert (await client.delete(f"/api/v1/catalog-items/{created['id']}", auth=AUTH)).status_code == 204

    resp = await client.patch(f"/api/v1/catalog-items/{created['id']}", auth=AUTH, json={"status": "PUBLISHED"})

    assert resp.status_code == 409
    archived = (await client.get(f"/api/v1/catalog-items/{created['id']}", auth=AUTH)).json()
    assert archived["status"] == "ARCHIVED"
    assert archived["code"] is None
