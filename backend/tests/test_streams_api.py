"""Tests for the stream session and clip endpoints."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.config import Settings
from app.main import create_app
from fakes import FakeEncoder, FakeMediaSource


@pytest.fixture
def app(settings: Settings, media_source: FakeMediaSource, encoder: FakeEncoder):
    return create_app(settings, media_source=media_source, encoder=encoder)


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.anyio
async def test_start_info_and_end_stream(app) -> None:
    async with _client(app) as client:
        started = await client.post("/api/stream/c1/start")
        info = await client.get("/api/stream/c1/info")
        ended = await client.post("/api/stream/c1/end")
    assert started.status_code == 200
    assert started.json()["success"] is True
    assert info.status_code == 200
    body = info.json()
    assert body["channel_id"] == "c1"
    assert body["current_category"] == "Stream"
    assert body["clips_count"] == 0
    assert ended.json() == {"success": True}


@pytest.mark.anyio
async def test_unknown_stream_returns_404(app) -> None:
    async with _client(app) as client:
        info = await client.get("/api/stream/nope/info")
        ended = await client.post("/api/stream/nope/end")
    assert info.status_code == 404
    assert info.json() == {"error": "not_found", "detail": "Stream not found"}
    assert ended.status_code == 404


@pytest.mark.anyio
async def test_create_and_list_clips(app) -> None:
    start = datetime.now(timezone.utc) - timedelta(minutes=5)
    async with _client(app) as client:
        await client.post("/api/stream/c1/start")
        created = await client.post(
            "/api/stream/c1/clip",
            json={
                "category": "Chess",
                "title": "Opening",
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(seconds=30)).isoformat(),
            },
        )
        listed = await client.get("/api/stream/c1/clips")
        info = await client.get("/api/stream/c1/info")

    assert created.status_code == 200
    clip = created.json()["clip"]
    assert clip["title"] == "Opening"
    assert clip["processed"] is False
    assert [c["id"] for c in listed.json()] == [clip["id"]]
    assert info.json()["clips_count"] == 1


@pytest.mark.anyio
async def test_naive_timestamps_are_treated_as_utc(app) -> None:
    async with _client(app) as client:
        created = await client.post(
            "/api/stream/c1/clip",
            json={
                "category": "Chess",
                "title": "Naive",
                "start_time": "2026-10-18T10:00:00",
                "end_time": "2026-10-18T10:00:30",
            },
        )
    assert created.status_code == 200
    assert created.json()["clip"]["start_time"].startswith("2026-10-18T10:00:00")
    assert created.json()["clip"]["start_time"].endswith("Z")


@pytest.mark.anyio
async def test_create_clip_with_inverted_bounds_is_400(app) -> None:
    start = datetime.now(timezone.utc)
    async with _client(app) as client:
        response = await client.post(
            "/api/stream/c1/clip",
            json={
                "category": "Chess",
                "title": "Backwards",
                "start_time": start.isoformat(),
                "end_time": (start - timedelta(seconds=1)).isoformat(),
            },
        )
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.anyio
async def test_list_clips_for_unknown_channel_is_empty(app) -> None:
    async with _client(app) as client:
        response = await client.get("/api/stream/none/clips")
    assert response.status_code == 200
    assert response.json() == []
