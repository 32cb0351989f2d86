"""Tests for the JSON scan API."""

from __future__ import annotations

import pytest

from linkguardian.config import Config
from linkguardian.scanner.pipeline import LinkScanner
from linkguardian.server.app import create_app


@pytest.fixture
def scanner(fixed_clock):
    return LinkScanner(clock=fixed_clock)


@pytest.fixture
def app(scanner, tmp_path):
    return create_app(scanner, Config(config_dir=tmp_path, bulk_check_limit=2))


@pytest.mark.asyncio
async def test_check_link_returns_verdict(app):
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(app)) as client:
        resp = await client.post("/api/v1/check-link", json={"input": "http://192.168.1.1/login"})
        assert resp.status == 200
        assert resp.headers["Access-Control-Allow-Origin"] == "*"
        data = await resp.json()
        assert data["url"] == "http://192.168.1.1/login"
        assert data["type"] == "link"
        assert data["warningLevel"] == "danger"
        assert data["isSafe"] is False
        assert data["heuristicRiskLevel"] == "high"
        assert data["degraded"] is True
        assert data["factors"]
        assert data["timestamp"] == "2025-01-01T12:00:00"


@pytest.mark.asyncio
async def test_check_link_email(app):
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(app)) as client:
        resp = await client.post("/api/v1/check-link", json={"input": "user@example.com"})
        data = await resp.json()
        assert data["type"] == "email"


@pytest.mark.asyncio
async def test_check_link_rejects_invalid_json(app):
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(app)) as client:
        resp = await client.post(
            "/api/v1/check-link", data="not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status == 400
        assert (await resp.json())["error"] == "Invalid JSON payload"
        assert resp.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
async def test_check_link_requires_input(app):
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(app)) as client:
        for payload in ({}, {"input": "   "}, {"input": 42}, ["http://example.com"]):
            resp = await client.post("/api/v1/check-link", json=payload)
            assert resp.status == 400


@pytest.mark.asyncio
async def test_check_link_failure_returns_fallback(app, scanner, monkeypatch):
    async def broken(raw):
        raise RuntimeError("boom")

    monkeypatch.setattr(scanner, "score_target", broken)

    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(app)) as client:
        resp = await client.post("/api/v1/check-link", json={"input": "example.com"})
        assert resp.status == 500
        data = await resp.json()
        assert data["isSafe"] is False
        assert data["warningLevel"] == "warning"


@pytest.mark.asyncio
async def test_bulk_check_is_capped(app):
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(app)) as client:
        resp = await client.post(
            "/api/v1/bulk-check", json={"input": "a.com\nb.com\nc.com"}
        )
        assert resp.status == 200
        data = await resp.json()
        assert data["count"] == 2
        assert [r["url"] for r in data["results"]] == ["a.com", "b.com"]


@pytest.mark.asyncio
async def test_preflight(app):
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(app)) as client:
        resp = await client.options("/api/v1/check-link")
        assert resp.status == 204
        assert "POST" in resp.headers["Access-Control-Allow-Methods"]


@pytest.mark.asyncio
async def test_healthz_reports_cache_size(app):
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(app)) as client:
        await client.post("/api/v1/check-link", json={"input": "example.com"})
        resp = await client.get("/healthz")
        assert resp.status == 200
        data = await resp.json()
        assert data["status"] == "ok"
        assert data["cache_entries"] == 1
        assert data["signal_sources"] == []


@pytest.mark.asyncio
async def test_bulk_check_accepts_long_paste(scanner, tmp_path):
    from aiohttp.test_utils import TestClient, TestServer

    app = create_app(scanner, Config(config_dir=tmp_path))
    urls = [f"https://shop-{i:02d}.example.com/account/orders/{i:04d}?ref=newsletter" for i in range(40)]
    assert len("\n".join(urls)) > 2048

    async with TestClient(TestServer(app)) as client:
        resp = await client.post("/api/v1/bulk-check", json={"input": "\n".join(urls)})
        assert resp.status == 200
        data = await resp.json()
        assert data["count"] == 40


@pytest.mark.asyncio
async def test_single_check_rejects_oversized_input(app):
    from aiohttp.test_utils import TestClient, TestServer

    async with TestClient(TestServer(app)) as client:
        resp = await client.post(
            "/api/v1/check-link", json={"input": "https://example.com/" + "a" * 2100}
        )
        assert resp.status == 400
        assert (await resp.json())["error"] == "input is too long"
