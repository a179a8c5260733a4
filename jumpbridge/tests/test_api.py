"""Tests for the daemon's HTTP API."""

import pytest
from aiohttp.test_utils import TestClient, TestServer

from jumpbridge.daemon.api import create_api_app, parse_editor_event
from jumpbridge.daemon.config import Config, TrackingConfig
from jumpbridge.daemon.main import BridgeDaemon
from jumpbridge.daemon.store import ProcessResult
from jumpbridge.tests.fakes import FakeRunner


def make_daemon(runner):
    config = Config(tracking=TrackingConfig(debounce_ms=10_000))
    return BridgeDaemon(config, runner=runner, serve_http=False)


class TestParseEditorEvent:

    def test_will_save_defaults_to_manual(self):
        event = parse_editor_event(
            {"type": "document.will_save", "path": "/a", "scheme": "file"}
        )
        assert event.data == {"path": "/a", "scheme": "file", "reason": "manual"}

    @pytest.mark.parametrize("body", [
        [],
        {"type": "document.closed", "path": "/a"},
        {"type": "document.opened"},
        {"type": "document.opened", "path": "", "scheme": "file"},
        {"type": "document.opened", "path": "/a"},
        {"type": "document.opened", "path": "/a", "scheme": ""},
        {"type": "document.will_save", "path": "/a", "scheme": "file", "reason": "sometimes"},
    ])
    def test_rejects_malformed(self, body):
        with pytest.raises(ValueError):
            parse_editor_event(body)


@pytest.mark.asyncio
async def test_events_become_updates(tmp_path):
    runner = FakeRunner()
    daemon = make_daemon(runner)
    await daemon.start(workspace_folders=[tmp_path])

    async with TestClient(TestServer(create_api_app(daemon))) as client:
        resp = await client.post("/events", json={
            "type": "document.opened", "path": "/home/u/a.txt", "scheme": "file"
        })
        assert resp.status == 202

        resp = await client.post("/events", json={
            "type": "document.will_save", "path": "/home/u/a.txt", "scheme": "file",
            "reason": "auto"
        })
        assert resp.status == 202

        resp = await client.post("/events", json={
            "type": "editor.active_changed", "path": "/home/u/b.txt", "scheme": "file"
        })
        assert resp.status == 202

        await daemon.event_bus.drain()

    await daemon.stop()

    assert [(c[2], c[4], c[5]) for c in runner.updates] == [
        ("--type=directories", "1.0", str(tmp_path)),
        ("--type=files", "1.0", "/home/u/a.txt"),
        ("--type=files", "0.3", "/home/u/a.txt"),
        # flushed on shutdown
        ("--type=files", "0.2", "/home/u/b.txt"),
    ]


@pytest.mark.asyncio
async def test_invalid_event_rejected():
    daemon = make_daemon(FakeRunner())

    async with TestClient(TestServer(create_api_app(daemon))) as client:
        resp = await client.post("/events", data="not json",
                                 headers={"Content-Type": "application/json"})
        assert resp.status == 400

        resp = await client.post("/events", json={"type": "nope", "path": "/a", "scheme": "file"})
        assert resp.status == 400
        body = await resp.json()
        assert body["error"]["code"] == "invalid_request"


@pytest.mark.asyncio
async def test_find_keeps_engine_order():
    runner = FakeRunner(respond=lambda args: ProcessResult(0, "/z\n/a\n/m\n"))
    daemon = make_daemon(runner)

    async with TestClient(TestServer(create_api_app(daemon))) as client:
        resp = await client.get("/find", params={"type": "directories", "q": "proj"})
        assert resp.status == 200
        body = await resp.json()

        resp = await client.get("/find", params={"type": "symlinks"})
        assert resp.status == 400

    assert body == {"query": "proj", "type": "directories", "results": ["/z", "/a", "/m"]}
    assert runner.finds[0][2] == "--type=directories"


@pytest.mark.asyncio
async def test_find_failure_is_empty():
    daemon = make_daemon(FakeRunner(returncode=1))

    async with TestClient(TestServer(create_api_app(daemon))) as client:
        resp = await client.get("/find", params={"q": "x"})
        body = await resp.json()

    assert resp.status == 200
    assert body["results"] == []


@pytest.mark.asyncio
async def test_status_and_shutdown():
    daemon = make_daemon(FakeRunner())

    async with TestClient(TestServer(create_api_app(daemon))) as client:
        resp = await client.get("/status")
        status = await resp.json()

        resp = await client.post("/shutdown")
        assert resp.status == 200

    assert status["status"] == "running"
    assert status["weights"]["auto_save"] == 0.3
    assert "memory_mb" in status["stats"]

    await daemon.wait_for_shutdown()


@pytest.mark.asyncio
async def test_find_with_unencodable_query_is_empty():
    daemon = make_daemon(FakeRunner(error=ValueError("embedded null byte")))

    async with TestClient(TestServer(create_api_app(daemon))) as client:
        resp = await client.get("/find", params={"q": "a\x00b"})
        body = await resp.json()

    assert resp.status == 200
    assert body["results"] == []


@pytest.mark.asyncio
async def test_event_without_scheme_is_not_tracked():
    runner = FakeRunner()
    daemon = make_daemon(runner)
    await daemon.start()

    async with TestClient(TestServer(create_api_app(daemon))) as client:
        resp = await client.post("/events", json={
            "type": "document.opened", "path": "/home/u/a.txt"
        })
        assert resp.status == 400

        resp = await client.post("/events", json={
            "type": "document.opened", "path": "/home/u/a.txt", "scheme": "git"
        })
        assert resp.status == 202

        await daemon.event_bus.drain()

    await daemon.stop()

    assert runner.updates == []
