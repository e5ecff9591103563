"""End-to-end tests for the export and stream pipelines."""

import asyncio
import json
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any

import httpx
import pytest
from websockets.asyncio.server import ServerConnection, serve

from news_archive.api.auth import ApiAuth
from news_archive.config import Config
from news_archive.export.writer import GzipJSONLWriter
from news_archive.models.stream import StreamEvent
from news_archive.pipeline import LoggingHandler, build_stream_url, export_range, stream_news
from news_archive.stream.buffer import StreamBuffer


@pytest.fixture
def auth() -> ApiAuth:
    """API credentials for tests."""
    return ApiAuth(token="test-token")


def stream_message(event_id: int) -> str:
    return json.dumps(
        {
            "api_version": "websocket/v1",
            "kind": "News/v1",
            "data": {"action": "Created", "id": event_id, "content": {"title": f"S{event_id}"}},
        }
    )


class TestExportRange:
    """Tests for export_range over a mocked REST API."""

    @pytest.mark.asyncio
    async def test_export_writes_artifacts(
        self,
        tmp_path: Path,
        auth: ApiAuth,
        story_payload: Callable[..., dict[str, Any]],
    ) -> None:
        """Test a small export against a mocked API."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.params["date"] == "2011-01-02":
                return httpx.Response(200, json=[story_payload(1), story_payload(2)])
            return httpx.Response(200, json=[])

        config = Config.model_validate(
            {"export": {"root": str(tmp_path), "start_year": 2011, "end_year": 2011}}
        )

        results = await export_range(
            config, auth, transport=httpx.MockTransport(handler), today=date(2011, 1, 4)
        )

        assert len(results) == 1
        assert results[0].ok
        assert results[0].exported == 1
        assert results[0].empty == 2
        assert len(requests) == 3
        assert all(r.url.params["token"] == "test-token" for r in requests)
        assert all(r.url.params["sort"] == "created:asc" for r in requests)

        artifact = tmp_path / "2011" / "January" / "2011_01_02.json.gz"
        assert [r["id"] for r in GzipJSONLWriter.read_records(artifact)] == [1, 2]

    @pytest.mark.asyncio
    async def test_export_reports_failed_year(self, tmp_path: Path, auth: ApiAuth) -> None:
        """Test that an API error is recorded on the year result."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        config = Config.model_validate(
            {"export": {"root": str(tmp_path), "start_year": 2011, "end_year": 2011}}
        )

        results = await export_range(
            config, auth, transport=httpx.MockTransport(handler), today=date(2011, 1, 4)
        )

        assert not results[0].ok
        assert "code: 500" in str(results[0].error)
        assert not any(tmp_path.rglob("*.json.gz"))


class TestBuildStreamUrl:
    """Tests for build_stream_url."""

    def test_token_appended(self, auth: ApiAuth) -> None:
        """Test that the token is added as a query parameter."""
        url = httpx.URL(build_stream_url(Config(), auth))
        assert url.host == "api.benzinga.com"
        assert url.path == "/api/v1/news/stream"
        assert url.params["token"] == "test-token"


class TestStreamNews:
    """Tests for stream_news against a local websocket server."""

    @pytest.mark.asyncio
    async def test_stream_with_replay(self, tmp_path: Path, auth: ApiAuth) -> None:
        """Test replay of buffered events followed by live events, all acknowledged."""
        disk_path = tmp_path / "buffer.db"
        with StreamBuffer(use_disk=True, disk_path=disk_path) as buffer:
            buffer.put(StreamEvent.model_validate_json(stream_message(1)))

        async def send_events(connection: ServerConnection) -> None:
            await connection.send(stream_message(2))
            await connection.send(stream_message(3))
            await connection.wait_closed()

        async with serve(send_events, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            config = Config.model_validate(
                {
                    "stream": {
                        "url": f"ws://127.0.0.1:{port}/stream",
                        "reconnect": {"enabled": False},
                        "buffer": {
                            "use_disk": True,
                            "disk_path": str(disk_path),
                            "auto_clear": True,
                            "replay_on_start": True,
                        },
                    }
                }
            )
            handler = LoggingHandler()
            stop = asyncio.Event()
            task = asyncio.create_task(stream_news(config, auth, handler, stop=stop))

            async def wait_for_events() -> None:
                while handler.handled < 3:
                    await asyncio.sleep(0.01)

            await asyncio.wait_for(wait_for_events(), timeout=5)
            stop.set()
            await asyncio.wait_for(task, timeout=5)

        assert handler.handled == 3
        with StreamBuffer(use_disk=True, disk_path=disk_path) as buffer:
            assert buffer.entries() == []

    @pytest.mark.asyncio
    async def test_stream_with_reconnect_stops_cleanly(self, tmp_path: Path, auth: ApiAuth) -> None:
        """Test the reconnecting path ends when stop is set."""

        async def hold(connection: ServerConnection) -> None:
            await connection.wait_closed()

        async with serve(hold, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            config = Config.model_validate({"stream": {"url": f"ws://127.0.0.1:{port}/stream"}})
            handler = LoggingHandler()
            stop = asyncio.Event()
            asyncio.get_running_loop().call_later(0.1, stop.set)

            await asyncio.wait_for(stream_news(config, auth, handler, stop=stop), timeout=5)

        assert handler.handled == 0
