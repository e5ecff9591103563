"""Tests for reconnect-with-backoff around the stream ingestor."""

import asyncio

import pytest

from news_archive.stream import reconnect
from news_archive.stream.ingestor import (
    HandlerError,
    ServerError,
    StreamConnectError,
    StreamDecodeError,
    StreamReadError,
)
from news_archive.stream.reconnect import run_with_reconnect


class ScriptedIngestor:
    """Ingestor stand-in replaying a script of sessions.

    Each step is ``(messages, error)``: the session receives ``messages``
    frames and then raises ``error``, or returns cleanly when it is None.
    """

    def __init__(self, script: list[tuple[int, BaseException | None]]) -> None:
        self.script = list(script)
        self.messages_received = 0
        self.runs = 0

    async def run(self, stop: asyncio.Event | None = None) -> None:
        self.runs += 1
        messages, error = self.script.pop(0)
        self.messages_received += messages
        if error is not None:
            raise error


class FailingIngestor:
    """Ingestor whose every session fails to connect."""

    def __init__(self) -> None:
        self.messages_received = 0
        self.runs = 0

    async def run(self, stop: asyncio.Event | None = None) -> None:
        self.runs += 1
        raise StreamConnectError("websocket dial error: refused")


@pytest.fixture
def recorded_delays(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace the backoff sleep with one that records delays."""
    delays: list[float] = []

    async def fake_sleep(seconds: float, stop: asyncio.Event) -> bool:
        delays.append(seconds)
        return stop.is_set()

    monkeypatch.setattr(reconnect, "_sleep_or_stop", fake_sleep)
    return delays


class TestRunWithReconnect:
    """Tests for run_with_reconnect."""

    @pytest.mark.asyncio
    async def test_clean_session_needs_no_reconnect(self) -> None:
        """Test that a session ending by stop returns immediately."""
        ingestor = ScriptedIngestor([(3, None)])
        assert await run_with_reconnect(ingestor, asyncio.Event()) == 0  # type: ignore[arg-type]
        assert ingestor.runs == 1

    @pytest.mark.asyncio
    async def test_retries_connection_failures(self, recorded_delays: list[float]) -> None:
        """Test that retryable errors lead to new sessions."""
        ingestor = ScriptedIngestor(
            [
                (0, ServerError(429, "too many connections")),
                (0, StreamConnectError("refused")),
                (0, None),
            ]
        )

        reconnects = await run_with_reconnect(ingestor, asyncio.Event())  # type: ignore[arg-type]

        assert reconnects == 2
        assert ingestor.runs == 3
        assert recorded_delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_backoff_resets_after_healthy_session(self, recorded_delays: list[float]) -> None:
        """Test that a session that received messages resets the backoff."""
        ingestor = ScriptedIngestor(
            [
                (0, StreamReadError("dropped")),
                (0, StreamReadError("dropped")),
                (5, StreamReadError("dropped")),
                (0, None),
            ]
        )

        await run_with_reconnect(ingestor, asyncio.Event())  # type: ignore[arg-type]

        assert recorded_delays == [1.0, 2.0, 1.0]

    @pytest.mark.asyncio
    async def test_backoff_is_capped(self, recorded_delays: list[float]) -> None:
        """Test that the delay never exceeds max_backoff."""
        ingestor = ScriptedIngestor([(0, StreamConnectError("refused"))] * 4 + [(0, None)])

        await run_with_reconnect(
            ingestor,  # type: ignore[arg-type]
            asyncio.Event(),
            initial_backoff=1.0,
            max_backoff=3.0,
        )

        assert recorded_delays == [1.0, 2.0, 3.0, 3.0]

    @pytest.mark.asyncio
    async def test_max_attempts(self, recorded_delays: list[float]) -> None:
        """Test that the last error is raised after max_attempts failures."""
        ingestor = FailingIngestor()

        with pytest.raises(StreamConnectError):
            await run_with_reconnect(
                ingestor,  # type: ignore[arg-type]
                asyncio.Event(),
                max_attempts=3,
            )

        assert ingestor.runs == 3
        assert len(recorded_delays) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [HandlerError("handle message error"), StreamDecodeError("decode error")],
    )
    async def test_non_connection_errors_propagate(self, error: Exception) -> None:
        """Test that handler and decode errors are not retried."""
        ingestor = ScriptedIngestor([(1, error), (0, None)])

        with pytest.raises(type(error)):
            await run_with_reconnect(ingestor, asyncio.Event())  # type: ignore[arg-type]

        assert ingestor.runs == 1

    @pytest.mark.asyncio
    async def test_stop_during_backoff(self) -> None:
        """Test that setting stop interrupts the backoff wait."""
        stop = asyncio.Event()
        ingestor = FailingIngestor()
        asyncio.get_running_loop().call_later(0.05, stop.set)

        reconnects = await asyncio.wait_for(
            run_with_reconnect(ingestor, stop, initial_backoff=30.0),  # type: ignore[arg-type]
            timeout=5,
        )

        assert reconnects == 0
        assert ingestor.runs == 1

    @pytest.mark.asyncio
    async def test_stop_before_start(self) -> None:
        """Test that a pre-set stop runs no session."""
        stop = asyncio.Event()
        stop.set()
        ingestor = ScriptedIngestor([(0, None)])

        assert await run_with_reconnect(ingestor, stop) == 0  # type: ignore[arg-type]
        assert ingestor.runs == 0
