"""Reconnect-with-backoff around a StreamIngestor.

Connection-level failures (server refusals, dial errors, dropped or oversized
frames) are retried with exponential backoff. Handler and decode errors are
not connection problems and propagate immediately.
"""

import asyncio
import contextlib
import logging

from news_archive.stream.ingestor import (
    ServerError,
    StreamConnectError,
    StreamIngestor,
    StreamReadError,
)

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (ServerError, StreamConnectError, StreamReadError)


async def _sleep_or_stop(seconds: float, stop: asyncio.Event) -> bool:
    """Sleep for ``seconds`` unless ``stop`` is set first.

    Returns:
        True if stop was set during the wait.
    """
    with contextlib.suppress(TimeoutError):
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    return stop.is_set()


async def run_with_reconnect(
    ingestor: StreamIngestor,
    stop: asyncio.Event,
    initial_backoff: float = 1.0,
    max_backoff: float = 60.0,
    max_attempts: int | None = None,
) -> int:
    """Run sessions until ``stop`` is set, reconnecting after failures.

    Args:
        ingestor: Ingestor to (re)run.
        stop: Event that ends the loop cleanly.
        initial_backoff: First delay in seconds after a failure.
        max_backoff: Upper bound on the delay.
        max_attempts: Consecutive failures tolerated before the last error is
            raised. None retries forever.

    Returns:
        Number of reconnect attempts made.

    Raises:
        HandlerError: If the handler rejects an event.
        StreamDecodeError: If a frame cannot be decoded.
        StreamError: When ``max_attempts`` consecutive failures occur.
    """
    backoff = initial_backoff
    failures = 0
    reconnects = 0

    while not stop.is_set():
        received_before = ingestor.messages_received
        try:
            await ingestor.run(stop)
            return reconnects
        except RETRYABLE_ERRORS as e:
            if ingestor.messages_received > received_before:
                # The session was healthy before it dropped
                backoff = initial_backoff
                failures = 0

            failures += 1
            if max_attempts is not None and failures >= max_attempts:
                logger.error("Giving up after %d consecutive stream failures: %s", failures, e)
                raise

            logger.warning(
                "Stream disconnected (%s: %s); reconnecting in %.1fs",
                type(e).__name__,
                e,
                backoff,
            )
            if await _sleep_or_stop(backoff, stop):
                break
            reconnects += 1
            backoff = min(backoff * 2, max_backoff)

    return reconnects
