"""Wiring for the export and stream pipelines.

Builds clients, exporters and ingestors from a Config and runs them.
"""

import asyncio
import logging
import signal
from datetime import date

import httpx

from news_archive.api.auth import ApiAuth
from news_archive.api.http import NewsHTTPClient
from news_archive.api.params import SortOption
from news_archive.api.rest import NewsRestClient
from news_archive.config import Config
from news_archive.export.day import DayExporter
from news_archive.export.scheduler import RangeScheduler, YearResult
from news_archive.models.stream import StreamEvent
from news_archive.stream.buffer import StreamBuffer
from news_archive.stream.ingestor import MessageHandler, StreamIngestor
from news_archive.stream.reconnect import run_with_reconnect

logger = logging.getLogger(__name__)


async def export_range(
    config: Config,
    auth: ApiAuth,
    transport: httpx.AsyncBaseTransport | None = None,
    today: date | None = None,
) -> list[YearResult]:
    """Export every pending day in the configured year range.

    Args:
        config: Application configuration.
        auth: API credentials.
        transport: Optional httpx transport, mainly for tests.
        today: Override for the current date.

    Returns:
        One YearResult per year.
    """
    export_cfg = config.export

    async with NewsHTTPClient(
        auth=auth,
        timeout=config.api.timeout,
        base_url=config.api.base_url,
        transport=transport,
    ) as http_client:
        exporter = DayExporter(
            NewsRestClient(http_client),
            root=export_cfg.root,
            page_size=export_cfg.page_size,
            max_pages=export_cfg.max_pages,
            sort=SortOption(field=export_cfg.sort_field, direction=export_cfg.sort_direction),
            display_output=export_cfg.display_output,
        )
        scheduler = RangeScheduler(
            exporter,
            start_year=export_cfg.start_year,
            end_year=export_cfg.resolved_end_year(),
            today=today,
        )
        results = await scheduler.run()

    logger.info("Export made %d API requests", http_client.requests_made)
    return results


def build_stream_url(config: Config, auth: ApiAuth) -> str:
    """Stream URL with the token query parameter attached."""
    url = httpx.URL(config.stream.url)
    return str(url.copy_merge_params({"token": auth.token}))


def open_buffer(config: Config) -> StreamBuffer:
    """Open the stream buffer backends selected in config.

    Raises:
        BufferSetupError: If the disk backend cannot be opened.
    """
    buffer_cfg = config.stream.buffer
    return StreamBuffer(
        use_memory=buffer_cfg.use_memory,
        use_disk=buffer_cfg.use_disk,
        disk_path=buffer_cfg.disk_path,
        lock_timeout=buffer_cfg.lock_timeout,
        prune_disk_on_remove=buffer_cfg.prune_disk_on_remove,
    )


class LoggingHandler:
    """Handler that logs each event; used by the ``stream`` command."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.log = logger or logging.getLogger(__name__)
        self.handled = 0

    def handle(self, event: StreamEvent) -> None:
        title = event.data.content.title if event.data.content else ""
        self.log.info("Event %d %s: %s", event.id, event.data.action, title)
        self.handled += 1


async def stream_news(
    config: Config,
    auth: ApiAuth,
    handler: MessageHandler,
    stop: asyncio.Event | None = None,
) -> None:
    """Stream events until SIGINT/SIGTERM or ``stop``.

    With ``replay_on_start``, events left in the buffer by a previous session
    are handled first. Reconnects with backoff when enabled in config.

    Raises:
        BufferSetupError: If the disk buffer cannot be opened.
        StreamError: On an unrecoverable stream failure.
    """
    if stop is None:
        stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    stream_cfg = config.stream
    try:
        with open_buffer(config) as buffer:
            ingestor = StreamIngestor(
                build_stream_url(config, auth),
                handler,
                buffer=buffer,
                max_message_size=stream_cfg.max_message_size,
                auto_clear=stream_cfg.buffer.auto_clear,
            )
            if stream_cfg.buffer.replay_on_start:
                await ingestor.replay()

            if stream_cfg.reconnect.enabled:
                await run_with_reconnect(
                    ingestor,
                    stop,
                    initial_backoff=stream_cfg.reconnect.initial_backoff,
                    max_backoff=stream_cfg.reconnect.max_backoff,
                )
            else:
                await ingestor.run(stop)
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
