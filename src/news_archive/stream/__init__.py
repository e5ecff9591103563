"""Streaming news ingestion with a durable event buffer."""

from news_archive.stream.buffer import (
    BufferBackend,
    BufferSetupError,
    MemoryBackend,
    SQLiteBackend,
    StreamBuffer,
    StreamBufferError,
    default_disk_path,
)
from news_archive.stream.ingestor import (
    HandlerError,
    IngestorState,
    MessageHandler,
    ServerError,
    StreamConnectError,
    StreamDecodeError,
    StreamError,
    StreamIngestor,
    StreamReadError,
)
from news_archive.stream.reconnect import run_with_reconnect

__all__ = [
    "BufferBackend",
    "BufferSetupError",
    "HandlerError",
    "IngestorState",
    "MemoryBackend",
    "MessageHandler",
    "SQLiteBackend",
    "ServerError",
    "StreamBuffer",
    "StreamBufferError",
    "StreamConnectError",
    "StreamDecodeError",
    "StreamError",
    "StreamIngestor",
    "StreamReadError",
    "default_disk_path",
    "run_with_reconnect",
]
