"""Durable holding area for streamed events.

A StreamBuffer fans each operation out to the backends enabled by
configuration:

- MemoryBackend: insertion-ordered dict, fastest, lost on exit.
- SQLiteBackend: embedded transactional store, survives restarts. Guarded by
  an exclusive file lock so only one process writes to it at a time.

Entries are keyed by the event identifier, so putting the same event twice
leaves a single entry.
"""

import logging
import sqlite3
import tempfile
from pathlib import Path
from typing import Protocol

from filelock import FileLock, Timeout

from news_archive.models.stream import StreamEvent

logger = logging.getLogger(__name__)

DEFAULT_DISK_BUFFER_NAME = "news_stream_buffer.db"
DEFAULT_LOCK_TIMEOUT = 10.0

_SCHEMA = """
CREATE TABLE IF NOT EXISTS news_stream_buffer (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


def default_disk_path() -> Path:
    """Well-known disk buffer location in the system temp directory."""
    return Path(tempfile.gettempdir()) / DEFAULT_DISK_BUFFER_NAME


class StreamBufferError(Exception):
    """Base exception for stream buffer errors."""


class BufferSetupError(StreamBufferError):
    """Raised when a buffer backend cannot be opened."""


class BufferBackend(Protocol):
    """Storage strategy behind a StreamBuffer."""

    def put(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def items(self) -> list[tuple[str, str]]: ...

    def __len__(self) -> int: ...

    def close(self) -> None: ...


class MemoryBackend:
    """Volatile backend keeping entries in arrival order."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def put(self, key: str, value: str) -> None:
        self._entries[key] = value

    def remove(self, key: str) -> None:
        self.delete(key)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def items(self) -> list[tuple[str, str]]:
        return list(self._entries.items())

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def close(self) -> None:
        self._entries.clear()


class SQLiteBackend:
    """Persistent backend on an embedded SQLite database.

    Each ``put`` runs in its own transaction, so readers never see a partial
    record. An exclusive ``<path>.lock`` file lock is held for the lifetime of
    the backend; a second opener waits at most ``lock_timeout`` seconds and
    then fails.
    """

    def __init__(
        self,
        path: Path | None = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        prune_on_remove: bool = False,
    ) -> None:
        """Open (or create) the disk buffer.

        Args:
            path: Database file. Defaults to ``default_disk_path()``.
            lock_timeout: Seconds to wait for the writer lock.
            prune_on_remove: Delete entries on ``remove``. When False,
                ``remove`` leaves disk entries in place; ``delete`` always
                deletes.

        Raises:
            BufferSetupError: If the lock cannot be acquired or the database
                cannot be opened.
        """
        self.path = Path(path) if path is not None else default_disk_path()
        self.prune_on_remove = prune_on_remove
        self._lock = FileLock(str(self.path) + ".lock", timeout=lock_timeout)
        self._conn: sqlite3.Connection | None = None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._lock.acquire()
        except Timeout as e:
            msg = f"disk buffer {self.path} is locked by another writer (waited {lock_timeout}s)"
            raise BufferSetupError(msg) from e
        except OSError as e:
            raise BufferSetupError(f"cannot lock disk buffer {self.path}: {e}") from e

        try:
            self._conn = sqlite3.connect(str(self.path), timeout=lock_timeout)
            with self._conn:
                self._conn.execute(_SCHEMA)
        except sqlite3.Error as e:
            self._release()
            raise BufferSetupError(f"cannot open disk buffer {self.path}: {e}") from e

        logger.info("Opened disk buffer at %s", self.path)

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            msg = f"disk buffer {self.path} is closed"
            raise StreamBufferError(msg)
        return self._conn

    def put(self, key: str, value: str) -> None:
        # Upsert keeps the original row position so items() stays in arrival order
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT INTO news_stream_buffer (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, value),
                )
        except sqlite3.Error as e:
            raise StreamBufferError(f"cannot write {key} to disk buffer: {e}") from e

    def remove(self, key: str) -> None:
        if self.prune_on_remove:
            self.delete(key)

    def delete(self, key: str) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM news_stream_buffer WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StreamBufferError(f"cannot remove {key} from disk buffer: {e}") from e

    def items(self) -> list[tuple[str, str]]:
        rows = self.conn.execute(
            "SELECT key, value FROM news_stream_buffer ORDER BY rowid"
        ).fetchall()
        return [(row[0], row[1]) for row in rows]

    def __contains__(self, key: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM news_stream_buffer WHERE key = ?", (key,)
        ).fetchone()
        return row is not None

    def __len__(self) -> int:
        return int(self.conn.execute("SELECT COUNT(*) FROM news_stream_buffer").fetchone()[0])

    def _release(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        if self._lock.is_locked:
            self._lock.release()

    def close(self) -> None:
        self._release()
        logger.debug("Closed disk buffer at %s", self.path)


class StreamBuffer:
    """Event buffer over any combination of memory and disk backends.

    With no backend enabled every operation is a no-op, which matches running
    the stream without buffering.
    """

    def __init__(
        self,
        use_memory: bool = False,
        use_disk: bool = False,
        disk_path: Path | None = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        prune_disk_on_remove: bool = False,
    ) -> None:
        """Set up the enabled backends.

        Args:
            use_memory: Enable the in-memory backend.
            use_disk: Enable the SQLite backend.
            disk_path: SQLite file path. Defaults to a temp-dir location.
            lock_timeout: Seconds to wait for the disk writer lock.
            prune_disk_on_remove: Make ``remove`` delete disk entries too.

        Raises:
            BufferSetupError: If the disk backend cannot be opened.
        """
        self.memory: MemoryBackend | None = MemoryBackend() if use_memory else None
        self.disk: SQLiteBackend | None = (
            SQLiteBackend(disk_path, lock_timeout=lock_timeout, prune_on_remove=prune_disk_on_remove)
            if use_disk
            else None
        )

    @property
    def backends(self) -> list[BufferBackend]:
        # Disk first: an event the durable store rejected is never held in memory
        return [b for b in (self.disk, self.memory) if b is not None]

    @property
    def enabled(self) -> bool:
        return bool(self.backends)

    def put(self, event: StreamEvent) -> None:
        """Insert or overwrite the entry for ``event`` in every backend."""
        value = event.to_json()
        for backend in self.backends:
            backend.put(event.key, value)

    def remove(self, event: StreamEvent) -> None:
        """Remove the entry for ``event``.

        Always removes from memory. Disk entries are removed only when the
        disk backend was opened with ``prune_disk_on_remove``.
        """
        for backend in self.backends:
            backend.remove(event.key)

    def acknowledge(self, event: StreamEvent) -> None:
        """Drop a handled event from every backend, disk included.

        Unlike ``remove`` this ignores ``prune_disk_on_remove``, so an
        acknowledged event is never replayed after a restart.
        """
        for backend in self.backends:
            backend.delete(event.key)

    def entries(self) -> list[StreamEvent]:
        """Buffered events in arrival order.

        Reads from disk when enabled, since only disk survives a restart.
        """
        source = self.disk if self.disk is not None else self.memory
        if source is None:
            return []
        return [StreamEvent.model_validate_json(value) for _, value in source.items()]

    def __len__(self) -> int:
        source = self.disk if self.disk is not None else self.memory
        return len(source) if source is not None else 0

    def close(self) -> None:
        """Release every backend."""
        for backend in self.backends:
            backend.close()

    def __enter__(self) -> "StreamBuffer":
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()
