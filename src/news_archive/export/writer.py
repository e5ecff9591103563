"""Gzip-compressed JSONL writer for exported days.

Records are written to a ``.partial`` sibling of the artifact and moved into
place only when the writer commits with at least one record. A failed or
empty day therefore never leaves an artifact behind.
"""

import gzip
import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from news_archive.export.paths import partial_path
from news_archive.models.story import Story

logger = logging.getLogger(__name__)


class GzipJSONLWriter:
    """Synchronous gzip JSONL writer with commit/discard semantics.

    Example:
        with GzipJSONLWriter(Path("export/2011/January/2011_01_01.json.gz")) as writer:
            writer.write(story)
        # Artifact exists only if a story was written and no exception escaped.
    """

    def __init__(
        self,
        path: Path,
        buffer_size: int = 100,
    ) -> None:
        """Initialize gzip JSONL writer.

        Args:
            path: Final artifact path.
            buffer_size: Flush buffer after this many records.
        """
        self.path = path
        self.partial = partial_path(path)
        self.buffer_size = buffer_size
        self._file: Any = None
        self._buffer: list[str] = []
        self._record_count = 0

    @property
    def record_count(self) -> int:
        """Number of records written so far."""
        return self._record_count

    def __enter__(self) -> "GzipJSONLWriter":
        """Enter context manager."""
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Commit on normal exit, discard when an exception is propagating."""
        if exc_type is not None:
            self.discard()
        else:
            self.commit()

    def open(self) -> None:
        """Create parent directories and open the partial file for writing."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = gzip.open(self.partial, "wt", encoding="utf-8")

    def flush(self) -> None:
        """Flush buffered records to the compressed stream."""
        if self._buffer and self._file is not None:
            self._file.write("\n".join(self._buffer) + "\n")
            self._buffer.clear()

    def write(self, story: Story) -> None:
        """Write one story as a JSONL line.

        Args:
            story: Decoded story.
        """
        self.write_line(story.to_json_line())

    def write_line(self, line: str) -> None:
        """Buffer a pre-serialized JSON line.

        Args:
            line: JSON text without a trailing newline.
        """
        if self._file is None:
            msg = f"writer for {self.path} is not open"
            raise RuntimeError(msg)

        self._buffer.append(line)
        self._record_count += 1

        if len(self._buffer) >= self.buffer_size:
            self.flush()

    def commit(self) -> bool:
        """Close the stream and publish the artifact if anything was written.

        Returns:
            True if the artifact now exists, False if the day was empty.
        """
        if self._file is None:
            return self.path.exists()

        try:
            self.flush()
            self._file.close()
        except BaseException:
            self._file = None
            self.partial.unlink(missing_ok=True)
            raise
        self._file = None

        if self._record_count == 0:
            self.partial.unlink(missing_ok=True)
            return False

        self.partial.replace(self.path)
        logger.debug("Committed %d records to %s", self._record_count, self.path)
        return True

    def discard(self) -> None:
        """Close the stream and delete everything written so far."""
        self._buffer.clear()
        try:
            if self._file is not None:
                self._file.close()
        finally:
            self._file = None
            self.partial.unlink(missing_ok=True)

    @staticmethod
    def read_records(path: Path) -> Iterator[dict[str, Any]]:
        """Read records from a gzip JSONL artifact.

        Args:
            path: Path to artifact.

        Yields:
            Decoded JSON objects, one per line.

        Raises:
            FileNotFoundError: If file doesn't exist.
        """
        with gzip.open(path, "rt", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    yield json.loads(line)

    @staticmethod
    def count_records(path: Path) -> int:
        """Count records in an artifact. Returns 0 if it doesn't exist."""
        if not path.exists():
            return 0
        return sum(1 for _ in GzipJSONLWriter.read_records(path))
