"""Single-day export.

Drains every page the REST API returns for one calendar day into one
gzip JSONL artifact.
"""

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Protocol

from news_archive.api.http import NewsAPIError
from news_archive.api.params import NewsParams, OutputOption, SortDirection, SortField, SortOption
from news_archive.export.paths import date_path
from news_archive.export.writer import GzipJSONLWriter
from news_archive.models.story import Story

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 1000


@dataclass(frozen=True)
class ExportUnit:
    """One calendar day scheduled for export."""

    year: int
    date: date


class PageFetcher(Protocol):
    async def fetch_page(self, params: NewsParams) -> list[Story]: ...


class DayExportError(Exception):
    """Raised when a day could not be exported.

    Attributes:
        date: Day being exported.
        page: Page number being fetched or written when the error occurred.
        url: Request URL, when the failure came from the API.
    """

    def __init__(self, day: date, page: int, cause: BaseException, url: str = "") -> None:
        self.date = day
        self.page = page
        self.url = url
        message = f"export of {day.isoformat()} failed on page {page}: {cause}"
        if url:
            message += f" (url: {url})"
        super().__init__(message)


class DayExporter:
    """Exports one ExportUnit into one ExportArtifact.

    Pages are requested from 0 upward until a page comes back short of
    ``page_size`` or ``max_pages`` pages have been fetched. The artifact is
    published only if at least one story was written.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        root: Path,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = DEFAULT_MAX_PAGES,
        sort: SortOption | None = None,
        display_output: OutputOption = OutputOption.FULL,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize day exporter.

        Args:
            fetcher: Object providing ``fetch_page`` (usually NewsRestClient).
            root: Export root directory.
            page_size: Stories requested per page.
            max_pages: Hard ceiling on pages per day.
            sort: Sort option. Defaults to created ascending.
            display_output: Detail level requested.
            logger: Logger to report progress on. Defaults to the module logger.
        """
        self.fetcher = fetcher
        self.root = Path(root)
        self.page_size = page_size
        self.max_pages = max_pages
        self.sort = sort or SortOption(field=SortField.CREATED, direction=SortDirection.ASC)
        self.display_output = display_output
        self.log = logger or logging.getLogger(__name__)

    def artifact_path(self, unit: ExportUnit) -> Path:
        """Artifact path for a unit."""
        return date_path(self.root, unit.date)

    def _params(self, unit: ExportUnit, page: int) -> NewsParams:
        return NewsParams(
            date=unit.date,
            page=page,
            page_size=self.page_size,
            sort=self.sort,
            display_output=self.display_output,
        )

    async def export(self, unit: ExportUnit) -> int:
        """Export every story for the unit's day.

        Args:
            unit: Day to export.

        Returns:
            Number of stories written. Zero means no artifact was created.

        Raises:
            DayExportError: If any page fails to fetch, decode, or write.
        """
        path = self.artifact_path(unit)
        day = unit.date.isoformat()
        writer = GzipJSONLWriter(path, buffer_size=self.page_size)

        try:
            writer.open()
        except OSError as e:
            self.log.error("Cannot create %s: %s", writer.partial, e)
            raise DayExportError(unit.date, 0, e) from e

        page = 0
        try:
            for page in range(self.max_pages):
                stories = await self.fetcher.fetch_page(self._params(unit, page))

                for story in stories:
                    writer.write(story)

                self.log.info("Retrieved date=%s page=%d results=%d", day, page, len(stories))

                if len(stories) < self.page_size:
                    break
            else:
                self.log.warning("Reached page ceiling (%d) for %s", self.max_pages, day)

            written = writer.record_count
            writer.commit()
        except NewsAPIError as e:
            writer.discard()
            self.log.error("Request error for %s page %d: %s (url: %s)", day, page, e, e.url)
            raise DayExportError(unit.date, page, e, url=e.url) from e
        except OSError as e:
            writer.discard()
            self.log.error("Write error for %s page %d: %s", day, page, e)
            raise DayExportError(unit.date, page, e) from e
        except BaseException:
            writer.discard()
            raise

        if written == 0:
            self.log.debug("No stories for %s; no artifact written", day)
        return written
