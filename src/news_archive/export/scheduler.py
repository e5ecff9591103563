"""Year-partitioned export scheduling.

Runs one worker per calendar year. Each worker walks its days in order and
skips any day whose artifact is already on disk, so re-running an export
resumes where the last one stopped.
"""

import asyncio
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from news_archive.export.day import DayExporter, ExportUnit


@dataclass
class YearResult:
    """Outcome of one year's worker."""

    year: int
    exported: int = 0
    empty: int = 0
    skipped: int = 0
    items: int = 0
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def iter_units(year: int, today: date) -> Iterator[ExportUnit]:
    """Yield every day of ``year`` strictly before ``today``.

    Today itself is left out: its feed is still growing and an artifact is a
    permanent completion marker.

    Args:
        year: Calendar year.
        today: Current date; units stop the day before it.

    Yields:
        ExportUnit per day, in calendar order.
    """
    day = date(year, 1, 1)
    end_of_year = date(year + 1, 1, 1)
    while day < end_of_year and day < today:
        yield ExportUnit(year=year, date=day)
        day += timedelta(days=1)


class RangeScheduler:
    """Drives a DayExporter across a span of years.

    Years run concurrently; days within a year run sequentially. A failed day
    stops its own year only. ``run`` returns after every year has finished.
    """

    def __init__(
        self,
        exporter: DayExporter,
        start_year: int,
        end_year: int | None = None,
        today: date | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize range scheduler.

        Args:
            exporter: Exporter used for every day.
            start_year: First year to export.
            end_year: Last year to export (inclusive). Defaults to today's year.
            today: Override for the current date.
            logger: Logger for progress. Defaults to the module logger.
        """
        self.exporter = exporter
        self.today = today or datetime.now(UTC).date()
        self.start_year = start_year
        self.end_year = end_year if end_year is not None else self.today.year
        self.log = logger or logging.getLogger(__name__)

        if self.end_year < self.start_year:
            msg = f"end_year ({self.end_year}) must be >= start_year ({self.start_year})"
            raise ValueError(msg)

    @property
    def years(self) -> list[int]:
        return list(range(self.start_year, self.end_year + 1))

    def units(self, year: int) -> list[ExportUnit]:
        """All export units for a year."""
        return list(iter_units(year, self.today))

    async def run_year(self, year: int) -> YearResult:
        """Export every pending day of a year in calendar order.

        Errors are recorded on the result rather than raised so that sibling
        years keep running.
        """
        result = YearResult(year=year)
        self.log.info("Starting year %d to directory %s", year, self.exporter.root)

        for unit in self.units(year):
            if self.exporter.artifact_path(unit).exists():
                result.skipped += 1
                continue

            try:
                written = await self.exporter.export(unit)
            except Exception as e:
                self.log.error("Year %d stopped at %s: %s", year, unit.date.isoformat(), e)
                result.error = e
                return result

            if written:
                result.exported += 1
                result.items += written
            else:
                result.empty += 1

        self.log.info(
            "Finished year %d: %d exported, %d empty, %d skipped",
            year,
            result.exported,
            result.empty,
            result.skipped,
        )
        return result

    async def run(self) -> list[YearResult]:
        """Run one worker per year and wait for all of them.

        Returns:
            Results ordered by year.
        """
        tasks = [self.run_year(year) for year in self.years]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: list[YearResult] = []
        for year, outcome in zip(self.years, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                self.log.error("Year %d worker crashed: %s", year, outcome)
                results.append(YearResult(year=year, error=outcome))
            else:
                results.append(outcome)

        failed = [r.year for r in results if not r.ok]
        if failed:
            self.log.warning("Export finished with failed years: %s", failed)
        else:
            self.log.info("Export finished for %d years", len(results))
        return results
