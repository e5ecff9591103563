"""Resumable day-by-day export of the REST news feed."""

from news_archive.export.day import DayExporter, DayExportError, ExportUnit, PageFetcher
from news_archive.export.paths import date_directory, date_path, partial_path
from news_archive.export.scheduler import RangeScheduler, YearResult, iter_units
from news_archive.export.writer import GzipJSONLWriter

__all__ = [
    "DayExportError",
    "DayExporter",
    "ExportUnit",
    "GzipJSONLWriter",
    "PageFetcher",
    "RangeScheduler",
    "YearResult",
    "date_directory",
    "date_path",
    "iter_units",
    "partial_path",
]
