"""Artifact paths for exported days.

Layout: ``<root>/<year>/<MonthName>/<YYYY_MM_DD>.json.gz``
"""

from datetime import date
from pathlib import Path

FILE_DATE_FORMAT = "%Y_%m_%d"
ARTIFACT_SUFFIX = ".json.gz"
PARTIAL_SUFFIX = ".partial"

# English month names regardless of process locale
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def date_directory(root: Path, day: date) -> Path:
    """Directory holding the artifact for ``day``."""
    return Path(root) / str(day.year) / MONTH_NAMES[day.month - 1]


def date_path(root: Path, day: date) -> Path:
    """Path of the artifact for ``day``."""
    return date_directory(root, day) / f"{day.strftime(FILE_DATE_FORMAT)}{ARTIFACT_SUFFIX}"


def partial_path(artifact: Path) -> Path:
    """In-progress path for an artifact; never mistaken for a finished day."""
    return artifact.with_name(artifact.name + PARTIAL_SUFFIX)
