"""Query parameters for the news REST endpoint."""

import datetime as dt
from enum import Enum

from pydantic import BaseModel, Field

DATE_FORMAT = "%Y-%m-%d"


class OutputOption(str, Enum):
    """Level of detail returned per story."""

    HEADLINE = "headline"
    ABSTRACT = "abstract"
    FULL = "full"


class SortField(str, Enum):
    """Field the endpoint sorts on."""

    UPDATED = "updated"
    CREATED = "created"
    ID = "id"


class SortDirection(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


class SortOption(BaseModel):
    """Sort field and direction, rendered as ``field:direction``."""

    field: SortField = SortField.UPDATED
    direction: SortDirection = SortDirection.ASC

    def __str__(self) -> str:
        return f"{self.field.value}:{self.direction.value}"


class NewsParams(BaseModel):
    """Filter and paging parameters for ``GET /api/v2/news``.

    Unset parameters are left out of the query string entirely.
    """

    channels: list[str] = Field(default_factory=list)
    tickers: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    cusips: list[str] = Field(default_factory=list)
    date: dt.date | None = None
    date_from: dt.date | None = None
    date_to: dt.date | None = None
    published_since: dt.datetime | None = None
    updated_since: dt.datetime | None = None
    display_output: OutputOption | None = None
    page: int = Field(default=0, ge=0, le=10000)
    page_size: int = Field(default=0, ge=0)
    sort: SortOption | None = None

    def to_query(self) -> dict[str, str]:
        """Render the parameters as query string values.

        Returns:
            Mapping of query parameter name to string value.
        """
        query: dict[str, str] = {}

        for name in ("channels", "tickers", "topics", "cusips"):
            values: list[str] = getattr(self, name)
            if values:
                query[name] = ",".join(values)

        if self.date is not None:
            query["date"] = self.date.strftime(DATE_FORMAT)
        if self.date_from is not None:
            query["dateFrom"] = self.date_from.strftime(DATE_FORMAT)
        if self.date_to is not None:
            query["dateTo"] = self.date_to.strftime(DATE_FORMAT)

        if self.published_since is not None:
            query["publishedSince"] = str(int(self.published_since.timestamp()))
        if self.updated_since is not None:
            query["updatedSince"] = str(int(self.updated_since.timestamp()))

        if self.display_output is not None:
            query["displayOutput"] = self.display_output.value

        if self.page > 0:
            query["page"] = str(self.page)
        if self.page_size > 0:
            query["pageSize"] = str(self.page_size)

        if self.sort is not None:
            query["sort"] = str(self.sort)

        return query
