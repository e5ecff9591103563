"""REST story payloads."""

from pydantic import BaseModel, ConfigDict, Field

from news_archive.models.times import NewsTime


class Image(BaseModel):
    size: str = ""
    url: str = ""


class Stock(BaseModel):
    name: str = ""
    cusip: str | None = None


class ChannelTag(BaseModel):
    """Shared shape for channels and tags."""

    name: str = ""


class Story(BaseModel):
    """One news story as returned by ``GET /api/v2/news``.

    Fields the vendor adds later are kept so exports stay lossless.
    """

    model_config = ConfigDict(extra="allow")

    id: int
    author: str = ""
    created: NewsTime | None = None
    updated: NewsTime | None = None
    title: str = ""
    teaser: str = ""
    body: str = ""
    url: str = ""
    image: list[Image] = Field(default_factory=list)
    channels: list[ChannelTag] = Field(default_factory=list)
    stocks: list[Stock] = Field(default_factory=list)
    tags: list[ChannelTag] = Field(default_factory=list)

    def to_json_line(self) -> str:
        """Convert story to a JSONL line with no trailing newline."""
        return self.model_dump_json(exclude_none=True)
