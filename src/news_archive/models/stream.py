"""Stream event payloads."""

from pydantic import BaseModel, Field

from news_archive.models.times import NewsTime


class Security(BaseModel):
    symbol: str = ""
    exchange: str = ""
    primary: bool = False


class Content(BaseModel):
    """Story content carried by a stream event."""

    id: int = 0
    revision_id: int = 0
    type: str = ""
    title: str = ""
    body: str = ""
    authors: list[str] = Field(default_factory=list)
    teaser: str = ""
    url: str = ""
    tags: list[str] = Field(default_factory=list)
    securities: list[Security] = Field(default_factory=list)
    channels: list[str] = Field(default_factory=list)
    created_at: NewsTime | None = None
    updated_at: NewsTime | None = None


class EventData(BaseModel):
    action: str = ""
    id: int
    content: Content | None = None
    timestamp: NewsTime | None = None


class StreamEvent(BaseModel):
    """One message received from the news stream."""

    api_version: str = ""
    kind: str = ""
    data: EventData

    @property
    def id(self) -> int:
        """Vendor-assigned event identifier."""
        return self.data.id

    @property
    def key(self) -> str:
        """Buffer key for this event."""
        return str(self.data.id)

    def to_json(self) -> str:
        return self.model_dump_json()
