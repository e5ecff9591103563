"""Configuration loading and validation."""

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from news_archive.api.params import OutputOption, SortDirection, SortField


class ApiConfig(BaseModel):
    """REST API configuration."""

    base_url: str = "https://api.benzinga.com"
    token_env: str = "NEWS_API_TOKEN"
    timeout: float = Field(default=30.0, gt=0)


class ExportConfig(BaseModel):
    """Bulk export configuration."""

    root: Path = Field(default=Path("./export"))
    start_year: int = Field(default=2011, ge=1970)
    end_year: int | None = Field(default=None, description="Defaults to the current year")
    page_size: int = Field(default=100, ge=1)
    max_pages: int = Field(default=1000, ge=1, le=10001)
    sort_field: SortField = SortField.CREATED
    sort_direction: SortDirection = SortDirection.ASC
    display_output: OutputOption = OutputOption.FULL

    @model_validator(mode="after")
    def validate_year_range(self) -> "ExportConfig":
        """Validate that the year range is not inverted."""
        if self.end_year is not None and self.end_year < self.start_year:
            msg = f"end_year ({self.end_year}) must be >= start_year ({self.start_year})"
            raise ValueError(msg)
        return self

    def resolved_end_year(self) -> int:
        """Return end_year, falling back to the current year."""
        if self.end_year is not None:
            return self.end_year
        return datetime.now(UTC).year


class BufferConfig(BaseModel):
    """Stream buffer backend selection."""

    use_memory: bool = False
    use_disk: bool = False
    disk_path: Path | None = None
    lock_timeout: float = Field(default=10.0, ge=0)
    auto_clear: bool = False
    prune_disk_on_remove: bool = False
    replay_on_start: bool = False

    @model_validator(mode="after")
    def validate_replay(self) -> "BufferConfig":
        """Validate that replayed events are cleared once handled."""
        if self.replay_on_start and not self.auto_clear:
            msg = "replay_on_start requires auto_clear, or handled events replay on every start"
            raise ValueError(msg)
        return self


class ReconnectConfig(BaseModel):
    """Reconnect-with-backoff policy for the stream command."""

    enabled: bool = True
    initial_backoff: float = Field(default=1.0, gt=0)
    max_backoff: float = Field(default=60.0, gt=0)


class StreamConfig(BaseModel):
    """Streaming socket configuration."""

    url: str = "wss://api.benzinga.com/api/v1/news/stream"
    max_message_size: int = Field(default=1000 << 16, ge=1)
    reconnect: ReconnectConfig = Field(default_factory=ReconnectConfig)
    buffer: BufferConfig = Field(default_factory=BufferConfig)


class Config(BaseModel):
    """Root configuration model."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)


def load_config(path: Path) -> Config:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValidationError: If the config is invalid.
    """
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open() as f:
        raw_config: dict[str, Any] | None = yaml.safe_load(f)

    return Config.model_validate(raw_config or {})
