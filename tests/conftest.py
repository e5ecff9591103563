"""Shared fixtures for news-archive tests.

Provides fixtures for:
- Story payload and Story factories
- A scripted page fetcher that records every request
- Temporary export roots
"""

from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any

import pytest

from news_archive.api.params import NewsParams
from news_archive.models.story import Story


def _story_payload(story_id: int, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": story_id,
        "author": "Newsdesk",
        "created": "Mon, 03 Jan 2011 09:30:00 -0400",
        "updated": "Mon, 03 Jan 2011 10:00:00 -0400",
        "title": f"Story {story_id}",
        "teaser": "",
        "body": "<p>Body</p>",
        "url": f"https://example.com/news/{story_id}",
        "image": [],
        "channels": [{"name": "News"}],
        "stocks": [{"name": "AAPL"}],
        "tags": [],
    }
    payload.update(overrides)
    return payload


class ScriptedFetcher:
    """Page fetcher returning pre-arranged pages per day.

    ``pages`` maps a date to its pages in order. A page may be an exception
    instance, which is raised when that page is requested. Pages past the end
    of the script come back empty.
    """

    def __init__(self, pages: dict[date, list[list[Story] | BaseException]] | None = None) -> None:
        self.pages = pages or {}
        self.calls: list[NewsParams] = []

    async def fetch_page(self, params: NewsParams) -> list[Story]:
        self.calls.append(params)
        assert params.date is not None
        day_pages = self.pages.get(params.date, [])
        if params.page >= len(day_pages):
            return []
        page = day_pages[params.page]
        if isinstance(page, BaseException):
            raise page
        return page

    def pages_requested(self, day: date) -> list[int]:
        """Page numbers requested for ``day``, in request order."""
        return [p.page for p in self.calls if p.date == day]


@pytest.fixture
def story_payload() -> Callable[..., dict[str, Any]]:
    """Factory for REST story payloads as the API returns them."""
    return _story_payload


@pytest.fixture
def make_stories() -> Callable[[int, int], list[Story]]:
    """Factory building ``count`` stories with ids starting at ``start``."""

    def factory(start: int, count: int) -> list[Story]:
        return [Story.model_validate(_story_payload(i)) for i in range(start, start + count)]

    return factory


@pytest.fixture
def fetcher_factory() -> Callable[..., ScriptedFetcher]:
    """Factory for ScriptedFetcher instances."""
    return ScriptedFetcher


@pytest.fixture
def export_root(tmp_path: Path) -> Path:
    """Export root directory (not yet created)."""
    return tmp_path / "export"
