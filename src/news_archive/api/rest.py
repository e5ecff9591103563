"""News REST API client.

Fetches one page of stories per call. Paging, retries and termination are
left to the caller.
"""

import json
import logging

from pydantic import ValidationError

from news_archive.api.http import DecodeError, NewsHTTPClient
from news_archive.api.params import NewsParams
from news_archive.models.story import Story

logger = logging.getLogger(__name__)

NEWS_API_PATH = "/api/v2/news"


class NewsRestClient:
    """Page fetcher for the news endpoint."""

    def __init__(self, http_client: NewsHTTPClient) -> None:
        """Initialize REST API client.

        Args:
            http_client: NewsHTTPClient instance for HTTP requests.
        """
        self._http = http_client

    async def fetch_page(self, params: NewsParams) -> list[Story]:
        """Fetch and decode a single page of stories.

        Args:
            params: Query parameters, including page and page size.

        Returns:
            Stories in the order the API returned them.

        Raises:
            TransportError: If the request fails to complete.
            UnexpectedResponseError: On a non-2xx response.
            DecodeError: If the body is not a JSON list of stories.
        """
        response = await self._http.get(NEWS_API_PATH, params=params.to_query())

        try:
            payload = json.loads(response.content) if response.content else []
        except json.JSONDecodeError as e:
            raise DecodeError(f"error parsing json response: {e}", url=response.url) from e

        if not isinstance(payload, list):
            raise DecodeError(
                f"expected a JSON array of stories, got {type(payload).__name__}",
                url=response.url,
            )

        try:
            stories = [Story.model_validate(item) for item in payload]
        except ValidationError as e:
            raise DecodeError(f"error decoding story: {e}", url=response.url) from e

        logger.debug("Fetched %d stories (page %d)", len(stories), params.page)
        return stories
