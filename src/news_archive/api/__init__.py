"""News REST API clients and utilities."""

from news_archive.api.auth import ApiAuth, AuthenticationError
from news_archive.api.http import (
    DecodeError,
    NewsAPIError,
    NewsHTTPClient,
    NewsResponse,
    TransportError,
    UnexpectedResponseError,
)
from news_archive.api.params import (
    NewsParams,
    OutputOption,
    SortDirection,
    SortField,
    SortOption,
)
from news_archive.api.rest import NEWS_API_PATH, NewsRestClient

__all__ = [
    "NEWS_API_PATH",
    # Auth
    "ApiAuth",
    "AuthenticationError",
    # HTTP Client
    "DecodeError",
    "NewsAPIError",
    "NewsHTTPClient",
    "NewsResponse",
    # Params
    "NewsParams",
    # REST API Client
    "NewsRestClient",
    "OutputOption",
    "SortDirection",
    "SortField",
    "SortOption",
    "TransportError",
    "UnexpectedResponseError",
]
