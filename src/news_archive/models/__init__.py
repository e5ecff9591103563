"""Decoded payload models for REST stories and stream events."""

from news_archive.models.story import ChannelTag, Image, Stock, Story
from news_archive.models.stream import Content, EventData, Security, StreamEvent
from news_archive.models.times import NewsTime, format_rfc3339_milli, parse_vendor_time

__all__ = [
    "ChannelTag",
    "Content",
    "EventData",
    "Image",
    "NewsTime",
    "Security",
    "Stock",
    "Story",
    "StreamEvent",
    "format_rfc3339_milli",
    "parse_vendor_time",
]
