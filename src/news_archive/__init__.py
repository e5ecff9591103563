"""Resumable export and durable streaming ingestion for a vendor news feed."""

__version__ = "0.1.0"
