"""Custom exceptions for the crawler domain."""


class CrawlerError(Exception):
    """Base exception for this project."""


class ConfigError(CrawlerError):
    """Raised when runtime configuration is invalid."""


class SinkError(CrawlerError):
    """Raised when a crawl result cannot be persisted."""
