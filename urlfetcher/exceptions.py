"""Exception hierarchy for the URL fetcher service."""

from __future__ import annotations

from typing import Any


class UrlFetcherError(Exception):
    """Base exception for all URL fetcher errors."""


class UrlValidationError(UrlFetcherError):
    """Raised when one or more URLs in a batch fail the security policy."""

    def __init__(
        self,
        message: str,
        invalid_urls: list[dict[str, Any]] | None = None,
        valid_count: int = 0,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.invalid_urls = invalid_urls or []
        self.valid_count = valid_count


class StorageError(UrlFetcherError):
    """Raised when storage operations fail."""


class ServiceUnavailableError(StorageError):
    """Raised for transient store conditions callers should back off from."""

    def __init__(self, message: str = "Service temporarily unavailable") -> None:
        super().__init__(message)
        self.message = message


class ConfigError(UrlFetcherError):
    """Raised when configuration is invalid."""
