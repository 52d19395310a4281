"""
Exception hierarchy for ghcrawl.

Everything raised on purpose derives from GhcrawlError, so the
application service has one thing to catch per repository.
"""

from __future__ import annotations


class GhcrawlError(Exception):
    """Base exception for all ghcrawl errors."""


class MissingFieldError(GhcrawlError):
    """A field the score depends on is unset in the repository snapshot."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Required field '{field}' is not set")


class InvalidTimestampError(GhcrawlError):
    """created_at lies after updated_at (only raised when validation is on)."""


class ListingError(GhcrawlError):
    """An innersource.json listing could not be parsed."""


class FetchError(GhcrawlError):
    """The hosting API could not be queried, even after retries."""


class RateLimitError(GhcrawlError):
    """GitHub explicitly returned a RATE_LIMITED error. The client retries it."""
