"""Exceptions raised by the fetch/export pipeline."""
from typing import Optional


class ScraperError(Exception):
    """Base class for pipeline failures that are reported, not crashed on."""


class RelayAttemptError(ScraperError):
    """One relay provider failed to return usable content."""


class TransportExhaustedError(ScraperError):
    """Every relay provider failed for a target URL."""

    def __init__(self, target_url: str, last_error: Optional[BaseException] = None):
        self.target_url = target_url
        self.last_error = last_error
        detail = str(last_error) if last_error else "no relay providers configured"
        super().__init__(f"All proxies failed to retrieve data: {detail}")


class InvalidPayloadError(ScraperError):
    """Relay returned text that is not valid JSON."""


class InvalidMatchUrlError(ScraperError):
    """URL does not end with a match identifier."""


class ArchiveError(ScraperError):
    """ZIP archive could not be generated or delivered."""
