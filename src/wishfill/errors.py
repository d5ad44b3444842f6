"""
Exception taxonomy for the extraction pipeline.

Every error is caught at the component boundary where it occurs and turned
into an empty partial result; none of them reach the HTTP layer.
"""
from typing import Optional


class ExtractionError(Exception):
    """Base class for all extraction errors."""


class NetworkError(ExtractionError):
    """Timeout or connection failure while talking to a remote host."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"Network error for {url}: {reason}" if reason else f"Network error for {url}")


class BlockedBySite(ExtractionError):
    """Non-2xx response or an anti-bot challenge page."""

    def __init__(self, url: str, status: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status = status
        self.reason = reason
        detail = f"status={status}" if status is not None else reason or "challenge page"
        super().__init__(f"Blocked by {url} ({detail})")


class ParseError(ExtractionError):
    """Malformed HTML, JSON-LD or embedded JSON."""


class ModelError(ExtractionError):
    """Vision or validation model call failed."""


class ClassificationFailure(ExtractionError):
    """The input could not be turned into a usable URL."""
