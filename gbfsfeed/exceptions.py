"""Exception hierarchy for discovery, feed polling, and validation failures."""
from __future__ import annotations

from typing import Any, Dict, Optional


class GBFSError(Exception):
    """Base error for everything raised by the polling engine."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class DiscoveryUnavailable(GBFSError):
    """Discovery endpoint unreachable, timed out, or answered with an error status."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Discovery feed unavailable: {reason}", {"url": url})
        self.url = url


class DiscoveryMalformed(GBFSError):
    """Discovery body could not be parsed into a language to feed-list manifest."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Discovery feed malformed: {reason}", {"url": url})
        self.url = url


class FeedFetchFailed(GBFSError):
    """A single sub-feed (or any URL) could not be fetched."""

    def __init__(self, url: str, reason: str, feed_type: Optional[str] = None) -> None:
        details: Dict[str, Any] = {"url": url}
        if feed_type is not None:
            details["feed_type"] = feed_type
        super().__init__(f"Fetch failed: {reason}", details)
        self.url = url
        self.feed_type = feed_type


class FeedParseFailed(GBFSError):
    """A fetched sub-feed body did not match its feed model."""

    def __init__(self, feed_type: str, reason: str, url: Optional[str] = None) -> None:
        details: Dict[str, Any] = {"feed_type": feed_type}
        if url is not None:
            details["url"] = url
        super().__init__(f"Could not parse {feed_type}: {reason}", details)
        self.feed_type = feed_type
        self.url = url


class ValidationCollaboratorFailed(GBFSError):
    """The validator raised instead of returning a result."""


class SubscriptionNotInitialized(GBFSError):
    """A subscription was ticked before ``init()`` was called."""
