"""Discovery manifest resolution and refresh scheduling."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from gbfsfeed.exceptions import DiscoveryMalformed, DiscoveryUnavailable, FeedFetchFailed
from gbfsfeed.loaders.http import FeedFetcher
from gbfsfeed.models import FeedType, GBFSDiscovery, parse_discovery

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveryManifest:
    """A fetched manifest with the feed list resolved for one language."""

    url: str
    document: GBFSDiscovery
    raw: bytes
    feeds: Tuple[Tuple[FeedType, str], ...]
    language: Optional[str]
    fetched_at: float


class DiscoveryResolver:
    """Fetch ``gbfs.json`` and resolve the ``(feed_type, url)`` list to poll."""

    def __init__(
        self,
        url: str,
        fetcher: FeedFetcher,
        language_code: Optional[str] = None,
        refresh_seconds: float = 3600.0,
    ) -> None:
        self.url = url
        self._fetcher = fetcher
        self._language_code = language_code
        self._refresh_seconds = refresh_seconds
        self._last_attempt: Optional[float] = None

    def is_due(self, current: Optional[DiscoveryManifest], now: float) -> bool:
        """Whether the manifest should be (re)fetched at ``now``.

        Without a manifest every pass retries; with one, a failed refresh waits
        a full interval like a successful one.
        """

        if current is None or self._last_attempt is None:
            return True
        return now - self._last_attempt >= self._refresh_seconds

    def resolve(self, now: float) -> DiscoveryManifest:
        self._last_attempt = now
        try:
            result = self._fetcher.fetch(self.url)
        except FeedFetchFailed as err:
            raise DiscoveryUnavailable(self.url, err.message) from err
        if result.content is None:
            raise DiscoveryUnavailable(self.url, "empty response")
        document = parse_discovery(result.content, self.url)
        try:
            feeds = document.feeds_for(self._language_code)
        except KeyError as err:
            raise DiscoveryMalformed(
                self.url,
                f"no feeds for language {self._language_code!r} (declared: {document.languages()})",
            ) from err
        language = self._language_code
        if language is None and document.languages():
            language = document.languages()[0]
        logger.debug("Resolved %d feeds from %s (language=%s)", len(feeds), self.url, language)
        return DiscoveryManifest(
            url=self.url,
            document=document,
            raw=result.content,
            feeds=tuple(feeds),
            language=language,
            fetched_at=now,
        )
