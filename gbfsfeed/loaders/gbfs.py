"""Polling loader for a single GBFS system."""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional

from gbfsfeed.config import RequestAuthenticator, SubscriptionOptions
from gbfsfeed.exceptions import DiscoveryMalformed, DiscoveryUnavailable, FeedFetchFailed, FeedParseFailed
from gbfsfeed.loaders.cache import CachedFeedEntry, FeedCache
from gbfsfeed.loaders.discovery import DiscoveryManifest, DiscoveryResolver
from gbfsfeed.loaders.http import FeedFetcher
from gbfsfeed.models import DEFAULT_TTL_SECONDS, FeedType, GBFSDiscovery, GBFSFeed, effective_ttl, parse_feed

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class GBFSLoader:
    """Loader that keeps every sub-feed of one system fresh according to its TTL.

    Each call to :meth:`update` is one polling pass. Feeds are only requested
    once their own ``ttl`` has expired, and a failure on one feed leaves the
    others (and its own stale entry) untouched.
    """

    def __init__(
        self,
        discovery_url: str,
        headers: Optional[Dict[str, str]] = None,
        language_code: Optional[str] = None,
        authenticator: Optional[RequestAuthenticator] = None,
        timeout: float = 10.0,
        discovery_refresh_seconds: float = 3600.0,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        fetcher: Optional[FeedFetcher] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._fetcher = fetcher or FeedFetcher(headers=headers, timeout=timeout, authenticator=authenticator)
        self._resolver = DiscoveryResolver(
            discovery_url,
            self._fetcher,
            language_code=language_code,
            refresh_seconds=discovery_refresh_seconds,
        )
        self._default_ttl = default_ttl_seconds
        self._clock = clock or time.time
        self._cache = FeedCache()
        self._manifest: Optional[DiscoveryManifest] = None
        self._setup_complete = False

    @classmethod
    def from_options(
        cls,
        options: SubscriptionOptions,
        fetcher: Optional[FeedFetcher] = None,
        clock: Optional[Clock] = None,
    ) -> "GBFSLoader":
        return cls(
            options.discovery_url,
            headers=dict(options.headers),
            language_code=options.language_code,
            authenticator=options.request_authenticator,
            timeout=options.request_timeout,
            discovery_refresh_seconds=options.discovery_refresh_seconds,
            default_ttl_seconds=options.default_ttl_seconds,
            fetcher=fetcher,
            clock=clock,
        )

    @property
    def discovery_url(self) -> str:
        return self._resolver.url

    @property
    def manifest(self) -> Optional[DiscoveryManifest]:
        return self._manifest

    def is_setup_complete(self) -> bool:
        """True once a discovery manifest has been fetched; never reverts."""

        return self._setup_complete

    def update(self) -> bool:
        """Run one polling pass and report whether any feed entry was replaced."""

        now = self._clock()
        if self._resolver.is_due(self._manifest, now):
            try:
                manifest = self._resolver.resolve(now)
            except (DiscoveryUnavailable, DiscoveryMalformed) as err:
                logger.warning("Discovery refresh failed for %s: %s", self.discovery_url, err)
            except Exception:
                logger.exception("Unexpected error refreshing discovery for %s", self.discovery_url)
            else:
                self._prune(manifest)
                self._manifest = manifest
                self._setup_complete = True
        if self._manifest is None:
            return False

        changed = False
        for feed_type, url in self._manifest.feeds:
            entry = self._cache.get(feed_type)
            if not self._cache.should_refetch(entry, now):
                continue
            try:
                if self._refresh(feed_type, url, entry, now):
                    changed = True
            except (FeedFetchFailed, FeedParseFailed) as err:
                logger.warning("Keeping previous %s for %s: %s", feed_type.value, self.discovery_url, err)
            except Exception:
                logger.exception("Unexpected error refreshing %s for %s", feed_type.value, self.discovery_url)
        return changed

    def _prune(self, manifest: DiscoveryManifest) -> None:
        """Drop entries for feeds the new manifest no longer lists or now serves from another URL."""

        urls = dict(manifest.feeds)
        previous = dict(self._manifest.feeds) if self._manifest is not None else {}
        for feed_type in list(self._cache.feed_types()):
            url = urls.get(feed_type)
            if url is None or previous.get(feed_type, url) != url:
                logger.info(
                    "Dropping cached %s for %s: no longer published at %s",
                    feed_type.value,
                    self.discovery_url,
                    previous.get(feed_type),
                )
                self._cache.drop(feed_type)

    def _refresh(self, feed_type: FeedType, url: str, entry: Optional[CachedFeedEntry], now: float) -> bool:
        if entry is None:
            result = self._fetcher.fetch(url)
        else:
            result = self._fetcher.fetch(url, etag=entry.etag, last_modified=entry.last_modified)
        if result.not_modified or (entry is not None and result.content == entry.raw):
            self._cache.touch(feed_type, now, etag=result.etag, last_modified=result.last_modified)
            return False
        if result.content is None:
            raise FeedFetchFailed(url, "empty response", feed_type=feed_type.value)
        parsed = parse_feed(feed_type, result.content)
        self._cache.store(
            feed_type,
            result.content,
            parsed,
            ttl=effective_ttl(parsed, self._default_ttl),
            now=now,
            etag=result.etag,
            last_modified=result.last_modified,
        )
        return True

    def get_feed(self, feed_type: FeedType) -> Optional[GBFSFeed]:
        entry = self._cache.get(feed_type)
        return entry.parsed if entry is not None else None

    def get_raw_feed(self, feed_type: FeedType) -> Optional[bytes]:
        entry = self._cache.get(feed_type)
        return entry.raw if entry is not None else None

    def get_entry(self, feed_type: FeedType) -> Optional[CachedFeedEntry]:
        return self._cache.get(feed_type)

    def entries(self) -> Dict[FeedType, CachedFeedEntry]:
        """Current cache content, one entry object per populated feed type."""

        return {feed_type: self._cache.get(feed_type) for feed_type in self._cache.feed_types()}

    def get_discovery_feed(self) -> Optional[GBFSDiscovery]:
        return self._manifest.document if self._manifest is not None else None

    def get_raw_discovery_feed(self) -> Optional[bytes]:
        return self._manifest.raw if self._manifest is not None else None

    def close(self) -> None:
        """Release pooled HTTP connections."""

        self._fetcher.close()
