"""Per-feed-type cache of raw bytes and parsed documents."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterator, Optional

from gbfsfeed.models import FeedType, GBFSFeed


@dataclass(frozen=True)
class CachedFeedEntry:
    """Raw and parsed forms of one sub-feed as of its last successful fetch."""

    feed_type: FeedType
    raw: bytes
    parsed: GBFSFeed
    fetched_at: float
    ttl: float
    etag: Optional[str] = None
    last_modified: Optional[str] = None

    def age(self, now: float) -> float:
        return now - self.fetched_at


class FeedCache:
    """Fixed table of optional slots, one per ``FeedType``.

    Entries are replaced wholesale; raw bytes and the parsed value always come
    from the same fetch.
    """

    def __init__(self) -> None:
        self._slots: Dict[FeedType, Optional[CachedFeedEntry]] = {feed_type: None for feed_type in FeedType}

    @staticmethod
    def should_refetch(entry: Optional[CachedFeedEntry], now: float) -> bool:
        return entry is None or entry.age(now) >= entry.ttl

    def get(self, feed_type: FeedType) -> Optional[CachedFeedEntry]:
        return self._slots[feed_type]

    def store(
        self,
        feed_type: FeedType,
        raw: bytes,
        parsed: GBFSFeed,
        ttl: float,
        now: float,
        etag: Optional[str] = None,
        last_modified: Optional[str] = None,
    ) -> CachedFeedEntry:
        entry = CachedFeedEntry(
            feed_type=feed_type,
            raw=bytes(raw),
            parsed=parsed,
            fetched_at=now,
            ttl=ttl,
            etag=etag,
            last_modified=last_modified,
        )
        self._slots[feed_type] = entry
        return entry

    def touch(
        self,
        feed_type: FeedType,
        now: float,
        etag: Optional[str] = None,
        last_modified: Optional[str] = None,
    ) -> Optional[CachedFeedEntry]:
        """Restart the TTL window of an unchanged entry without replacing its content."""

        entry = self._slots[feed_type]
        if entry is None:
            return None
        renewed = replace(
            entry,
            fetched_at=now,
            etag=etag or entry.etag,
            last_modified=last_modified or entry.last_modified,
        )
        self._slots[feed_type] = renewed
        return renewed

    def drop(self, feed_type: FeedType) -> Optional[CachedFeedEntry]:
        """Empty the slot for ``feed_type`` and return what it held."""

        entry = self._slots[feed_type]
        self._slots[feed_type] = None
        return entry

    def feed_types(self) -> Iterator[FeedType]:
        """Feed types that currently hold an entry."""

        return (feed_type for feed_type, entry in self._slots.items() if entry is not None)

    def __len__(self) -> int:
        return sum(1 for _ in self.feed_types())
