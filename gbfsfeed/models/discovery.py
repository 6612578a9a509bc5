"""Discovery manifest (``gbfs.json``) model."""
from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from gbfsfeed.exceptions import DiscoveryMalformed
from gbfsfeed.models.feed_types import DISCOVERY_FEED_NAME, FeedType
from gbfsfeed.models.feeds import GBFSFeed, GBFSModel

logger = logging.getLogger(__name__)


class DiscoveryFeedEntry(GBFSModel):
    name: str
    url: str


class DiscoveryLanguage(GBFSModel):
    feeds: List[DiscoveryFeedEntry]


class GBFSDiscovery(GBFSFeed):
    """Manifest listing sub-feed URLs.

    GBFS 2.x nests the feed list under a language code
    (``data.<lang>.feeds``); 3.x drops the language level (``data.feeds``).
    Both shapes are accepted.
    """

    data: Union[DiscoveryLanguage, Dict[str, DiscoveryLanguage]]

    def languages(self) -> List[str]:
        """Language codes declared by the manifest (empty for 3.x manifests)."""

        if isinstance(self.data, DiscoveryLanguage):
            return []
        return list(self.data)

    def feeds_for(self, language: Optional[str] = None) -> List[Tuple[FeedType, str]]:
        """Return ``(feed_type, url)`` pairs for ``language``.

        ``None`` selects the first declared language. Raises ``KeyError`` when
        the manifest has no section for the requested language.
        """

        if isinstance(self.data, DiscoveryLanguage):
            section = self.data
        else:
            if not self.data:
                raise KeyError(language)
            key = language if language is not None else next(iter(self.data))
            section = self.data[key]
        pairs: List[Tuple[FeedType, str]] = []
        for entry in section.feeds:
            if entry.name == DISCOVERY_FEED_NAME:
                continue
            feed_type = FeedType.from_name(entry.name)
            if feed_type is None:
                logger.debug("Ignoring unknown feed %r listed at %s", entry.name, entry.url)
                continue
            pairs.append((feed_type, entry.url))
        return pairs


def parse_discovery(raw: bytes, url: str) -> GBFSDiscovery:
    """Parse raw manifest bytes, raising ``DiscoveryMalformed`` on any shape error."""

    try:
        payload = json.loads(raw)
    except ValueError as err:
        raise DiscoveryMalformed(url, f"invalid JSON ({err})") from err
    if not isinstance(payload, dict):
        raise DiscoveryMalformed(url, "document is not a JSON object")
    try:
        return GBFSDiscovery.model_validate(payload)
    except ValidationError as err:
        raise DiscoveryMalformed(url, f"{err.error_count()} schema error(s)") from err
