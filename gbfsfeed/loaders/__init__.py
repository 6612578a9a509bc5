"""Loaders for GBFS discovery manifests and sub-feeds."""

from .cache import CachedFeedEntry, FeedCache
from .discovery import DiscoveryManifest, DiscoveryResolver
from .gbfs import GBFSLoader
from .http import FeedFetcher, FetchResult

__all__ = [
    "CachedFeedEntry",
    "DiscoveryManifest",
    "DiscoveryResolver",
    "FeedCache",
    "FeedFetcher",
    "FetchResult",
    "GBFSLoader",
]
