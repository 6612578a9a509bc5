"""GBFS feed identities and document models."""

from .discovery import DiscoveryFeedEntry, DiscoveryLanguage, GBFSDiscovery, parse_discovery
from .feed_types import DISCOVERY_FEED_NAME, FeedType
from .feeds import (
    DEFAULT_TTL_SECONDS,
    FEED_MODELS,
    FreeBikeStatus,
    GBFSFeed,
    GBFSVersions,
    GeofencingZones,
    StationInformation,
    StationStatus,
    SystemAlerts,
    SystemCalendar,
    SystemHours,
    SystemInformation,
    SystemPricingPlans,
    SystemRegions,
    VehicleTypes,
    effective_ttl,
    parse_feed,
)

__all__ = [
    "DEFAULT_TTL_SECONDS",
    "DISCOVERY_FEED_NAME",
    "DiscoveryFeedEntry",
    "DiscoveryLanguage",
    "FEED_MODELS",
    "FeedType",
    "FreeBikeStatus",
    "GBFSDiscovery",
    "GBFSFeed",
    "GBFSVersions",
    "GeofencingZones",
    "StationInformation",
    "StationStatus",
    "SystemAlerts",
    "SystemCalendar",
    "SystemHours",
    "SystemInformation",
    "SystemPricingPlans",
    "SystemRegions",
    "VehicleTypes",
    "effective_ttl",
    "parse_discovery",
    "parse_feed",
]
