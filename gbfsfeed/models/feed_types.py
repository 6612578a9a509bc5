"""Closed set of GBFS sub-feeds the loader knows how to poll."""
from __future__ import annotations

from enum import Enum
from typing import Optional

DISCOVERY_FEED_NAME = "gbfs"


class FeedType(str, Enum):
    """GBFS sub-feed kinds; values are the feed names used in discovery manifests."""

    gbfs_versions = "gbfs_versions"
    system_information = "system_information"
    vehicle_types = "vehicle_types"
    station_information = "station_information"
    station_status = "station_status"
    free_bike_status = "free_bike_status"
    system_alerts = "system_alerts"
    system_calendar = "system_calendar"
    system_hours = "system_hours"
    system_pricing_plans = "system_pricing_plans"
    system_regions = "system_regions"
    geofencing_zones = "geofencing_zones"

    @classmethod
    def from_name(cls, name: str) -> Optional["FeedType"]:
        """Return the feed type for a manifest feed name, or None if unknown."""

        try:
            return cls(name)
        except ValueError:
            return None
