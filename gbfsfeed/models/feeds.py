"""Pydantic models mirroring the GBFS sub-feed documents.

The models only pin down the envelope and the top-level collections of each
feed; everything else is kept as-is via ``extra="allow"`` so that operator
extensions and newer minor versions survive a round trip through the cache.
"""
from __future__ import annotations

import json
import math
from typing import Annotated, Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

from gbfsfeed.exceptions import FeedParseFailed
from gbfsfeed.models.feed_types import FeedType

DEFAULT_TTL_SECONDS = 60

# Operators publish identifiers as JSON numbers as often as strings.
FeedId = Annotated[str, BeforeValidator(lambda value: value if value is None else str(value))]


class GBFSModel(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)


class GBFSFeed(GBFSModel):
    """Common envelope shared by every GBFS document."""

    last_updated: Union[int, float, str, None] = None
    ttl: Optional[float] = None
    version: Optional[FeedId] = None
    data: Any = None

    @field_validator("ttl", mode="before")
    @classmethod
    def _coerce_ttl(cls, value: Any) -> Optional[float]:
        if value is None or isinstance(value, bool):
            return None
        try:
            ttl = float(value)
        except (TypeError, ValueError):
            return None
        return ttl if math.isfinite(ttl) else None


class Station(GBFSModel):
    station_id: FeedId
    name: Any = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    capacity: Optional[int] = None


class StationStatusEntry(GBFSModel):
    station_id: FeedId
    num_bikes_available: Optional[int] = None
    num_docks_available: Optional[int] = None
    is_installed: Union[bool, int, None] = None
    is_renting: Union[bool, int, None] = None
    is_returning: Union[bool, int, None] = None
    last_reported: Union[int, float, str, None] = None


class Vehicle(GBFSModel):
    bike_id: Optional[FeedId] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    station_id: Optional[FeedId] = None
    vehicle_type_id: Optional[FeedId] = None
    is_reserved: Union[bool, int, None] = None
    is_disabled: Union[bool, int, None] = None


class VehicleType(GBFSModel):
    vehicle_type_id: FeedId
    form_factor: Optional[str] = None
    propulsion_type: Optional[str] = None


class GBFSVersionsData(GBFSModel):
    versions: List[Dict[str, Any]] = Field(default_factory=list)


class SystemInformationData(GBFSModel):
    system_id: FeedId
    language: Optional[str] = None
    name: Any = None
    timezone: Optional[str] = None


class VehicleTypesData(GBFSModel):
    vehicle_types: List[VehicleType] = Field(default_factory=list)


class StationInformationData(GBFSModel):
    stations: List[Station] = Field(default_factory=list)


class StationStatusData(GBFSModel):
    stations: List[StationStatusEntry] = Field(default_factory=list)


class FreeBikeStatusData(GBFSModel):
    bikes: List[Vehicle] = Field(default_factory=list)


class SystemAlertsData(GBFSModel):
    alerts: List[Dict[str, Any]] = Field(default_factory=list)


class SystemCalendarData(GBFSModel):
    calendars: List[Dict[str, Any]] = Field(default_factory=list)


class SystemHoursData(GBFSModel):
    rental_hours: List[Dict[str, Any]] = Field(default_factory=list)


class SystemPricingPlansData(GBFSModel):
    plans: List[Dict[str, Any]] = Field(default_factory=list)


class SystemRegionsData(GBFSModel):
    regions: List[Dict[str, Any]] = Field(default_factory=list)


class GeofencingZonesData(GBFSModel):
    geofencing_zones: Dict[str, Any] = Field(default_factory=dict)


class GBFSVersions(GBFSFeed):
    data: GBFSVersionsData


class SystemInformation(GBFSFeed):
    data: SystemInformationData


class VehicleTypes(GBFSFeed):
    data: VehicleTypesData


class StationInformation(GBFSFeed):
    data: StationInformationData


class StationStatus(GBFSFeed):
    data: StationStatusData


class FreeBikeStatus(GBFSFeed):
    data: FreeBikeStatusData


class SystemAlerts(GBFSFeed):
    data: SystemAlertsData


class SystemCalendar(GBFSFeed):
    data: SystemCalendarData


class SystemHours(GBFSFeed):
    data: SystemHoursData


class SystemPricingPlans(GBFSFeed):
    data: SystemPricingPlansData


class SystemRegions(GBFSFeed):
    data: SystemRegionsData


class GeofencingZones(GBFSFeed):
    data: GeofencingZonesData


FEED_MODELS: Dict[FeedType, Type[GBFSFeed]] = {
    FeedType.gbfs_versions: GBFSVersions,
    FeedType.system_information: SystemInformation,
    FeedType.vehicle_types: VehicleTypes,
    FeedType.station_information: StationInformation,
    FeedType.station_status: StationStatus,
    FeedType.free_bike_status: FreeBikeStatus,
    FeedType.system_alerts: SystemAlerts,
    FeedType.system_calendar: SystemCalendar,
    FeedType.system_hours: SystemHours,
    FeedType.system_pricing_plans: SystemPricingPlans,
    FeedType.system_regions: SystemRegions,
    FeedType.geofencing_zones: GeofencingZones,
}


def parse_feed(feed_type: FeedType, raw: bytes) -> GBFSFeed:
    """Parse raw JSON bytes into the model registered for ``feed_type``."""

    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, ValueError) as err:
        raise FeedParseFailed(feed_type.value, f"invalid JSON ({err})") from err
    if not isinstance(payload, dict):
        raise FeedParseFailed(feed_type.value, "document is not a JSON object")
    try:
        return FEED_MODELS[feed_type].model_validate(payload)
    except ValidationError as err:
        raise FeedParseFailed(feed_type.value, f"{err.error_count()} schema error(s)") from err


def effective_ttl(feed: GBFSFeed, default: float = DEFAULT_TTL_SECONDS) -> float:
    """Return the refresh interval declared by ``feed`` or ``default`` if unusable."""

    if feed.ttl is None or feed.ttl <= 0:
        return float(default)
    return feed.ttl
