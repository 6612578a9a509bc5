"""A subscription binds one GBFS loader to one delivery consumer."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from gbfsfeed.config import SubscriptionOptions
from gbfsfeed.exceptions import SubscriptionNotInitialized, ValidationCollaboratorFailed
from gbfsfeed.loaders import FeedFetcher, GBFSLoader
from gbfsfeed.models import (
    DISCOVERY_FEED_NAME,
    FeedType,
    FreeBikeStatus,
    GBFSDiscovery,
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
)
from gbfsfeed.validation import FeedValidator, JsonSchemaFeedValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GBFSDelivery:
    """Point-in-time snapshot of every feed a system currently publishes.

    Feed types that were never fetched are absent from ``feeds``. When
    validation is enabled either ``validation_result`` or
    ``validation_error`` is set; both are None when it is disabled.
    """

    discovery: GBFSDiscovery
    feeds: Mapping[FeedType, GBFSFeed]
    validation_result: Optional[Any] = None
    validation_error: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    def get(self, feed_type: FeedType) -> Optional[GBFSFeed]:
        return self.feeds.get(feed_type)

    def __contains__(self, feed_type: object) -> bool:
        return feed_type in self.feeds

    @property
    def validation_failed(self) -> bool:
        return self.validation_error is not None

    @property
    def versions(self) -> Optional[GBFSVersions]:
        return self.feeds.get(FeedType.gbfs_versions)

    @property
    def system_information(self) -> Optional[SystemInformation]:
        return self.feeds.get(FeedType.system_information)

    @property
    def vehicle_types(self) -> Optional[VehicleTypes]:
        return self.feeds.get(FeedType.vehicle_types)

    @property
    def station_information(self) -> Optional[StationInformation]:
        return self.feeds.get(FeedType.station_information)

    @property
    def station_status(self) -> Optional[StationStatus]:
        return self.feeds.get(FeedType.station_status)

    @property
    def free_bike_status(self) -> Optional[FreeBikeStatus]:
        return self.feeds.get(FeedType.free_bike_status)

    @property
    def system_alerts(self) -> Optional[SystemAlerts]:
        return self.feeds.get(FeedType.system_alerts)

    @property
    def system_calendar(self) -> Optional[SystemCalendar]:
        return self.feeds.get(FeedType.system_calendar)

    @property
    def system_hours(self) -> Optional[SystemHours]:
        return self.feeds.get(FeedType.system_hours)

    @property
    def system_pricing_plans(self) -> Optional[SystemPricingPlans]:
        return self.feeds.get(FeedType.system_pricing_plans)

    @property
    def system_regions(self) -> Optional[SystemRegions]:
        return self.feeds.get(FeedType.system_regions)

    @property
    def geofencing_zones(self) -> Optional[GeofencingZones]:
        return self.feeds.get(FeedType.geofencing_zones)


Consumer = Callable[[GBFSDelivery], Any]


class Subscription:
    """Poll one system and push a :class:`GBFSDelivery` whenever it changed."""

    def __init__(
        self,
        options: SubscriptionOptions,
        consumer: Consumer,
        validator: Optional[FeedValidator] = None,
        fetcher: Optional[FeedFetcher] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.options = options
        self._consumer = consumer
        self._validator = validator
        self._fetcher = fetcher
        self._clock = clock
        self._loader: Optional[GBFSLoader] = None
        self._closed = False

    @property
    def loader(self) -> GBFSLoader:
        if self._loader is None:
            raise SubscriptionNotInitialized(
                "Subscription used before init()", {"discovery_url": self.options.discovery_url}
            )
        return self._loader

    @property
    def closed(self) -> bool:
        return self._closed

    def init(self) -> None:
        """Create the loader; must be called exactly once before the first tick."""

        if self._loader is not None:
            raise RuntimeError("Subscription already initialized")
        self._loader = GBFSLoader.from_options(self.options, fetcher=self._fetcher, clock=self._clock)

    def is_setup_complete(self) -> bool:
        return self.loader.is_setup_complete()

    def tick(self) -> Optional[GBFSDelivery]:
        """Update the loader and deliver if anything changed.

        Returns the delivery handed to the consumer, or None when nothing
        was delivered. Consumer exceptions propagate to the caller.
        """

        loader = self.loader
        if self._closed or not loader.update():
            return None
        delivery = self._build_delivery(loader)
        self._consumer(delivery)
        return delivery

    update = tick

    def close(self) -> None:
        """Stop future ticks and release the loader's connections."""

        self._closed = True
        if self._loader is not None:
            self._loader.close()

    def _build_delivery(self, loader: GBFSLoader) -> GBFSDelivery:
        entries = loader.entries()
        discovery = loader.get_discovery_feed()
        feeds = MappingProxyType({feed_type: entry.parsed for feed_type, entry in entries.items()})
        if not self.options.enable_validation:
            return GBFSDelivery(discovery=discovery, feeds=feeds)

        raw_feeds: Dict[str, bytes] = {}
        raw_discovery = loader.get_raw_discovery_feed()
        if raw_discovery is not None:
            raw_feeds[DISCOVERY_FEED_NAME] = raw_discovery
        for feed_type, entry in entries.items():
            raw_feeds[feed_type.value] = entry.raw
        try:
            result = self._validate(raw_feeds)
        except ValidationCollaboratorFailed as err:
            logger.warning("Validation skipped for %s: %s", loader.discovery_url, err)
            return GBFSDelivery(discovery=discovery, feeds=feeds, validation_error=err.message)
        return GBFSDelivery(discovery=discovery, feeds=feeds, validation_result=result)

    def _validate(self, raw_feeds: Mapping[str, bytes]) -> Any:
        validator = self._validator or JsonSchemaFeedValidator()
        try:
            return validator.validate(raw_feeds)
        except Exception as err:
            raise ValidationCollaboratorFailed(f"{type(err).__name__}: {err}") from err
