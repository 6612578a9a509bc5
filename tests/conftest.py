import pytest

from tests.helpers import (
    DISCOVERY_URL,
    FakeClock,
    FakeFetcher,
    discovery_payload,
    feed_url,
    station_information,
    station_status,
    system_information,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(
        {
            DISCOVERY_URL: discovery_payload(["system_information", "station_information", "station_status"]),
            feed_url("system_information"): system_information(),
            feed_url("station_information"): station_information(),
            feed_url("station_status"): station_status(),
        }
    )
