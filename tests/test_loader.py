from gbfsfeed.exceptions import FeedFetchFailed
import requests

from gbfsfeed.loaders import FeedFetcher, FetchResult, GBFSLoader
from gbfsfeed.models import FeedType

from tests.helpers import (
    CannedAdapter,
    DISCOVERY_URL,
    FakeFetcher,
    discovery_payload,
    feed_url,
    station_information,
    station_status,
)


def _loader(fetcher, clock, **kwargs) -> GBFSLoader:
    return GBFSLoader(DISCOVERY_URL, fetcher=fetcher, clock=clock, **kwargs)


def _two_feed_fetcher() -> FakeFetcher:
    return FakeFetcher(
        {
            DISCOVERY_URL: discovery_payload(["station_information", "station_status"]),
            feed_url("station_information"): station_information(ttl=3600),
            feed_url("station_status"): station_status(ttl=10),
        }
    )


def test_feeds_are_refetched_only_after_their_ttl(clock):
    fetcher = _two_feed_fetcher()
    loader = _loader(fetcher, clock)

    assert loader.update() is True
    assert fetcher.urls() == [DISCOVERY_URL, feed_url("station_information"), feed_url("station_status")]
    assert loader.is_setup_complete()

    fetcher.reset()
    clock.advance(2)
    assert loader.update() is False
    assert fetcher.urls() == []

    fetcher.reset()
    clock.advance(13)
    fetcher.responses[feed_url("station_status")] = station_status(ttl=10, bikes=7)
    assert loader.update() is True
    assert fetcher.urls() == [feed_url("station_status")]
    assert loader.get_feed(FeedType.station_status).data.stations[0].num_bikes_available == 7


def test_unchanged_body_is_not_a_change(clock):
    fetcher = _two_feed_fetcher()
    loader = _loader(fetcher, clock)
    loader.update()
    first = loader.get_entry(FeedType.station_status)

    clock.advance(15)
    assert loader.update() is False
    renewed = loader.get_entry(FeedType.station_status)
    assert renewed.fetched_at == clock.now
    assert renewed.raw is first.raw

    fetcher.reset()
    clock.advance(5)
    assert loader.update() is False
    assert fetcher.urls() == []


def test_not_modified_renews_entry_and_sends_validators(clock):
    fetcher = _two_feed_fetcher()
    fetcher.responses[feed_url("station_status")] = FetchResult(content=station_status(), etag='"abc"')
    loader = _loader(fetcher, clock)
    loader.update()

    fetcher.reset()
    fetcher.responses[feed_url("station_status")] = FetchResult(content=None, etag='"abc"', not_modified=True)
    clock.advance(10)
    assert loader.update() is False
    assert fetcher.calls == [(feed_url("station_status"), '"abc"', None)]
    assert loader.get_entry(FeedType.station_status).fetched_at == clock.now


def test_discovery_failure_on_first_pass(clock):
    fetcher = FakeFetcher({DISCOVERY_URL: FeedFetchFailed(DISCOVERY_URL, "HTTP 503")})
    loader = _loader(fetcher, clock)
    assert loader.update() is False
    assert not loader.is_setup_complete()
    assert fetcher.urls() == [DISCOVERY_URL]
    assert loader.get_discovery_feed() is None

    # retried on the next pass
    clock.advance(1)
    loader.update()
    assert fetcher.urls() == [DISCOVERY_URL, DISCOVERY_URL]


def test_malformed_discovery_never_completes_setup(clock):
    fetcher = FakeFetcher({DISCOVERY_URL: b"<html>oops</html>"})
    loader = _loader(fetcher, clock)
    assert loader.update() is False
    assert not loader.is_setup_complete()


def test_failed_discovery_refresh_keeps_previous_manifest(clock):
    fetcher = _two_feed_fetcher()
    loader = _loader(fetcher, clock, discovery_refresh_seconds=60)
    loader.update()
    manifest = loader.get_discovery_feed()

    fetcher.responses[DISCOVERY_URL] = FeedFetchFailed(DISCOVERY_URL, "timed out")
    clock.advance(60)
    fetcher.responses[feed_url("station_status")] = station_status(bikes=9)
    assert loader.update() is True
    assert loader.get_discovery_feed() is manifest
    assert loader.is_setup_complete()

    # the failed refresh waits a full interval before the next attempt
    fetcher.reset()
    clock.advance(10)
    loader.update()
    assert DISCOVERY_URL not in fetcher.urls()


def test_discovery_refresh_only_counts_as_no_change(clock):
    fetcher = FakeFetcher(
        {
            DISCOVERY_URL: discovery_payload(["station_information"]),
            feed_url("station_information"): station_information(ttl=3600),
        }
    )
    loader = _loader(fetcher, clock, discovery_refresh_seconds=60)
    loader.update()
    fetcher.reset()
    clock.advance(60)
    assert loader.update() is False
    assert fetcher.urls() == [DISCOVERY_URL]


def test_feed_failure_is_isolated_and_keeps_stale_entry(clock):
    fetcher = _two_feed_fetcher()
    loader = _loader(fetcher, clock)
    loader.update()
    stale = loader.get_raw_feed(FeedType.station_status)

    clock.advance(10)
    fetcher.responses[feed_url("station_status")] = FeedFetchFailed(feed_url("station_status"), "HTTP 500")
    assert loader.update() is False
    assert loader.get_raw_feed(FeedType.station_status) == stale

    clock.advance(10)
    fetcher.responses[feed_url("station_status")] = b"{\"data\": \"garbage\""
    assert loader.update() is False
    assert loader.get_raw_feed(FeedType.station_status) == stale
    assert loader.get_feed(FeedType.station_information) is not None


def test_one_broken_feed_does_not_block_others(clock):
    fetcher = FakeFetcher(
        {
            DISCOVERY_URL: discovery_payload(["station_information", "system_alerts", "station_status"]),
            feed_url("station_information"): station_information(),
            feed_url("station_status"): station_status(),
        }
    )
    loader = _loader(fetcher, clock)
    assert loader.update() is True
    assert loader.get_feed(FeedType.system_alerts) is None
    assert loader.get_raw_feed(FeedType.system_alerts) is None
    assert loader.get_feed(FeedType.station_status) is not None


def test_every_fetch_failing_returns_false(clock):
    fetcher = FakeFetcher({DISCOVERY_URL: discovery_payload(["station_information", "station_status"])})
    loader = _loader(fetcher, clock)
    assert loader.update() is False
    assert loader.is_setup_complete()
    assert loader.entries() == {}


def test_feed_absent_from_manifest_is_never_requested(clock):
    fetcher = _two_feed_fetcher()
    loader = _loader(fetcher, clock)
    loader.update()
    assert feed_url("free_bike_status") not in fetcher.urls()
    assert loader.get_feed(FeedType.free_bike_status) is None


def test_missing_ttl_uses_default(clock):
    fetcher = _two_feed_fetcher()
    fetcher.responses[feed_url("station_status")] = station_status(ttl=0)
    loader = _loader(fetcher, clock, default_ttl_seconds=30)
    loader.update()
    assert loader.get_entry(FeedType.station_status).ttl == 30

    fetcher.reset()
    clock.advance(29)
    loader.update()
    assert feed_url("station_status") not in fetcher.urls()


def test_language_selection(clock):
    fetcher = FakeFetcher(
        {
            DISCOVERY_URL: discovery_payload(["station_status"], languages=("en", "sv")),
            "https://gbfs.example.com/gbfs/sv/station_status.json": station_status(),
        }
    )
    loader = _loader(fetcher, clock, language_code="sv")
    assert loader.update() is True
    assert loader.manifest.language == "sv"


def test_unknown_language_is_a_discovery_failure(clock):
    fetcher = _two_feed_fetcher()
    loader = _loader(fetcher, clock, language_code="de")
    assert loader.update() is False
    assert not loader.is_setup_complete()


def test_close_releases_fetcher(clock):
    fetcher = _two_feed_fetcher()
    loader = _loader(fetcher, clock)
    loader.close()
    assert fetcher.closed


def test_authenticator_error_only_affects_its_feed(clock):
    def authenticate(request):
        if request.url.endswith("station_status.json"):
            raise KeyError("token expired")
        return request

    adapter = CannedAdapter(
        {
            DISCOVERY_URL: discovery_payload(["station_information", "station_status"]),
            feed_url("station_information"): station_information(),
            feed_url("station_status"): station_status(),
        }
    )
    session = requests.Session()
    session.mount("https://", adapter)
    loader = _loader(FeedFetcher(session=session, authenticator=authenticate), clock)

    assert loader.update() is True
    assert loader.get_feed(FeedType.station_information) is not None
    assert loader.get_feed(FeedType.station_status) is None
    assert feed_url("station_status") not in adapter.sent

    clock.advance(10)
    assert loader.update() is False


def test_authenticator_error_on_discovery_is_contained(clock):
    def authenticate(request):
        raise RuntimeError("token endpoint down")

    session = requests.Session()
    session.mount("https://", CannedAdapter({DISCOVERY_URL: discovery_payload(["station_status"])}))
    loader = _loader(FeedFetcher(session=session, authenticator=authenticate), clock)
    assert loader.update() is False
    assert not loader.is_setup_complete()


def test_unexpected_fetcher_error_is_isolated(clock):
    fetcher = _two_feed_fetcher()
    fetcher.responses[feed_url("station_information")] = RuntimeError("bug")
    loader = _loader(fetcher, clock)
    assert loader.update() is True
    assert loader.get_feed(FeedType.station_status) is not None


def test_feed_dropped_from_manifest_leaves_the_cache(clock):
    fetcher = _two_feed_fetcher()
    loader = _loader(fetcher, clock, discovery_refresh_seconds=60)
    loader.update()
    assert loader.get_feed(FeedType.station_information) is not None

    fetcher.responses[DISCOVERY_URL] = discovery_payload(["station_status"])
    fetcher.responses[feed_url("station_status")] = station_status(bikes=5)
    clock.advance(60)
    assert loader.update() is True
    assert loader.get_feed(FeedType.station_information) is None
    assert loader.get_raw_feed(FeedType.station_information) is None
    assert set(loader.entries()) == {FeedType.station_status}


def test_moved_feed_is_refetched_without_old_validators(clock):
    moved = "https://mirror.example.com/station_status.json"
    fetcher = _two_feed_fetcher()
    fetcher.responses[feed_url("station_status")] = FetchResult(content=station_status(), etag='"old"')
    loader = _loader(fetcher, clock, discovery_refresh_seconds=60)
    loader.update()

    fetcher.responses[DISCOVERY_URL] = discovery_payload(["station_information", "station_status"]).replace(
        feed_url("station_status").encode(), moved.encode()
    )
    fetcher.responses[moved] = station_status()
    fetcher.reset()
    clock.advance(60)
    assert loader.update() is True
    assert (moved, None, None) in fetcher.calls
    assert feed_url("station_status") not in fetcher.urls()
