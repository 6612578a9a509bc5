import json
from typing import Callable, Dict, List, Optional, Tuple, Union

import requests
from requests.adapters import BaseAdapter

from gbfsfeed.exceptions import FeedFetchFailed
from gbfsfeed.loaders import FetchResult

BASE_URL = "https://gbfs.example.com/gbfs"
DISCOVERY_URL = f"{BASE_URL}/gbfs.json"

Response = Union[bytes, Exception, Callable[[], bytes], FetchResult]


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """In-memory stand-in for ``FeedFetcher`` keyed by URL."""

    def __init__(self, responses: Optional[Dict[str, Response]] = None) -> None:
        self.responses: Dict[str, Response] = dict(responses or {})
        self.calls: List[Tuple[str, Optional[str], Optional[str]]] = []
        self.closed = False

    def fetch(self, url: str, etag: Optional[str] = None, last_modified: Optional[str] = None) -> FetchResult:
        self.calls.append((url, etag, last_modified))
        if url not in self.responses:
            raise FeedFetchFailed(url, "HTTP 404")
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, FetchResult):
            return response
        if callable(response):
            response = response()
        return FetchResult(content=response)

    def urls(self) -> List[str]:
        return [url for url, _, _ in self.calls]

    def reset(self) -> None:
        self.calls.clear()

    def close(self) -> None:
        self.closed = True


def feed_url(name: str) -> str:
    return f"{BASE_URL}/en/{name}.json"


def discovery_payload(names: List[str], languages: Tuple[str, ...] = ("en",)) -> bytes:
    data = {
        language: {"feeds": [{"name": name, "url": f"{BASE_URL}/{language}/{name}.json"} for name in names]}
        for language in languages
    }
    return json.dumps({"last_updated": 1700000000, "ttl": 0, "version": "2.3", "data": data}).encode()


def feed_payload(data: dict, ttl: Optional[int] = 60, last_updated: int = 1700000000) -> bytes:
    payload = {"last_updated": last_updated, "version": "2.3", "data": data}
    if ttl is not None:
        payload["ttl"] = ttl
    return json.dumps(payload).encode()


def station_information(ttl: int = 3600, count: int = 2) -> bytes:
    stations = [
        {"station_id": f"S{i}", "name": f"Station {i}", "lat": 57.7 + i / 100, "lon": 11.9, "capacity": 10}
        for i in range(count)
    ]
    return feed_payload({"stations": stations}, ttl=ttl)


def station_status(ttl: int = 10, bikes: int = 3) -> bytes:
    stations = [
        {"station_id": "S0", "num_bikes_available": bikes, "num_docks_available": 10 - bikes, "is_renting": True},
        {"station_id": "S1", "num_bikes_available": 0, "num_docks_available": 10, "is_renting": True},
    ]
    return feed_payload({"stations": stations}, ttl=ttl)


def system_information(ttl: int = 3600) -> bytes:
    return feed_payload({"system_id": "example", "language": "en", "name": "Example Bikes"}, ttl=ttl)


class CannedAdapter(BaseAdapter):
    """Transport adapter answering from a URL to bytes table, 404 otherwise."""

    def __init__(self, bodies: Dict[str, bytes]) -> None:
        super().__init__()
        self.bodies = bodies
        self.sent: List[str] = []

    def send(self, request, **kwargs) -> requests.Response:
        self.sent.append(request.url)
        response = requests.Response()
        response.status_code = 200 if request.url in self.bodies else 404
        response._content = self.bodies.get(request.url, b"")
        response.url = request.url
        response.request = request
        return response

    def close(self) -> None:
        pass
