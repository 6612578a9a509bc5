"""HTTP transport used by the discovery resolver and the feed loader."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import requests

from gbfsfeed.config import RequestAuthenticator
from gbfsfeed.exceptions import FeedFetchFailed


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a (possibly conditional) GET."""

    content: Optional[bytes]
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    not_modified: bool = False


class FeedFetcher:
    """Fetch raw bytes over a pooled ``requests`` session.

    One fetcher is owned by each loader; headers, the authentication hook and
    the timeout are bound at construction.
    """

    def __init__(
        self,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
        authenticator: Optional[RequestAuthenticator] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._session = session or requests.Session()
        self._session.headers.update(headers or {})
        self._timeout = timeout
        self._authenticator = authenticator

    def fetch(self, url: str, etag: Optional[str] = None, last_modified: Optional[str] = None) -> FetchResult:
        conditional: Dict[str, str] = {}
        if etag:
            conditional["If-None-Match"] = etag
        if last_modified:
            conditional["If-Modified-Since"] = last_modified
        try:
            response = self._session.get(
                url,
                headers=conditional or None,
                timeout=self._timeout,
                auth=self._authenticator,
            )
        except requests.Timeout as err:
            raise FeedFetchFailed(url, f"timed out after {self._timeout}s") from err
        except requests.RequestException as err:
            raise FeedFetchFailed(url, str(err)) from err
        except Exception as err:
            # raised by the authenticator while the request is being prepared
            raise FeedFetchFailed(url, f"request preparation failed: {type(err).__name__}: {err}") from err
        if response.status_code == 304:
            return FetchResult(content=None, etag=etag, last_modified=last_modified, not_modified=True)
        if not response.ok:
            raise FeedFetchFailed(url, f"HTTP {response.status_code}")
        return FetchResult(
            content=response.content,
            etag=response.headers.get("ETag"),
            last_modified=response.headers.get("Last-Modified"),
        )

    def close(self) -> None:
        self._session.close()
