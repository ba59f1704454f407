from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from errors import FetchError

log = logging.getLogger(__name__)


def make_session(retries: int = 3) -> requests.Session:
    """Session with retry on transient 5xx responses."""
    session = requests.Session()
    retry_strategy = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=[500, 502, 503, 504],
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class BlobFetcher:
    """
    Reads raw document bytes from an http(s) URL, a file:// URL or a plain path.
    Called once per entry per session; safe to share across loader threads.
    """
    def __init__(self, session: Optional[requests.Session] = None):
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = make_session()
        return self._session

    def fetch(self, location: str, timeout: float = 30.0) -> bytes:
        scheme = urlparse(location).scheme.lower()
        if scheme in ("http", "https"):
            return self._fetch_http(location, timeout)
        if scheme == "file":
            return self._fetch_file(Path(unquote(urlparse(location).path)), location)
        return self._fetch_file(Path(location).expanduser(), location)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    # ------------- internals -------------
    def _fetch_http(self, url: str, timeout: float) -> bytes:
        log.debug("GET %s", url)
        try:
            response = self.session.get(url, timeout=timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            kind = FetchError.NOT_FOUND if status == 404 else FetchError.NETWORK
            raise FetchError(url, kind, f"HTTP {status}") from e
        except requests.exceptions.RequestException as e:
            raise FetchError(url, FetchError.NETWORK, str(e)) from e
        return response.content

    def _fetch_file(self, path: Path, location: str) -> bytes:
        if not path.is_file():
            raise FetchError(location, FetchError.NOT_FOUND)
        try:
            return path.read_bytes()
        except OSError as e:
            raise FetchError(location, FetchError.NETWORK, str(e)) from e
