"""HTTP clients and the retry helper shared by the downloader and uploader."""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Mapping, TypeVar

import requests
from requests.adapters import HTTPAdapter

log = logging.getLogger(__name__)

T = TypeVar("T")

_STATELESS_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:60.1) Gecko/20100101 Firefox/60.1"
_STATEFUL_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 Chrome/63.0.3239.108"
_CONNECT_TIMEOUT = 60
_MAX_RETRIES = 3
_MAX_WAIT = 64.0


def retry(func: Callable[[], T]) -> T:
    """Call ``func``, retrying up to three times with jittered exponential backoff."""
    retries = _MAX_RETRIES
    wait = 1
    while True:
        try:
            return func()
        except Exception as exc:
            if retries <= 0:
                raise
            retries -= 1
            wait *= 2
            delay = min(random.uniform(0.0, 1.0) + wait, _MAX_WAIT)
            log.info(
                "Retry attempt #%d. Sleeping %.3fs before the next attempt. %s",
                _MAX_RETRIES - retries,
                delay,
                exc,
            )
            time.sleep(delay)


def generate_buvid() -> str:
    """Return a random device identifier of the form ``Y`` followed by 35 hex digits."""
    dummy = [random.randrange(0, 0xF) for _ in range(32)]
    prefix = [dummy[i] for i in (2, 12, 22)]
    return "Y" + "".join(f"{n:X}" for n in prefix + dummy)


def _session(user_agent: str, headers: Mapping[str, str] | None, proxy: str | None) -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = user_agent
    if headers:
        session.headers.update(headers)
    if proxy:
        log.debug("使用代理: %s", proxy)
        session.proxies = {"http": proxy, "https": proxy}
    return session


class StatelessClient:
    """A client without cookies, used for fetching streams and uploading chunks."""

    def __init__(self, headers: Mapping[str, str] | None = None, proxy: str | None = None) -> None:
        self.client = _session(_STATELESS_UA, headers, proxy)
        self.client_with_middleware = _session(_STATELESS_UA, headers, proxy)
        adapter = HTTPAdapter(max_retries=5)
        self.client_with_middleware.mount("http://", adapter)
        self.client_with_middleware.mount("https://", adapter)
        self.headers: dict[str, str] = {}

    def retryable(self, url: str) -> requests.Response:
        """GET ``url`` as a stream, retrying on transport errors; raise on HTTP error status."""
        response = retry(
            lambda: self.client.get(
                url,
                headers=dict(self.headers),
                stream=True,
                timeout=(_CONNECT_TIMEOUT, None),
            )
        )
        response.raise_for_status()
        return response


class StatefulClient:
    """A client that keeps cookies between requests, used for account operations."""

    def __init__(self, headers: Mapping[str, str] | None = None, proxy: str | None = None) -> None:
        self.client = _session(_STATEFUL_UA, headers, proxy)
        self.cookie_store = self.client.cookies
        self.buvid = generate_buvid()