"""HTTP session factory for Garmin Connect calls."""

from __future__ import annotations

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import (
    HTTP_CONNECT_RETRIES,
    HTTP_POOL_CONNECTIONS,
    HTTP_POOL_MAXSIZE,
    MAX_REDIRECT_HOPS,
    USER_AGENT,
)

__all__ = ["create_session"]


def _build_retry() -> Retry:
    # Only connection setup is retried; statuses are handled by the client.
    return Retry(
        total=HTTP_CONNECT_RETRIES,
        connect=HTTP_CONNECT_RETRIES,
        read=0,
        status=0,
        backoff_factor=1.0,
        allowed_methods=["GET", "POST"],
        raise_on_status=False,
    )


def create_session() -> Session:
    """Return a new, cookie-less session. One is built per authentication."""

    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=HTTP_POOL_CONNECTIONS,
        pool_maxsize=HTTP_POOL_MAXSIZE,
        max_retries=_build_retry(),
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.max_redirects = MAX_REDIRECT_HOPS
    session.headers.update(
        {
            "User-Agent": USER_AGENT,
            "Accept-Encoding": "gzip, deflate",
            # necessary since 2021-02-23 to avoid http error code 402
            "nk": "NT",
        }
    )
    return session
