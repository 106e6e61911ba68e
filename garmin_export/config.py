"""Central configuration for the Garmin Connect exporter.

All values are constants imported by the rest of the package. Most of them can
be overridden through environment variables (optionally via a local `.env`).
Credentials are never stored here; see :func:`garmin_export.main.resolve_credentials`.
"""

from __future__ import annotations

import os
from typing import Callable, TypeVar

from dotenv import load_dotenv

T = TypeVar("T")

# Pick up GARMIN_* overrides from a .env in the working directory or a parent.
load_dotenv()


def _flag(raw: str) -> bool:
    word = raw.strip().lower()
    if word not in {"1", "true", "yes", "on", "0", "false", "no", "off"}:
        raise ValueError(raw)
    return word in {"1", "true", "yes", "on"}


def _env(key: str, default: T, parse: Callable[[str], T]) -> T:
    """Read ``GARMIN_<key>``; unset or unparsable values fall back to ``default``."""

    raw = os.getenv(f"GARMIN_{key}")
    if raw is None:
        return default
    try:
        return parse(raw)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Garmin endpoints
# ---------------------------------------------------------------------------
GARMIN_SSO_URL = os.getenv("GARMIN_SSO_URL", "https://sso.garmin.com")
GARMIN_SSO_SIGNIN_URL = f"{GARMIN_SSO_URL}/sso/signin"

GARMIN_BASE_URL = os.getenv("GARMIN_BASE_URL", "https://connect.garmin.com")
# The "service" the SSO ticket is issued for; also the start of the redirect chain.
GARMIN_APP_URL = f"{GARMIN_BASE_URL}/modern"
GARMIN_LEGACY_SESSION_URL = f"{GARMIN_BASE_URL}/legacy/session"

GARMIN_PROXY_URL = f"{GARMIN_APP_URL}/proxy"
URL_ACTIVITY_SEARCH = (
    f"{GARMIN_PROXY_URL}/activitylist-service/activities/search/activities"
)
URL_ACTIVITY_DOWNLOAD = f"{GARMIN_PROXY_URL}/download-service/files/activity/"

# Tell Garmin we're some supported browser.
USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/54.0.2816.0 Safari/537.36"
)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------
# Total attempts per API call; every attempt after the first re-authenticates.
MAX_AUTH_ATTEMPTS = _env("MAX_AUTH_ATTEMPTS", 3, int)

# Upper bound on manually followed redirects from the app URL after login.
MAX_REDIRECT_HOPS = _env("MAX_REDIRECT_HOPS", 10, int)

# Walk the app URL redirect chain once the ticket has been claimed.
FOLLOW_APP_REDIRECTS = _env("FOLLOW_APP_REDIRECTS", True, _flag)

# Hit the legacy session endpoint after login. Failures are only logged.
LEGACY_SESSION_PING = _env("LEGACY_SESSION_PING", True, _flag)


# ---------------------------------------------------------------------------
# HTTP behaviour
# ---------------------------------------------------------------------------
# Minimum spacing (seconds) between the starts of two outbound requests.
RATE_LIMIT_INTERVAL_SECONDS = _env("RATE_LIMIT_INTERVAL", 2.0, float)

# Request timeout in seconds.
REQUEST_TIMEOUT = _env("REQUEST_TIMEOUT", 30, int)

# HTTP session pool sizes.
HTTP_POOL_CONNECTIONS = 4
HTTP_POOL_MAXSIZE = 4

# Connection-level retries done by urllib3. Kept at 0 so transport failures
# surface to the caller; raise it for flaky networks.
HTTP_CONNECT_RETRIES = _env("HTTP_CONNECT_RETRIES", 0, int)


# ---------------------------------------------------------------------------
# Listing / export
# ---------------------------------------------------------------------------
# Activities returned by a bare list call.
DEFAULT_ACTIVITY_LIMIT = 5

# Page size used when walking the full activity list.
ACTIVITY_PAGE_SIZE = _env("ACTIVITY_PAGE_SIZE", 100, int)

# Extension of the files written by the exporter (the download is a FIT file).
EXPORT_FILE_EXTENSION = os.getenv("GARMIN_EXPORT_FILE_EXTENSION", "fit")

# Log level used when the CLI is not given -v flags.
LOG_LEVEL = os.getenv("GARMIN_EXPORT_LOG_LEVEL", "INFO")
