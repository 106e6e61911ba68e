"""Garmin SSO login handshake.

The sign-in form answers with an HTML page that embeds the service ticket URL
in a JavaScript assignment (``response_url = "https:\\/\\/..."``). Claiming that
URL upgrades the session cookies. All handshake requests are sent with
``allow_redirects=False`` so each step sees the raw response it depends on;
redirects after login are followed by hand with a hop cap.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Optional
from urllib.parse import urljoin

import requests

from ..config import (
    FOLLOW_APP_REDIRECTS,
    GARMIN_APP_URL,
    GARMIN_LEGACY_SESSION_URL,
    GARMIN_SSO_SIGNIN_URL,
    GARMIN_SSO_URL,
    LEGACY_SESSION_PING,
    MAX_REDIRECT_HOPS,
    REQUEST_TIMEOUT,
)
from ..errors import (
    AuthError,
    TicketNotFoundError,
    TicketRejectedError,
    TooManyRedirectsError,
)
from ..models import Credentials
from .rate_limiter import RateLimiter
from .session import create_session

__all__ = ["SessionAuthenticator", "extract_ticket_url"]

LOGGER = logging.getLogger(__name__)

TICKET_URL_PATTERN = re.compile(r'response_url\s*=\s*"(https:[^"]+)"')
REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


def extract_ticket_url(body: str) -> str:
    """Return the ticket URL embedded in the sign-in response body."""

    match = TICKET_URL_PATTERN.search(body or "")
    if not match:
        raise TicketNotFoundError(
            "Did not get a ticket in the login response. Wrong username or password?"
        )
    return match.group(1).replace("\\/", "/")


def _redirect_location(response: Any) -> Optional[str]:
    if response.status_code not in REDIRECT_STATUSES:
        return None
    headers = getattr(response, "headers", None) or {}
    return headers.get("Location") or None


def _points_to_sso(url: Optional[str]) -> bool:
    return bool(url) and str(url).startswith(GARMIN_SSO_URL)


class SessionAuthenticator:
    """Exchange credentials for an authenticated ``requests.Session``."""

    def __init__(
        self,
        limiter: RateLimiter,
        *,
        session_factory: Callable[[], requests.Session] = create_session,
        timeout: int = REQUEST_TIMEOUT,
        follow_app_redirects: bool = FOLLOW_APP_REDIRECTS,
        max_redirect_hops: int = MAX_REDIRECT_HOPS,
        legacy_session_ping: bool = LEGACY_SESSION_PING,
    ) -> None:
        if max_redirect_hops < 0:
            raise ValueError("max_redirect_hops must be >= 0")
        self._limiter = limiter
        self._session_factory = session_factory
        self._timeout = timeout
        self._follow_app_redirects = follow_app_redirects
        self._max_redirect_hops = max_redirect_hops
        self._legacy_session_ping = legacy_session_ping

    def authenticate(self, credentials: Credentials) -> requests.Session:
        """Run the full handshake on a fresh session and return it."""

        credentials.validate()
        LOGGER.info("Authenticating user=%s", credentials.masked_username)
        session = self._session_factory()

        response = self._send(
            session,
            "POST",
            GARMIN_SSO_SIGNIN_URL,
            "sign-in",
            params={"service": GARMIN_APP_URL},
            data={
                "username": credentials.username,
                "password": credentials.password,
                "embed": "false",
            },
            headers={"Origin": GARMIN_SSO_URL},
        )
        if response.status_code >= 400:
            raise AuthError(f"Sign-in failed with status {response.status_code}")

        ticket_url = extract_ticket_url(response.text)
        LOGGER.debug("Claiming the authentication ticket")
        response = self._send(session, "GET", ticket_url, "ticket claim")
        if response.status_code >= 400:
            raise TicketRejectedError(
                f"Ticket claim failed with status {response.status_code}"
            )

        if self._legacy_session_ping:
            self._ping_legacy_session(session)
        if self._follow_app_redirects:
            self._follow_redirects(session, GARMIN_APP_URL)

        LOGGER.info("Authenticated user=%s", credentials.masked_username)
        return session

    def is_session_expired(self, response: Any) -> bool:
        """Return True when ``response`` shows the session is no longer valid."""

        if response.status_code in (401, 403):
            return True
        if _points_to_sso(getattr(response, "url", None)):
            return True
        if _points_to_sso(_redirect_location(response)):
            return True
        for previous in getattr(response, "history", None) or ():
            if _points_to_sso(_redirect_location(previous)):
                return True
        return False

    def _send(
        self,
        session: requests.Session,
        method: str,
        url: str,
        context: str,
        **kwargs: Any,
    ) -> requests.Response:
        self._limiter.wait()
        try:
            response = session.request(
                method,
                url,
                timeout=self._timeout,
                allow_redirects=False,
                **kwargs,
            )
        except requests.RequestException as exc:
            LOGGER.error("%s request failed: %s", context, exc.__class__.__name__)
            raise AuthError(
                f"{context} request failed: {exc.__class__.__name__}"
            ) from exc
        LOGGER.debug("%s returned status=%s", context, response.status_code)
        return response

    def _ping_legacy_session(self, session: requests.Session) -> None:
        LOGGER.debug("Pinging legacy endpoint")
        self._limiter.wait()
        try:
            response = session.request(
                "GET",
                GARMIN_LEGACY_SESSION_URL,
                timeout=self._timeout,
                allow_redirects=False,
            )
        except requests.RequestException as exc:
            LOGGER.warning(
                "Legacy session ping failed (%s); continuing",
                exc.__class__.__name__,
            )
            return
        if response.status_code >= 400:
            LOGGER.warning(
                "Legacy session ping returned status=%s; continuing",
                response.status_code,
            )

    def _follow_redirects(self, session: requests.Session, start_url: str) -> None:
        url = start_url
        for hop in range(self._max_redirect_hops + 1):
            response = self._send(session, "GET", url, f"redirect hop {hop}")
            location = _redirect_location(response)
            if location is None:
                if response.status_code >= 400:
                    raise AuthError(
                        f"Redirect chain ended with status {response.status_code} at {url}"
                    )
                return
            if _points_to_sso(location):
                raise AuthError("Redirected back to sign-in after claiming the ticket")
            url = urljoin(url, location)
        raise TooManyRedirectsError(
            f"More than {self._max_redirect_hops} redirects starting at {start_url}"
        )
