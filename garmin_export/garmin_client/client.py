"""Garmin Connect activity client with re-authentication on session expiry."""

from __future__ import annotations

import functools
import logging
import threading
from typing import Any, Dict, Iterator, List, Optional, cast

import requests

from ..config import (
    ACTIVITY_PAGE_SIZE,
    DEFAULT_ACTIVITY_LIMIT,
    MAX_AUTH_ATTEMPTS,
    REQUEST_TIMEOUT,
    URL_ACTIVITY_DOWNLOAD,
    URL_ACTIVITY_SEARCH,
)
from ..errors import (
    AuthError,
    DecodeFailedError,
    ForbiddenError,
    InvalidInputError,
    NetworkError,
)
from ..models import Activity, Credentials
from .archive import ArchiveExtractor
from .auth import SessionAuthenticator
from .rate_limiter import RateLimiter
from .response_handling import Outcome, classify_response

__all__ = ["ActivityClient"]

LOGGER = logging.getLogger(__name__)


class ActivityClient:
    """List and download activities over one self-healing session.

    Construction logs in once. Every call is rate limited; a call rejected
    because the session expired re-runs the login and is retried, up to
    ``max_attempts`` requests in total. Other failures are raised at once.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        limiter: RateLimiter | None = None,
        authenticator: SessionAuthenticator | None = None,
        extractor: ArchiveExtractor | None = None,
        max_attempts: int = MAX_AUTH_ATTEMPTS,
        timeout: int = REQUEST_TIMEOUT,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._limiter = limiter or RateLimiter()
        self._authenticator = authenticator or SessionAuthenticator(self._limiter)
        self._extractor = extractor or ArchiveExtractor()
        self._max_attempts = max_attempts
        self._timeout = timeout
        # Credentials stay bound to the authenticator call, not on the client.
        self._login = functools.partial(self._authenticator.authenticate, credentials)
        self._session_lock = threading.Lock()
        # Serializes logins so one expiry seen by several threads logs in once.
        self._reauth_lock = threading.Lock()
        # Superseded sessions may still be in use by another thread until close().
        self._retired: List[requests.Session] = []
        self._session: requests.Session = self._login()

    def __enter__(self) -> "ActivityClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        with self._session_lock:
            sessions = self._retired + [self._session]
            self._retired = []
        for session in sessions:
            session.close()

    def reauthenticate(self, stale: Optional[requests.Session] = None) -> None:
        """Log in again and replace the current session wholesale.

        When ``stale`` is given and the current session is no longer that one,
        another caller already logged in and nothing is done.
        """

        with self._reauth_lock:
            with self._session_lock:
                if stale is not None and self._session is not stale:
                    LOGGER.debug("Session already replaced; skipping login")
                    return
            new_session = self._login()
            with self._session_lock:
                self._retired.append(self._session)
                self._session = new_session

    def list_activities(
        self, offset: int = 0, limit: int = DEFAULT_ACTIVITY_LIMIT
    ) -> List[Activity]:
        """Return activities in server order, newest first."""

        if offset < 0:
            raise InvalidInputError("offset must be >= 0")
        if limit < 1:
            raise InvalidInputError("limit must be >= 1")
        response = self._get(
            URL_ACTIVITY_SEARCH,
            {"start": offset, "limit": limit},
            "activity search",
        )
        try:
            payload = response.json()
        except ValueError as exc:
            raise DecodeFailedError("activity search returned non-JSON payload") from exc
        if not isinstance(payload, list):
            raise DecodeFailedError(
                f"activity search returned {type(payload).__name__}, expected a list"
            )
        activities = [Activity.from_json(record) for record in payload]
        LOGGER.debug(
            "Listed %d activities (start=%s limit=%s)", len(activities), offset, limit
        )
        return activities

    def iter_activities(
        self, count: Optional[int] = None, page_size: int = ACTIVITY_PAGE_SIZE
    ) -> Iterator[Activity]:
        """Yield up to ``count`` activities (all when None), one page at a time."""

        if count is not None and count < 0:
            raise InvalidInputError("count must be >= 0")
        if page_size < 1:
            raise InvalidInputError("page_size must be >= 1")
        fetched = 0
        while count is None or fetched < count:
            limit = page_size if count is None else min(page_size, count - fetched)
            page = self.list_activities(offset=fetched, limit=limit)
            page = page[:limit]
            yield from page
            fetched += len(page)
            if len(page) < limit:
                return

    def download_activity(self, activity_id: int) -> bytes:
        """Return the original activity file, unpacked from its ZIP wrapper."""

        if isinstance(activity_id, bool) or not isinstance(activity_id, int):
            raise InvalidInputError(f"Invalid activity id {activity_id!r}")
        context = f"download activity {activity_id}"
        response = self._get(f"{URL_ACTIVITY_DOWNLOAD}{activity_id}", None, context)
        return self._extractor.extract(response.content)

    def _get(
        self, url: str, params: Optional[Dict[str, Any]], context: str
    ) -> requests.Response:
        stale: Optional[requests.Session] = None
        for attempt in range(1, self._max_attempts + 1):
            if stale is not None:
                try:
                    self.reauthenticate(stale)
                except AuthError as exc:
                    if attempt == self._max_attempts:
                        LOGGER.error(
                            "%s re-authentication failed on last attempt: %s",
                            context,
                            exc,
                        )
                        raise
                    LOGGER.warning(
                        "%s re-authentication failed on attempt %d/%d: %s",
                        context,
                        attempt,
                        self._max_attempts,
                        exc,
                    )
                    continue
                stale = None

            with self._session_lock:
                session = self._session
            self._limiter.wait()
            try:
                response = session.get(url, params=params, timeout=self._timeout)
            except requests.RequestException as exc:
                message = f"{context} network error: {exc.__class__.__name__}"
                LOGGER.error(message)
                raise NetworkError(message) from exc

            outcome, error = classify_response(
                response,
                context,
                is_session_expired=self._authenticator.is_session_expired,
            )
            if outcome is Outcome.OK:
                return response
            if outcome is Outcome.RAISE:
                raise cast(Exception, error)
            if attempt == self._max_attempts:
                break
            LOGGER.info(
                "%s unauthorized on attempt %d/%d; re-authenticating",
                context,
                attempt,
                self._max_attempts,
            )
            stale = session

        message = f"{context} forbidden after {self._max_attempts} attempts"
        LOGGER.error(message)
        raise ForbiddenError(message)
