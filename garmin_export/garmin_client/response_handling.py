"""Shared HTTP response helpers for Garmin Connect API calls."""

from __future__ import annotations

import enum
import logging
from typing import Callable, Optional, Tuple

import requests

from ..errors import HTTPStatusError

__all__ = [
    "Outcome",
    "classify_response",
    "error_detail",
]

LOGGER = logging.getLogger(__name__)


class Outcome(enum.Enum):
    OK = "ok"
    REAUTH = "reauth"
    RAISE = "raise"


def classify_response(
    response: requests.Response,
    context: str,
    *,
    is_session_expired: Callable[[requests.Response], bool],
) -> Tuple[Outcome, Optional[Exception]]:
    """Return what to do with a response: use it, re-authenticate, or raise."""

    status = response.status_code
    if is_session_expired(response):
        LOGGER.warning("%s rejected the session (status %s)", context, status)
        return Outcome.REAUTH, None

    if 200 <= status < 300:
        return Outcome.OK, None

    detail = error_detail(response)
    message = f"{context} request failed (status {status})"
    if detail:
        message = f"{message} | {detail}"
    if status == 404:
        LOGGER.info(message)
    else:
        LOGGER.error(message)
    return Outcome.RAISE, HTTPStatusError(status, message)


def error_detail(response: requests.Response, limit: int = 200) -> Optional[str]:
    """Return the server's explanation for a failed call, if it gave one.

    Garmin answers API errors either with JSON carrying a ``message`` or with
    a plain text / HTML page; the latter is shortened to ``limit`` chars.
    """

    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        message = data.get("message")
        return str(message) if message else None
    text = (response.text or "").strip()
    if not text:
        return None
    return text if len(text) <= limit else f"{text[:limit]}..."
