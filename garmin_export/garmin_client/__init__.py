"""Garmin Connect client components (rate limiter, login, archive, client)."""

from .archive import ArchiveExtractor, extract_single_member  # noqa: F401
from .auth import SessionAuthenticator, extract_ticket_url  # noqa: F401
from .client import ActivityClient  # noqa: F401
from .rate_limiter import RateLimiter  # noqa: F401
from .session import create_session  # noqa: F401
