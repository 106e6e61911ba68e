"""Central error types used across the application."""

from __future__ import annotations


class GarminExportError(RuntimeError):
    """Base error for everything the exporter reports to the caller."""


class InvalidInputError(GarminExportError):
    """Raised for missing credentials or bad arguments."""


class AuthError(GarminExportError):
    """Raised when the SSO login handshake fails."""


class TicketNotFoundError(AuthError):
    """Raised when the sign-in response carries no ticket URL."""


class TicketRejectedError(AuthError):
    """Raised when claiming the ticket URL returns a non-success status."""


class TooManyRedirectsError(AuthError):
    """Raised when the post-login redirect chain exceeds the hop cap."""


class GarminAPIError(GarminExportError):
    """Base error for Garmin Connect API failures."""


class ForbiddenError(GarminAPIError):
    """Raised when a call is still unauthorized after all re-authentications."""


class HTTPStatusError(GarminAPIError):
    """Raised for an unexpected, non-retryable HTTP status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeFailedError(GarminAPIError):
    """Raised when a response body does not have the expected shape."""


class NetworkError(GarminAPIError):
    """Raised when a request fails at the transport level."""


class ArchiveError(GarminExportError):
    """Base error for downloaded payloads that cannot be unpacked."""


class CorruptArchiveError(ArchiveError):
    """Raised when the payload is not a readable ZIP archive."""


class UnexpectedMemberCountError(ArchiveError):
    """Raised when the archive does not hold exactly one member."""

    def __init__(self, count: int) -> None:
        super().__init__(f"Expected exactly one archive member, found {count}")
        self.count = count


class ExportIOError(GarminExportError):
    """Raised when an exported file cannot be written."""


__all__ = [
    "GarminExportError",
    "InvalidInputError",
    "AuthError",
    "TicketNotFoundError",
    "TicketRejectedError",
    "TooManyRedirectsError",
    "GarminAPIError",
    "ForbiddenError",
    "HTTPStatusError",
    "DecodeFailedError",
    "NetworkError",
    "ArchiveError",
    "CorruptArchiveError",
    "UnexpectedMemberCountError",
    "ExportIOError",
]
