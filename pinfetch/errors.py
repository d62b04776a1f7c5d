"""
Error taxonomy shared by the extraction core and the HTTP layer.

Every error carries the HTTP status the service answers with, so the
exception handlers in main.py only need to read `status_code` and `message`.
"""

from typing import Optional


class ExtractionError(Exception):
    """Base class for failures the service reports to callers."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidURLError(ExtractionError):
    """Request body did not carry a supported Pinterest URL."""

    status_code = 400


class ResolutionError(ExtractionError):
    """A pin.it short link could not be followed to a pin page."""

    status_code = 422


class TransportError(ExtractionError):
    """Timeout, DNS or connection failure while talking to Pinterest."""

    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"

    def __init__(self, message: str, kind: str = UNREACHABLE):
        super().__init__(message, status_code=504 if kind == self.TIMEOUT else 502)
        self.kind = kind


class UpstreamStatusError(ExtractionError):
    """Pinterest answered the page fetch with a non-2xx status."""

    def __init__(self, upstream_status: int):
        self.upstream_status = upstream_status
        if upstream_status == 404:
            status, message = 404, (
                "Pinterest pin not found. The URL may be invalid or the pin may have been deleted."
            )
        elif upstream_status in (401, 403):
            status, message = 403, "Access denied by Pinterest. The pin may be private."
        elif upstream_status == 429:
            status, message = 429, (
                "Pinterest is rate-limiting our requests. Please try again in a moment."
            )
        else:
            status, message = 502, (
                f"Pinterest returned an unexpected response (HTTP {upstream_status}). Please try again."
            )
        super().__init__(message, status_code=status)


class UnresolvedMediaError(ExtractionError):
    """Every strategy ran and none produced a media URL."""

    status_code = 422
    severity = "advisory"

    MESSAGE = (
        "Could not extract media from this pin. "
        "The pin may be private, deleted, or Pinterest may have changed its page structure."
    )

    def __init__(self, message: str = MESSAGE):
        super().__init__(message)


class RateLimitExceeded(ExtractionError):
    """Caller exceeded the fixed-window request quota."""

    status_code = 429

    def __init__(self, limit: int, retry_after: int):
        super().__init__(
            f"Rate limit exceeded. You may make up to {limit} requests per minute."
        )
        self.retry_after = retry_after


class Unauthorized(ExtractionError):
    """Missing or wrong bearer token."""

    status_code = 401

    def __init__(self):
        super().__init__(
            'Unauthorized. Provide a valid API key via "Authorization: Bearer <key>".'
        )
