"""
Error taxonomy for SnapLink.

Each error carries the HTTP status it maps to, so the API layer can turn any
of them into a ``{status, message}`` body without knowing the details.
"""


class SnapLinkError(Exception):
    """Base class for all SnapLink errors"""

    status_code = 500
    message = "Internal error"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotFound(SnapLinkError):
    status_code = 404
    message = "Short URL not found"


class Unauthorized(SnapLinkError):
    status_code = 403
    message = "You are not authorized to access this URL"


class DuplicateCode(SnapLinkError):
    status_code = 409
    message = "Short code already exists"


class BackingStoreUnavailable(SnapLinkError):
    status_code = 503
    message = "Service temporarily unavailable"


class CacheUnavailable(SnapLinkError):
    """Raised inside cache backends only; never leaves the cache boundary."""

    status_code = 503
    message = "Cache unavailable"


class FeedbackRateLimited(SnapLinkError):
    status_code = 429
    message = "You can only provide feedback once a week"


class GeolocationError(SnapLinkError):
    """Geolocation lookup failed. Absorbed by the click aggregator."""

    status_code = 502
    message = "Geolocation lookup failed"
