"""
Error types shared by the routing, geolocation, contact and SOS flows.

Every failure is scoped to the user action that triggered it; callers catch
these at the call site and turn them into a single notification (or a JSON
error response in the API).
"""


class SafePathError(Exception):
    """Base class for all application errors."""

    status_code = 500

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(SafePathError):
    """A required field is missing; raised before any network or store call."""

    status_code = 400


class LookupMissError(SafePathError):
    """The service answered, but had nothing for the query."""

    status_code = 404


class LocationNotFound(LookupMissError):
    pass


class RouteNotFound(LookupMissError):
    pass


class ServiceError(SafePathError):
    """Network failure, non-2xx status or an unparseable response body."""

    status_code = 502

    def __init__(self, message, url=None, status=None):
        super().__init__(message, url=url, status=status)
        self.url = url
        self.status = status


class GeolocationError(SafePathError):
    """The device (or reported) position could not be obtained."""

    status_code = 503


class AuthError(SafePathError):
    status_code = 401
