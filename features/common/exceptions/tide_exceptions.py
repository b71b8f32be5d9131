from typing import Optional

class TideServiceError(Exception):
    """Base exception for tide and station errors."""
    pass

class StationNotFoundError(TideServiceError):
    """Raised when a station (or cached key) cannot be found in any source."""
    pass

class InterpolationError(TideServiceError):
    """Raised when a series cannot answer a query."""
    pass

class OutOfRangeError(InterpolationError):
    """Raised when the query time falls outside the covered series."""
    pass

class NoDataError(InterpolationError):
    """Raised when interpolation is requested over an empty series."""
    pass

class UpstreamUnavailableError(TideServiceError):
    """Raised on network errors, timeouts and non-success upstream responses."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

class InvalidRequestError(TideServiceError):
    """Raised when request parameters are invalid. Detected before any I/O."""
    pass

class CacheWriteError(TideServiceError):
    """Raised when a cache record cannot be written."""
    pass
