"""Exception hierarchy for the feed monitor."""

from typing import Optional


class FeedMonitorError(Exception):
    """Base class for all feed monitor errors."""


class ConfigValidationError(FeedMonitorError):
    """A settings value was outside its allowed set.

    Raised internally by option validation and always recovered by falling
    back to the default value.
    """

    def __init__(self, field: str, value, default):
        self.field = field
        self.value = value
        self.default = default
        super().__init__(f"Invalid value for {field}: {value!r} (using {default!r})")


class FetchError(FeedMonitorError):
    """A feed retrieval failed."""

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(message)


class TransportError(FetchError):
    """Network, DNS, TLS or timeout failure before a response was received."""


class HttpError(FetchError):
    """The server answered with a status other than 200."""

    def __init__(self, url: str, status: int, reason: Optional[str] = None):
        self.status = status
        self.reason = reason
        message = f"HTTP {status}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(url, message)
