"""Exception types shared by the retrieval and pipeline packages."""

from __future__ import annotations

from typing import Optional


class WiwoError(RuntimeError):
    """Base class for every error raised by wiwo."""


class InvalidTimeRange(WiwoError, ValueError):
    """A duration token such as ``30d`` could not be understood."""


class InvalidFormat(InvalidTimeRange):
    """The token is too short or its numeric prefix is not an integer."""


class InvalidUnit(InvalidTimeRange):
    """The trailing unit character is not one of d, w, m, y."""


class TransportFailure(WiwoError):
    """DNS, connect, or timeout failure that survived every retry."""

    def __init__(self, url: str, cause: Optional[BaseException] = None) -> None:
        self.url = url
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"request to {url} failed{detail}")


class RateLimited(WiwoError):
    """The API reported an exhausted quota whose reset is too far away."""

    def __init__(self, endpoint: str, wait_seconds: int) -> None:
        self.endpoint = endpoint
        self.wait_seconds = wait_seconds
        super().__init__(
            f"rate limit exhausted for {endpoint}; reset in {wait_seconds}s exceeds the wait ceiling"
        )


class ParseFailure(WiwoError):
    """A response body or event item did not have the expected shape."""


__all__ = [
    "WiwoError",
    "InvalidTimeRange",
    "InvalidFormat",
    "InvalidUnit",
    "TransportFailure",
    "RateLimited",
    "ParseFailure",
]
