"""Errors raised while proxying a download."""
from __future__ import annotations


class ProxyError(Exception):
    """Base class for proxy failures."""


class InputError(ProxyError):
    """The caller supplied a missing or non-http(s) URL."""

    def __init__(self, message: str = "Invalid url") -> None:
        super().__init__(message)


class UpstreamStatusError(ProxyError):
    """The upstream server answered with a non-2xx status."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Upstream returned {status_code}")
        self.status_code = status_code


class StreamError(ProxyError):
    """Reading the upstream body or writing to the caller failed."""

    def __init__(self, message: str = "Stream error", headers_sent: bool = False) -> None:
        super().__init__(message)
        self.headers_sent = headers_sent
