"""Exception types shared by the feed client layers."""
from __future__ import annotations

from typing import Optional


class FeedError(Exception):
    """Base class for every failure raised by the feed client."""


class ParseError(FeedError, ValueError):
    """Malformed version, version range, archive or feed payload."""


class TransportError(FeedError):
    """The HTTP fetch failed: timeout, DNS, TLS or a non-2xx status."""

    def __init__(self, message: str, *, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class NotFoundError(TransportError):
    """The server answered 404; drives the GetUpdates fallback."""


class NotConfiguredError(FeedError):
    """A local package source points at a directory that does not exist."""
