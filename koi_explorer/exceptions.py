from __future__ import annotations

from typing import Optional


class KoiExplorerError(Exception):
    """Base exception for all koi_explorer errors"""
    pass


class FetchError(KoiExplorerError):
    """A search could not produce a result set. `message` is user-facing."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingParameter(FetchError):
    """No query was supplied"""
    pass


class UpstreamHTTPError(FetchError):
    """The catalog service answered with a non-2xx status"""

    def __init__(self, status: int, body: str = "", message: Optional[str] = None) -> None:
        super().__init__(message or f"HTTP {status}: {body}")
        self.status = status
        self.body = body


class UpstreamParseError(FetchError):
    """The catalog service answered with a body that is not JSON"""

    def __init__(self, body: str, message: str = "Invalid response format from NASA API") -> None:
        super().__init__(message)
        self.body = body


class TransportError(FetchError):
    """Network failure or timeout"""
    pass


class UnexpectedShape(FetchError):
    """The body parsed, but is not an array of records"""
    pass
