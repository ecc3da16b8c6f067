"""
Error kinds surfaced by the request transport.

Every failed call ends up as exactly one of:

- ``ApiError``: the server answered and rejected the call
- ``NetworkError``: the HTTP exchange itself failed (connect, TLS, timeout, read)
- ``DecodeError``: the body is not JSON or does not match the declared result type

The transport never recovers from any of them; retry policy belongs to the
caller (see ``botwire.dispatcher``).
"""

from __future__ import annotations

from typing import Optional

from .types import ResponseParameters


class RequestError(Exception):
    """Base class for every failure of a bot API call."""


class ApiError(RequestError):
    """The server returned ``ok: false``."""

    def __init__(
        self,
        status_code: int,
        description: str,
        *,
        error_code: Optional[int] = None,
        parameters: Optional[ResponseParameters] = None,
    ):
        super().__init__(status_code, description)
        self.status_code = status_code
        self.description = description
        self.error_code = error_code
        self.parameters = parameters

    @property
    def retry_after(self) -> Optional[int]:
        if self.parameters is None:
            return None
        return self.parameters.retry_after

    def __str__(self) -> str:
        return f"Telegram error #{self.status_code}: {self.description}"


class NetworkError(RequestError):
    """The HTTP exchange failed before a full response body was read."""

    def __init__(self, cause: BaseException):
        super().__init__(cause)
        self.cause = cause

    def __str__(self) -> str:
        return f"Network error: {self.cause}"


class DecodeError(RequestError):
    """The response body could not be decoded into the expected type."""

    def __init__(self, cause: BaseException, raw: Optional[str] = None):
        super().__init__(cause)
        self.cause = cause
        self.raw = raw

    def __str__(self) -> str:
        return f"InvalidJson error caused by: {self.cause}"
