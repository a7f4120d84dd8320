"""Error types shared by the client and the reading pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Callable, TypeVar

import httpx

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    NOT_AUTHENTICATED = "NotAuthenticated"
    NETWORK = "Network"
    CLIENT = "Client"
    SERVER = "Server"
    RESPONSE = "Response"


class GlowmarktError(Exception):
    """A failure talking to the Glowmarkt API.

    ``kind`` says what went wrong in broad terms so callers can decide whether
    to treat it as an absent result (``NOT_FOUND``), re-authenticate
    (``NOT_AUTHENTICATED``) or give up.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    @classmethod
    def from_http_error(cls, error: httpx.HTTPError) -> GlowmarktError:
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            if status == httpx.codes.NOT_FOUND:
                kind = ErrorKind.NOT_FOUND
            elif status == httpx.codes.UNAUTHORIZED:
                kind = ErrorKind.NOT_AUTHENTICATED
            elif status >= 500:
                kind = ErrorKind.SERVER
            else:
                kind = ErrorKind.CLIENT
        else:
            kind = ErrorKind.NETWORK
        return cls(kind, str(error))


class UnsupportedPeriodError(ValueError):
    pass


class InvalidRangeError(ValueError):
    pass


def maybe(fn: Callable[..., T], *args, **kwargs) -> T | None:
    """Call ``fn`` and map a ``NOT_FOUND`` failure to ``None``."""
    try:
        return fn(*args, **kwargs)
    except GlowmarktError as e:
        if e.kind is ErrorKind.NOT_FOUND:
            return None
        raise
