"""Error taxonomy for the depth loader.

Every failure raised by obdepth is a DepthError carrying an ErrorKind, so
callers can pick a retry or abort policy per kind instead of per message.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    REMOTE_UNAVAILABLE = "REMOTE_UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMITED"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    CACHE_CORRUPT = "CACHE_CORRUPT"
    CACHE_IO = "CACHE_IO"
    RANGE_MISMATCH = "RANGE_MISMATCH"
    CURSOR_OUT_OF_RANGE = "CURSOR_OUT_OF_RANGE"
    PARSE_FAILURE = "PARSE_FAILURE"

    @property
    def is_retryable(self) -> bool:
        return self in (ErrorKind.REMOTE_UNAVAILABLE, ErrorKind.RATE_LIMITED)


class DepthError(Exception):
    """Base class for all depth loader failures."""

    kind: ErrorKind = ErrorKind.REMOTE_UNAVAILABLE

    @property
    def retryable(self) -> bool:
        return self.kind.is_retryable


class RemoteUnavailableError(DepthError):
    """Raised when the remote API cannot be reached or answers with an error."""

    kind = ErrorKind.REMOTE_UNAVAILABLE


class NoDataAvailableError(RemoteUnavailableError):
    """Raised when the API returns no download URL for a day."""


class RateLimitExceededError(DepthError):
    """Raised when rate-limit retries are exhausted."""

    kind = ErrorKind.RATE_LIMITED


class MalformedResponseError(DepthError):
    """Raised when a remote payload cannot be decoded or validated."""

    kind = ErrorKind.MALFORMED_RESPONSE


class IncompleteDayError(MalformedResponseError):
    """Raised when a day reduces to anything other than one sample per minute."""


class CacheCorruptError(DepthError):
    """Raised when a cache file body violates the per-pair length invariants."""

    kind = ErrorKind.CACHE_CORRUPT

    def __init__(self, message: str, pair: str = "") -> None:
        super().__init__(message)
        self.pair = pair


class CacheIOError(DepthError):
    """Raised when the cache file cannot be created, read or written."""

    kind = ErrorKind.CACHE_IO


class RangeMismatchError(DepthError):
    """Raised when a cache file covers a different range than requested."""

    kind = ErrorKind.RANGE_MISMATCH


class CursorOutOfRangeError(DepthError):
    """Raised when the cursor points past the end of a pair's series."""

    kind = ErrorKind.CURSOR_OUT_OF_RANGE


class ParseFailureError(DepthError):
    """Raised when a timestamp or numeric token cannot be parsed."""

    kind = ErrorKind.PARSE_FAILURE
