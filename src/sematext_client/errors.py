"""
Custom exceptions for the Sematext client.

Provides the retryable / permanent error taxonomy consumed by the outer
retry pipeline, plus helpers to classify HTTP responses and transport errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ExporterError(Exception):
    """Base error for the Sematext client."""

    pass


class RetryableError(ExporterError):
    """The same payload may succeed on a later attempt."""

    pass


class PermanentError(ExporterError):
    """Resending the payload unchanged would fail identically."""

    pass


class TransportError(RetryableError):
    """No response received (connection failure, timeout, cancellation)."""

    pass


class EncodingError(PermanentError):
    """Malformed or unsupported value; aborts the current line/batch."""

    pass


class ResponseError(ExporterError):
    """Mixin carrying the HTTP status and response body of a failed write."""

    def __init__(self, message: str, status_code: int, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RetryableServerError(ResponseError, RetryableError):
    """5xx from the receiver."""

    pass


class PermanentClientError(ResponseError, PermanentError):
    """Non-2xx, non-5xx from the receiver (bad request, bad credentials...)."""

    pass


class ConfigurationError(ExporterError, ValueError):
    """Invalid region / URL / schema / token at construction time."""

    pass


class NoClientError(ExporterError):
    """No bulk client registered for the requested endpoint."""

    pass


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    PERMANENT = "permanent"


@dataclass(frozen=True)
class Outcome:
    """Result of a single transmission. Consumed immediately by the caller."""

    kind: OutcomeKind
    reason: str = ""
    status_code: Optional[int] = None

    @classmethod
    def success(cls, status_code: Optional[int] = None) -> "Outcome":
        return cls(OutcomeKind.SUCCESS, "", status_code)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    def raise_for_outcome(self, body: str = "") -> None:
        if self.kind is OutcomeKind.RETRYABLE:
            raise RetryableServerError(self.reason, self.status_code or 0, body)
        if self.kind is OutcomeKind.PERMANENT:
            raise PermanentClientError(self.reason, self.status_code or 0, body)


def classify_status(status_code: int, reason: str = "") -> Outcome:
    """Map an HTTP status code onto success / retryable / permanent."""
    if 200 <= status_code < 300:
        return Outcome.success(status_code)
    if 500 <= status_code < 600:
        return Outcome(OutcomeKind.RETRYABLE, reason, status_code)
    return Outcome(OutcomeKind.PERMANENT, reason, status_code)


def is_retryable(e: BaseException) -> bool:
    """True when the outer pipeline may re-attempt the same payload."""
    return isinstance(e, RetryableError)


def map_http_error(e: Exception) -> ExporterError:
    import httpx

    if isinstance(e, ExporterError):
        return e
    if isinstance(e, httpx.TimeoutException):
        return TransportError(f"request timed out: {e}")
    if isinstance(e, httpx.TransportError):
        return TransportError(f"request failed: {e}")
    if isinstance(e, httpx.InvalidURL):
        return ConfigurationError(f"invalid URL: {e}")
    return ExporterError(str(e))
