"""Closed classification of transfer outcomes.

Every upload or delete attempt ends in exactly one ``TransferErrorKind``.
The persisted ``last_status`` string is derived from it (``success`` or
``error: <tag>``) so reporting code keeps reading plain strings.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """Failure taxonomy used for logging and reporting."""

    NONE = "none"
    ADMISSION = "admission"
    AUTHORIZATION = "authorization"
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    NOT_FOUND_AS_SUCCESS = "not_found_as_success"


class TransferErrorKind(str, Enum):
    SUCCESS = "success"
    ALREADY_ABSENT = "already absent"
    THROTTLED = "throttled (too many concurrent uploads)"
    INSUFFICIENT_PERMISSIONS = "insufficient permissions"
    NOT_CONFIGURED = "not enabled or configured"
    FILE_UNREADABLE = "file not found or not readable"
    READ_FAILED = "could not read file content"
    EMPTY_KEY = "empty remote key"
    TIMEOUT = "timeout"
    CONNECTION_FAILED = "connection failed"
    SSL_ERROR = "SSL/certificate issue"
    REQUEST_FAILED = "request failed"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not found"
    FILE_TOO_LARGE = "file too large"
    RATE_LIMITED = "rate limited"
    SERVER_ERROR = "server error"
    HTTP_ERROR = "HTTP"

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self]


_CATEGORIES = {
    TransferErrorKind.SUCCESS: ErrorCategory.NONE,
    TransferErrorKind.ALREADY_ABSENT: ErrorCategory.NOT_FOUND_AS_SUCCESS,
    TransferErrorKind.THROTTLED: ErrorCategory.ADMISSION,
    TransferErrorKind.INSUFFICIENT_PERMISSIONS: ErrorCategory.AUTHORIZATION,
    TransferErrorKind.NOT_CONFIGURED: ErrorCategory.CONFIGURATION,
    TransferErrorKind.FILE_UNREADABLE: ErrorCategory.VALIDATION,
    TransferErrorKind.READ_FAILED: ErrorCategory.VALIDATION,
    TransferErrorKind.EMPTY_KEY: ErrorCategory.VALIDATION,
    TransferErrorKind.TIMEOUT: ErrorCategory.TRANSPORT,
    TransferErrorKind.CONNECTION_FAILED: ErrorCategory.TRANSPORT,
    TransferErrorKind.SSL_ERROR: ErrorCategory.TRANSPORT,
    TransferErrorKind.REQUEST_FAILED: ErrorCategory.TRANSPORT,
    TransferErrorKind.UNAUTHORIZED: ErrorCategory.PROTOCOL,
    TransferErrorKind.FORBIDDEN: ErrorCategory.PROTOCOL,
    TransferErrorKind.NOT_FOUND: ErrorCategory.PROTOCOL,
    TransferErrorKind.FILE_TOO_LARGE: ErrorCategory.PROTOCOL,
    TransferErrorKind.RATE_LIMITED: ErrorCategory.PROTOCOL,
    TransferErrorKind.SERVER_ERROR: ErrorCategory.PROTOCOL,
    TransferErrorKind.HTTP_ERROR: ErrorCategory.PROTOCOL,
}

_SUCCESS_KINDS = frozenset({TransferErrorKind.SUCCESS, TransferErrorKind.ALREADY_ABSENT})

_STATUS_KINDS = {
    401: TransferErrorKind.UNAUTHORIZED,
    403: TransferErrorKind.FORBIDDEN,
    404: TransferErrorKind.NOT_FOUND,
    413: TransferErrorKind.FILE_TOO_LARGE,
    429: TransferErrorKind.RATE_LIMITED,
}


@dataclass(frozen=True)
class TransferOutcome:
    """Result classification plus a human-readable detail payload."""

    kind: TransferErrorKind
    status_code: Optional[int] = None
    detail: Optional[str] = None
    elapsed: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.kind in _SUCCESS_KINDS

    @property
    def category(self) -> ErrorCategory:
        return self.kind.category

    @property
    def status_tag(self) -> str:
        if self.kind is TransferErrorKind.SUCCESS:
            return "success"
        if self.kind is TransferErrorKind.ALREADY_ABSENT:
            return "success: already absent"
        if self.kind is TransferErrorKind.HTTP_ERROR:
            return f"error: HTTP {self.status_code}"
        if self.kind is TransferErrorKind.TIMEOUT and self.elapsed is not None:
            return f"error: timeout ({self.elapsed:.1f}s)"
        return f"error: {self.kind.value}"

    @classmethod
    def success(cls, status_code: Optional[int] = None, elapsed: Optional[float] = None) -> "TransferOutcome":
        return cls(TransferErrorKind.SUCCESS, status_code=status_code, elapsed=elapsed)

    @classmethod
    def failure(cls, kind: TransferErrorKind, detail: Optional[str] = None) -> "TransferOutcome":
        return cls(kind, detail=detail)


def classify_transport_error(
    message: str,
    elapsed: Optional[float] = None,
    detail: Optional[str] = None,
) -> TransferOutcome:
    """Map a transport-level error message onto the closed taxonomy.

    Checked in order: timeout, connection failure, TLS/certificate problem.
    A TLS handshake that reports a dropped connection counts as a connection
    failure. ``detail`` defaults to ``message``.
    """
    text = (message or "").lower()
    if "timeout" in text or "timed out" in text:
        kind = TransferErrorKind.TIMEOUT
    elif "connection" in text or "connect" in text:
        kind = TransferErrorKind.CONNECTION_FAILED
    elif "ssl" in text or "certificate" in text:
        kind = TransferErrorKind.SSL_ERROR
    else:
        kind = TransferErrorKind.REQUEST_FAILED
    return TransferOutcome(kind, detail=message if detail is None else detail, elapsed=elapsed)


def classify_http_status(
    status_code: int,
    detail: Optional[str] = None,
    elapsed: Optional[float] = None,
) -> TransferOutcome:
    """Classify an upload response: any 2xx succeeds."""
    if 200 <= status_code < 300:
        return TransferOutcome.success(status_code=status_code, elapsed=elapsed)
    kind = _STATUS_KINDS.get(status_code)
    if kind is None:
        kind = TransferErrorKind.SERVER_ERROR if status_code >= 500 else TransferErrorKind.HTTP_ERROR
    return TransferOutcome(kind, status_code=status_code, detail=detail, elapsed=elapsed)


def classify_delete_status(status_code: int, detail: Optional[str] = None) -> TransferOutcome:
    """Classify a delete response: 2xx and 404 both mean the object is absent."""
    if status_code == 404:
        return TransferOutcome(TransferErrorKind.ALREADY_ABSENT, status_code=status_code)
    return classify_http_status(status_code, detail=detail)
