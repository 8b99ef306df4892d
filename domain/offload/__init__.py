"""Offload domain exports."""
from .credentials import StorageCredentials, is_valid_storage_zone, sanitize_storage_zone
from .entity import OffloadRecord, OffloadState
from .outcome import (
    ErrorCategory,
    TransferErrorKind,
    TransferOutcome,
    classify_delete_status,
    classify_http_status,
    classify_transport_error,
)
from .repository import OffloadRecordRepository

__all__ = [
    "StorageCredentials",
    "is_valid_storage_zone",
    "sanitize_storage_zone",
    "OffloadRecord",
    "OffloadState",
    "ErrorCategory",
    "TransferErrorKind",
    "TransferOutcome",
    "classify_delete_status",
    "classify_http_status",
    "classify_transport_error",
    "OffloadRecordRepository",
]
