"""Offload state of one object record."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class OffloadState(str, Enum):
    NOT_OFFLOADED = "not_offloaded"
    UPLOADED = "uploaded"
    PENDING_OFFLOAD = "pending_offload"
    OFFLOADED = "offloaded"


@dataclass
class OffloadRecord:
    """Aggregate root tracking where an object's bytes live.

    ``offloaded`` implies the local files are gone and ``pending_offload`` is
    cleared; ``pending_offload`` implies a CDN URL exists and the local files
    are still on disk.
    """

    record_id: int
    local_path: str
    derivative_paths: list[str] = field(default_factory=list)
    attempt_count: int = 0
    last_status: Optional[str] = None
    last_status_at: Optional[datetime] = None
    cdn_url: Optional[str] = None
    remote_key: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    pending_offload: bool = False
    offloaded: bool = False
    offloaded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.local_path:
            raise DomainValidationException("local_path 不能为空", field="local_path")
        if self.derivative_paths is None:
            self.derivative_paths = []
        self.last_status_at = _ensure_utc(self.last_status_at)
        self.uploaded_at = _ensure_utc(self.uploaded_at)
        self.offloaded_at = _ensure_utc(self.offloaded_at)
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)

    @property
    def state(self) -> OffloadState:
        if self.offloaded:
            return OffloadState.OFFLOADED
        if self.pending_offload:
            return OffloadState.PENDING_OFFLOAD
        if self.cdn_url:
            return OffloadState.UPLOADED
        return OffloadState.NOT_OFFLOADED

    def _touch(self) -> None:
        now = datetime.now(timezone.utc)
        self.updated_at = now
        if self.created_at is None:
            self.created_at = now

    def record_attempt(self) -> int:
        self.attempt_count = (self.attempt_count or 0) + 1
        self._touch()
        return self.attempt_count

    def record_status(self, status: str) -> None:
        self.last_status = status
        self.last_status_at = datetime.now(timezone.utc)
        self._touch()

    def mark_uploaded(self, cdn_url: str, remote_key: str, *, defer_local_deletion: bool) -> None:
        if not cdn_url:
            raise DomainValidationException("cdn_url 不能为空", field="cdn_url")
        self.cdn_url = cdn_url
        self.remote_key = remote_key
        self.uploaded_at = datetime.now(timezone.utc)
        if defer_local_deletion and not self.offloaded:
            self.pending_offload = True
        self._touch()

    def mark_offloaded(self) -> None:
        if not self.pending_offload:
            raise DomainValidationException(
                "只有等待卸载的记录才能标记为已卸载",
                field="pending_offload",
                details={"state": self.state.value},
            )
        self.pending_offload = False
        self.offloaded = True
        self.offloaded_at = datetime.now(timezone.utc)
        self._touch()

    def replace_derivatives(self, paths: list[str]) -> None:
        self.derivative_paths = list(paths)
        self._touch()

    def is_pending(self) -> bool:
        return self.pending_offload and not self.offloaded
