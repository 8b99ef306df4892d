"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer

from domain.offload.entity import OffloadState
from domain.offload.outcome import ErrorCategory, TransferErrorKind, TransferOutcome


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                s = ts.astimezone(timezone.utc).isoformat()
                return s.replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


# ----------------------------------------------------------------------
# Records
# ----------------------------------------------------------------------
class OffloadRecordDTO(DTOBase):
    """卸载记录响应DTO"""

    record_id: int
    local_path: str
    derivative_paths: list[str] = Field(default_factory=list)
    state: OffloadState
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

    model_config = ConfigDict(from_attributes=True)


class ObjectCreatedDTO(DTOBase):
    """对象创建事件"""

    record_id: int = Field(..., ge=1)
    local_path: str = Field(..., min_length=1)
    derivative_paths: list[str] = Field(default_factory=list)


class DerivativesCompleteDTO(DTOBase):
    """衍生文件生成完成事件；未提供列表时沿用已登记的衍生文件"""

    derivative_paths: Optional[list[str]] = None


class UploadRequestDTO(DTOBase):
    remote_key: Optional[str] = Field(None, description="留空时使用 <basename>_<record_id>.<ext>")


class DeleteRequestDTO(DTOBase):
    remote_key: str


class CredentialsUpdateDTO(DTOBase):
    access_key: str = Field(..., min_length=1)
    storage_zone: str = Field(..., min_length=1)
    region: Optional[str] = None
    custom_hostname: Optional[str] = None

    @field_validator("access_key")
    @classmethod
    def _strip_key(cls, v: str) -> str:
        return v.strip()


class ToggleDTO(DTOBase):
    enabled: bool


# ----------------------------------------------------------------------
# Operation results
# ----------------------------------------------------------------------
class UploadResult(DTOBase):
    ok: bool
    outcome: TransferErrorKind
    category: ErrorCategory
    status: str
    cdn_url: Optional[str] = None
    remote_key: Optional[str] = None
    timeout: Optional[float] = None
    detail: Optional[str] = None

    @classmethod
    def from_outcome(
        cls,
        outcome: TransferOutcome,
        *,
        cdn_url: Optional[str] = None,
        remote_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> "UploadResult":
        return cls(
            ok=outcome.ok,
            outcome=outcome.kind,
            category=outcome.category,
            status=outcome.status_tag,
            cdn_url=cdn_url if outcome.ok else None,
            remote_key=remote_key,
            timeout=timeout,
            detail=outcome.detail,
        )


class DeleteResult(DTOBase):
    ok: bool
    outcome: TransferErrorKind
    category: ErrorCategory
    status: str
    remote_key: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: TransferOutcome, *, remote_key: Optional[str] = None) -> "DeleteResult":
        return cls(
            ok=outcome.ok,
            outcome=outcome.kind,
            category=outcome.category,
            status=outcome.status_tag,
            remote_key=remote_key,
        )


class RemoteCleanup(str, Enum):
    SKIPPED = "skipped"
    DISABLED = "disabled"
    UNPARSABLE_URL = "unparsable_url"
    DELETED = "deleted"
    FAILED = "failed"


class DestructionResult(DTOBase):
    """记录销毁后的远端清理结果；销毁本身从不被否决"""

    record_id: int
    remote_cleanup: RemoteCleanup
    remote_key: Optional[str] = None
    status: Optional[str] = None


class LocalCleanupReport(DTOBase):
    record_id: int
    state: Optional[OffloadState] = None
    primary_deleted: bool = False
    derivatives_deleted: int = 0
    derivatives_failed: list[str] = Field(default_factory=list)


class ObjectCreatedResult(DTOBase):
    record: OffloadRecordDTO
    upload: Optional[UploadResult] = None


class SyncReport(DTOBase):
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped_reason: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class ConnectionTestResult(DTOBase):
    success: bool
    message: str
    test_url: Optional[str] = None


class OffloadSettingsView(DTOBase):
    """管理界面展示用配置，access key 已脱敏"""

    enabled: bool
    configured: bool
    access_key: str
    storage_zone: str
    region: str
    custom_hostname: str
    cdn_base_url: Optional[str] = None
    offload_after_upload_enabled: bool
    auto_upload: bool
    auto_sync: bool
    override_urls: bool
    max_concurrent_uploads: int
    problems: list[str] = Field(default_factory=list)


class StorageStatsDTO(DTOBase):
    storage_zone: str
    region: str
    configured: bool
    enabled: bool
    pending_count: int
    offloaded_count: int
    active_uploads: int
    # 最近一次批量同步（含被跳过的），未运行过时为 None
    last_sync: Optional[SyncReport] = None


class PublicUrlDTO(DTOBase):
    record_id: int
    url: str
    from_cdn: bool
