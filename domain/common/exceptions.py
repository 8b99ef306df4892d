"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
Offload operations themselves never raise across their boundary; these
exceptions cover request-level problems (unknown record, bad input, missing
admin rights) surfaced through the HTTP layer.
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class OffloadRecordNotFoundException(BusinessException):
    def __init__(self, record_id: Optional[int] = None):
        details = {"record_id": record_id} if record_id is not None else None
        super().__init__(
            code=BusinessCode.RECORD_NOT_FOUND,
            message="Offload record not found",
            error_type="OffloadRecordNotFound",
            details=details,
        )


class OffloadRecordAlreadyExistsException(BusinessException):
    def __init__(self, record_id: int):
        super().__init__(
            code=BusinessCode.RECORD_ALREADY_EXISTS,
            message=f"Offload record {record_id} already exists",
            error_type="OffloadRecordAlreadyExists",
            details={"record_id": record_id},
            field="record_id",
        )


class AdminAuthorizationException(BusinessException):
    def __init__(self, message: str = "Administrator rights required"):
        super().__init__(
            code=BusinessCode.FORBIDDEN,
            message=message,
            error_type="AdminAuthorization",
        )


class OffloadNotConfiguredException(BusinessException):
    def __init__(self):
        super().__init__(
            code=BusinessCode.OFFLOAD_NOT_CONFIGURED,
            message="Remote storage integration is not enabled or configured",
            error_type="OffloadNotConfigured",
        )
