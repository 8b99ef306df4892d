"""远端卸载（CDN offload）相关路由。

事件接口由宿主系统调用（X-Host-Token 或 X-Admin-Token）；管理接口需要 X-Admin-Token。
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import (
    get_admin_actor,
    get_offload_service,
    get_task_dispatcher,
    require_admin,
    require_host_caller,
)
from application.dto import (
    ConnectionTestResult,
    CredentialsUpdateDTO,
    DeleteRequestDTO,
    DeleteResult,
    DerivativesCompleteDTO,
    ObjectCreatedDTO,
    ObjectCreatedResult,
    OffloadRecordDTO,
    OffloadSettingsView,
    PublicUrlDTO,
    StorageStatsDTO,
    SyncReport,
    ToggleDTO,
    UploadRequestDTO,
    UploadResult,
)
from application.services.offload_service import OffloadLifecycleService
from core.response import (
    Response as ApiResponse,
    success_response,
)
from domain.common.actor import Actor
from infrastructure.tasks import TaskDispatcher


router = APIRouter(
    prefix="/offload",
    tags=["远端卸载"],
)


# ----------------------------------------------------------------------
# 宿主事件
# ----------------------------------------------------------------------
@router.post(
    "/events/object-created",
    summary="登记新对象（开启自动上传时立即上传）",
    response_model=ApiResponse[ObjectCreatedResult],
    dependencies=[Depends(require_host_caller)],
)
async def object_created(
    payload: ObjectCreatedDTO,
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    result = await service.on_object_created(
        payload.record_id, payload.local_path, payload.derivative_paths
    )
    return success_response(data=result)


@router.post(
    "/records/{record_id}/derivatives-complete",
    summary="衍生文件生成完成，执行本地文件清理（background=true 时返回 task_id）",
    dependencies=[Depends(require_host_caller)],
)
async def derivatives_complete(
    record_id: int,
    payload: Optional[DerivativesCompleteDTO] = None,
    background: bool = Query(False, description="交给 Celery worker 异步执行"),
    service: OffloadLifecycleService = Depends(get_offload_service),
    dispatcher: TaskDispatcher = Depends(get_task_dispatcher),
):
    paths = payload.derivative_paths if payload else None
    if background:
        if paths:
            service.ensure_local_paths(paths, field="derivative_paths")
        task_id = dispatcher.enqueue_derivatives_complete(record_id, paths)
        return success_response(data={"task_id": task_id}, message="Cleanup queued")
    report = await service.on_derivative_generation_complete(record_id, paths)
    return success_response(data=report)


@router.post(
    "/records/{record_id}/destroyed",
    summary="记录已销毁，清理远端对象（background=true 时返回 task_id）",
    dependencies=[Depends(require_host_caller)],
)
async def record_destroyed(
    record_id: int,
    background: bool = Query(False, description="交给 Celery worker 异步执行"),
    service: OffloadLifecycleService = Depends(get_offload_service),
    dispatcher: TaskDispatcher = Depends(get_task_dispatcher),
):
    if background:
        task_id = dispatcher.enqueue_record_destroyed(record_id)
        return success_response(data={"task_id": task_id}, message="Cleanup queued")
    result = await service.on_record_destroyed(record_id)
    return success_response(data=result)


@router.get(
    "/records/{record_id}",
    summary="查询卸载状态",
    response_model=ApiResponse[OffloadRecordDTO],
    dependencies=[Depends(require_host_caller)],
)
async def get_record(
    record_id: int,
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    return success_response(data=await service.get_record(record_id))


@router.get(
    "/records/{record_id}/public-url",
    summary="解析对外URL（开启URL覆盖时返回CDN地址）",
    response_model=ApiResponse[PublicUrlDTO],
)
async def public_url(
    record_id: int,
    fallback: str = Query(..., min_length=1, description="本地URL"),
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    return success_response(data=await service.resolve_public_url(record_id, fallback))


# ----------------------------------------------------------------------
# 管理操作
# ----------------------------------------------------------------------
@router.post(
    "/records/{record_id}/upload",
    summary="手动上传单条记录",
    response_model=ApiResponse[UploadResult],
)
async def upload_record(
    record_id: int,
    payload: Optional[UploadRequestDTO] = None,
    actor: Actor = Depends(get_admin_actor),
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    remote_key = payload.remote_key if payload else None
    result = await service.upload_record(record_id, remote_key, actor=actor)
    return success_response(data=result, message="Success" if result.ok else result.status)


@router.post(
    "/objects/delete",
    summary="删除远端对象",
    response_model=ApiResponse[DeleteResult],
)
async def delete_object(
    payload: DeleteRequestDTO,
    actor: Actor = Depends(require_admin),
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    result = await service.executor.delete(payload.remote_key, actor=actor)
    return success_response(data=result, message="Success" if result.ok else result.status)


@router.post(
    "/sync",
    summary="同步尚未上传的记录",
)
async def sync_pending(
    batch_size: Optional[int] = Query(None, ge=1, le=500),
    background: bool = Query(False, description="交给 Celery worker 异步执行"),
    _: Actor = Depends(require_admin),
    service: OffloadLifecycleService = Depends(get_offload_service),
    dispatcher: TaskDispatcher = Depends(get_task_dispatcher),
):
    if background:
        task_id = dispatcher.enqueue_sync(batch_size, force=True)
        return success_response(data={"task_id": task_id}, message="Sync queued")
    report: SyncReport = await service.sync_pending(batch_size, force=True)
    return success_response(data=report)


@router.get(
    "/pending-count",
    summary="待上传记录数",
    response_model=ApiResponse[int],
)
async def pending_count(
    _: Actor = Depends(require_admin),
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    return success_response(data=await service.pending_count())


@router.post(
    "/test-connection",
    summary="测试远端存储连通性",
    response_model=ApiResponse[ConnectionTestResult],
)
async def test_connection(
    actor: Actor = Depends(get_admin_actor),
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    result = await service.test_connection(actor)
    return success_response(data=result, message=result.message)


@router.get(
    "/settings",
    summary="查看卸载配置（access key 已脱敏）",
    response_model=ApiResponse[OffloadSettingsView],
)
async def get_settings(
    _: Actor = Depends(require_admin),
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    return success_response(data=service.settings_view())


@router.put(
    "/settings/credentials",
    summary="更新存储凭据",
    response_model=ApiResponse[OffloadSettingsView],
)
async def update_credentials(
    payload: CredentialsUpdateDTO,
    actor: Actor = Depends(require_admin),
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    view = service.set_credentials(
        actor,
        access_key=payload.access_key,
        storage_zone=payload.storage_zone,
        region=payload.region,
        custom_hostname=payload.custom_hostname,
    )
    return success_response(data=view, message="Credentials updated")


@router.put(
    "/settings/enabled",
    summary="启用/停用集成",
    response_model=ApiResponse[OffloadSettingsView],
)
async def update_enabled(
    payload: ToggleDTO,
    actor: Actor = Depends(require_admin),
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    return success_response(data=service.set_enabled(actor, payload.enabled))


@router.put(
    "/settings/auto-upload",
    summary="开关自动上传",
    response_model=ApiResponse[OffloadSettingsView],
)
async def update_auto_upload(
    payload: ToggleDTO,
    actor: Actor = Depends(require_admin),
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    return success_response(data=service.set_auto_upload(actor, payload.enabled))


@router.put(
    "/settings/offload-after-upload",
    summary="开关上传后删除本地文件",
    response_model=ApiResponse[OffloadSettingsView],
)
async def update_offload_after_upload(
    payload: ToggleDTO,
    actor: Actor = Depends(require_admin),
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    return success_response(data=service.set_offload_after_upload(actor, payload.enabled))


@router.get(
    "/stats",
    summary="存储统计",
    response_model=ApiResponse[StorageStatsDTO],
)
async def storage_stats(
    _: Actor = Depends(require_admin),
    service: OffloadLifecycleService = Depends(get_offload_service),
):
    return success_response(data=await service.storage_stats())
