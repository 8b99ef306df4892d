"""
API依赖项 - 服务获取与管理令牌校验
"""
import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from application.services.offload_service import OffloadLifecycleService
from core.config import settings
from domain.common.actor import Actor
from domain.common.exceptions import AdminAuthorizationException
from infrastructure.offload_runtime import get_offload_service as _get_runtime_service
from infrastructure.tasks import TaskDispatcher


async def get_offload_service() -> OffloadLifecycleService:
    service = _get_runtime_service()
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Offload service not initialized",
        )
    return service


def get_task_dispatcher() -> TaskDispatcher:
    return TaskDispatcher()


def _token_matches(token: Optional[str], expected: Optional[str]) -> bool:
    if not expected or not token:
        return False
    return secrets.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


async def get_admin_actor(
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
) -> Actor:
    """管理上下文中的调用者；令牌不匹配时仍返回 Actor，但没有管理权限"""
    if _token_matches(x_admin_token, settings.ADMIN_API_TOKEN):
        return Actor.administrator()
    return Actor.anonymous_admin_context()


async def require_admin(actor: Actor = Depends(get_admin_actor)) -> Actor:
    """要求有效的 X-Admin-Token"""
    if not actor.can_manage:
        raise AdminAuthorizationException()
    return actor


async def require_host_caller(
    x_host_token: Optional[str] = Header(default=None, alias="X-Host-Token"),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
) -> Actor:
    """宿主事件接口：接受 X-Host-Token 或 X-Admin-Token"""
    if _token_matches(x_host_token, settings.HOST_EVENT_TOKEN) or _token_matches(
        x_admin_token, settings.ADMIN_API_TOKEN
    ):
        return Actor.system()
    raise AdminAuthorizationException("Host event token required")
