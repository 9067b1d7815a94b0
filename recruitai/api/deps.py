"""
路由公共依赖

模拟登录用户、权限校验、外部接口的 API Key 与 Webhook 签名校验
"""
import math
from typing import Optional

from fastapi import Depends, Header, Request
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.config import settings
from recruitai.core.database import get_db
from recruitai.core.exceptions import ForbiddenException, TooManyRequestsException, UnauthorizedException
from recruitai.core.optimization import RateLimitConfig, api_optimization
from recruitai.core.security import CurrentUser, Permission, UserRole, resolve_mock_user
from recruitai.core.security import verify_webhook_signature as check_signature
from recruitai.crud import integration_crud
from recruitai.services.audit import AuditAction, audit_logger


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


async def get_current_user(
    x_mock_user: Optional[str] = Header(None, description="模拟登录用户邮箱"),
) -> CurrentUser:
    """
    模拟认证

    通过 X-Mock-User 头切换用户，未提供时使用默认管理员
    """
    return resolve_mock_user((x_mock_user or settings.mock_default_user).strip().lower())


def _deny(user: CurrentUser, request: Request, required: list, message: str) -> ForbiddenException:
    audit_logger.log_security_event(
        user,
        AuditAction.PERMISSION_DENIED,
        details={"required": required, "path": request.url.path},
        ip_address=client_ip(request),
    )
    return ForbiddenException(message, data={"required": required, "user_role": user.role.value})


def require_permission(permission: Permission):
    """要求拥有指定权限"""

    async def checker(request: Request, user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.has_permission(permission):
            raise _deny(user, request, [permission.value], "权限不足")
        return user

    return checker


def require_any_permission(*permissions: Permission):
    """拥有其中任意一个权限即可"""

    async def checker(request: Request, user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.has_any_permission(permissions):
            raise _deny(user, request, [p.value for p in permissions], "权限不足")
        return user

    return checker


def require_role(*roles: UserRole):
    """要求指定角色，管理员始终通过"""

    async def checker(request: Request, user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role != UserRole.ADMIN and user.role not in roles:
            raise _deny(user, request, [r.value for r in roles], "角色不符")
        return user

    return checker


async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None, description="外部系统 API Key"),
    db: AsyncSession = Depends(get_db),
) -> str:
    """
    外部接口鉴权与限流

    严格模式下 Key 必须属于某个启用中的集成；每个 Key 每个窗口最多
    external_rate_limit 次请求
    """
    if not x_api_key:
        audit_logger.log_system(
            AuditAction.UNAUTHORIZED_ACCESS,
            "api",
            details={"path": request.url.path, "ip": client_ip(request)},
            actor="anonymous",
        )
        raise UnauthorizedException("缺少 API Key")

    if settings.strict_api_keys:
        integration = await integration_crud.get_by_api_key(db, x_api_key)
        if integration is None or not integration.is_active:
            raise UnauthorizedException("API Key 无效")

    key = f"api:{x_api_key}"
    config = RateLimitConfig(window=settings.external_rate_window, max_requests=settings.external_rate_limit)
    if not api_optimization.check_rate_limit(key, config):
        retry_after = math.ceil(api_optimization.rate_limiter.retry_after(key))
        raise TooManyRequestsException("请求过于频繁，请稍后重试", retry_after=retry_after)
    return x_api_key


async def verify_webhook_signature(
    request: Request,
    x_webhook_signature: Optional[str] = Header(None, description="HMAC-SHA256 签名"),
) -> None:
    """配置了 webhook_secret 时校验请求体签名"""
    if not settings.webhook_secret:
        return
    if not x_webhook_signature:
        raise UnauthorizedException("缺少 Webhook 签名")
    body = await request.body()
    if not check_signature(settings.webhook_secret, body, x_webhook_signature):
        logger.warning("Webhook 签名校验失败: ip={}", client_ip(request))
        raise UnauthorizedException("Webhook 签名无效")
