"""
审计日志 API 路由
"""
from datetime import datetime
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query

from recruitai.core.response import DictResponse, success_response
from recruitai.core.security import CurrentUser, Permission
from recruitai.models.base import ensure_utc
from recruitai.services.audit import AuditAction, AuditSeverity, audit_logger
from ..deps import require_permission

router = APIRouter()


@router.get("/logs", summary="查询审计日志", response_model=DictResponse)
async def get_audit_logs(
    user_id: Optional[str] = Query(None, description="用户ID"),
    action: Optional[AuditAction] = Query(None, description="事件类型"),
    resource_type: Optional[str] = Query(None, description="资源类型"),
    severity: Optional[AuditSeverity] = Query(None, description="严重程度"),
    start_date: Optional[datetime] = Query(None, description="开始时间"),
    end_date: Optional[datetime] = Query(None, description="结束时间"),
    limit: int = Query(50, ge=1, le=500, description="数量"),
    offset: int = Query(0, ge=0, description="偏移"),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_AUDIT_LOGS)),
):
    result = audit_logger.get_logs(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        severity=severity,
        start_date=ensure_utc(start_date),
        end_date=ensure_utc(end_date),
        limit=limit,
        offset=offset,
    )
    return success_response(data=result)


@router.get("/summary", summary="审计摘要", response_model=DictResponse)
async def get_audit_summary(
    time_range: Literal["day", "week", "month"] = Query("week", description="统计范围"),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_AUDIT_LOGS)),
):
    return success_response(data=audit_logger.get_summary(time_range))
