"""
ATS 数据同步 API 路由
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.database import get_db
from recruitai.core.response import DictResponse, success_response
from recruitai.core.security import CurrentUser, Permission
from recruitai.models.integration import SyncConfigCreate
from recruitai.services.audit import AuditAction, audit_logger
from recruitai.services.data_sync import SyncConfig, data_sync_service
from recruitai.services.intake import invalidate_application_caches
from ..deps import require_permission

router = APIRouter()


@router.post("/configure", summary="配置 ATS 同步", response_model=DictResponse)
async def configure_sync(
    data: SyncConfigCreate,
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_INTEGRATIONS)),
):
    data_sync_service.register_sync(data.integration_id, SyncConfig.from_request(data))
    audit_logger.log_for(
        user, AuditAction.CONFIGURATION_CHANGED, "sync", data.integration_id,
        {"platform": data.platform_type.value},
    )
    return success_response(
        data={"integration_id": data.integration_id, "platform_type": data.platform_type.value},
        message=f"已配置 {data.platform_type.value} 数据同步",
    )


@router.post("/trigger", summary="立即同步", response_model=DictResponse)
async def trigger_sync(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_INTEGRATIONS)),
):
    results = await data_sync_service.perform_full_sync(db)
    jobs = sum(r.jobs_synced for r in results)
    applicants = sum(r.applicants_synced for r in results)
    if jobs or applicants:
        invalidate_application_caches()
    audit_logger.log_for(
        user, AuditAction.DATA_SYNC_TRIGGERED, "sync", None,
        {"jobs_synced": jobs, "applicants_synced": applicants},
    )
    return success_response(
        data={
            "results": [r.to_dict() for r in results],
            "total_jobs_synced": jobs,
            "total_applicants_synced": applicants,
        },
        message=f"同步完成: {jobs} 个岗位, {applicants} 个候选人",
    )


@router.get("/status", summary="同步状态", response_model=DictResponse)
async def get_sync_status(
    user: CurrentUser = Depends(require_permission(Permission.VIEW_ANALYTICS)),
):
    return success_response(data=data_sync_service.get_sync_status())
