"""
岗位管理 API 路由
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.config import settings
from recruitai.core.database import get_db
from recruitai.core.exceptions import NotFoundException
from recruitai.core.optimization import api_optimization, get_cache_key, get_cache_ttl
from recruitai.core.response import (
    success_response,
    paged_response,
    ResponseModel,
    PagedResponseModel,
    MessageResponse,
)
from recruitai.core.security import CurrentUser, Permission
from recruitai.crud import job_crud
from recruitai.models.job import Job, JobCreate, JobUpdate, JobStatusUpdate, JobResponse, JobStatus
from recruitai.services.audit import AuditAction, audit_logger
from ..deps import require_permission

router = APIRouter()

JOBS_CACHE_PREFIX = "/jobs"
JOBS_POOL = "database-pool"
JOBS_CIRCUIT = "jobs-api"


def to_job_response(job: Job) -> dict:
    response = JobResponse.model_validate(job)
    response.application_count = len(job.applications) if job.applications else 0
    return response.model_dump()


async def _get_job_or_404(db: AsyncSession, job_id: str) -> Job:
    job = await job_crud.get(db, job_id)
    if not job:
        raise NotFoundException(f"岗位不存在: {job_id}")
    return job


@router.get("", summary="获取岗位列表", response_model=PagedResponseModel[JobResponse])
async def get_jobs(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    status: Optional[JobStatus] = Query(None, description="岗位状态"),
    company: Optional[str] = Query(None, description="公司名称"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_JOBS)),
):
    """
    获取岗位列表

    查询走缓存、熔断器和连接池计数，并记录耗时
    """
    params = {
        "page": page,
        "page_size": page_size,
        "status": status.value if status else "",
        "company": company or "",
    }
    key = get_cache_key(JOBS_CACHE_PREFIX, params)
    cached = api_optimization.get_cached_response(key)
    if cached is not None:
        return cached

    skip = (page - 1) * page_size

    async def load():
        with api_optimization.connection(JOBS_POOL, settings.db_pool_max):
            jobs = await job_crud.get_filtered(
                db, status=status, company=company, skip=skip, limit=page_size
            )
            total = await job_crud.count_filtered(db, status=status, company=company)
        return [to_job_response(j) for j in jobs], total

    measured = await api_optimization.measure_api_call(
        "jobs-list",
        lambda: api_optimization.call_with_circuit_breaker(JOBS_CIRCUIT, load),
    )
    if not measured.success:
        raise measured.error

    items, total = measured.result
    response = paged_response(items, total, page, page_size)
    api_optimization.set_cached_response(key, response, get_cache_ttl(JOBS_CACHE_PREFIX))
    return response


@router.post("", summary="创建岗位", response_model=ResponseModel[JobResponse])
async def create_job(
    data: JobCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.CREATE_JOBS)),
):
    job = await job_crud.create_job(db, obj_in=data)
    api_optimization.invalidate_cache(JOBS_CACHE_PREFIX)
    audit_logger.log_for(user, AuditAction.JOB_CREATED, "job", job.id, {"title": job.title})
    return success_response(data=to_job_response(job), message="岗位创建成功")


@router.get("/{job_id}", summary="获取岗位详情", response_model=ResponseModel[JobResponse])
async def get_job(
    job_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_JOBS)),
):
    job = await _get_job_or_404(db, job_id)
    return success_response(data=to_job_response(job))


@router.patch("/{job_id}", summary="更新岗位", response_model=ResponseModel[JobResponse])
async def update_job(
    job_id: str,
    data: JobUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.EDIT_JOBS)),
):
    job = await _get_job_or_404(db, job_id)
    job = await job_crud.update_job(db, db_obj=job, obj_in=data)
    api_optimization.invalidate_cache(JOBS_CACHE_PREFIX)
    audit_logger.log_for(
        user, AuditAction.JOB_UPDATED, "job", job.id,
        {"fields": sorted(data.model_dump(exclude_unset=True))},
    )
    return success_response(data=to_job_response(job), message="岗位更新成功")


@router.patch("/{job_id}/status", summary="更新岗位状态", response_model=ResponseModel[JobResponse])
async def update_job_status(
    job_id: str,
    data: JobStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.EDIT_JOBS)),
):
    job = await _get_job_or_404(db, job_id)
    previous = job.status
    job = await job_crud.update_status(db, db_obj=job, status=data.status)
    api_optimization.invalidate_cache(JOBS_CACHE_PREFIX)
    audit_logger.log_for(
        user, AuditAction.JOB_STATUS_CHANGED, "job", job.id,
        {"from": previous.value, "to": data.status.value},
    )
    return success_response(data=to_job_response(job), message="岗位状态已更新")


@router.delete("/{job_id}", summary="删除岗位", response_model=MessageResponse)
async def delete_job(
    job_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.DELETE_JOBS)),
):
    """
    删除岗位（同时删除关联的申请和面试）
    """
    await _get_job_or_404(db, job_id)
    await job_crud.delete(db, id=job_id)
    api_optimization.invalidate_cache(JOBS_CACHE_PREFIX)
    audit_logger.log_for(user, AuditAction.JOB_DELETED, "job", job_id)
    return success_response(message="岗位删除成功")
