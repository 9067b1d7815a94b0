"""
面试管理 API 路由（HR 端）
"""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.database import get_db
from recruitai.core.exceptions import NotFoundException
from recruitai.core.optimization import api_optimization
from recruitai.core.response import (
    success_response,
    paged_response,
    ResponseModel,
    PagedResponseModel,
    DictResponse,
)
from recruitai.core.security import CurrentUser, Permission, UserRole
from recruitai.crud import applicant_crud, interview_crud, job_crud, schedule_crud, score_crud
from recruitai.models.applicant import ApplicantResponse
from recruitai.models.base import utcnow
from recruitai.models.calendar import InterviewScheduleCreate, InterviewScheduleResponse
from recruitai.models.interview import Interview, InterviewInvite, InterviewResponse, InterviewStatus
from recruitai.models.job import JobResponse
from recruitai.models.score import InterviewScoreOverride, InterviewScoreResponse
from recruitai.services.audit import AuditAction, audit_logger
from recruitai.services.calendar import calendar_service
from recruitai.services.intake import invite_applicant
from recruitai.services.video_storage import video_storage
from ..deps import require_permission, require_role

router = APIRouter()


def _summary(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """列表中的面试摘要"""
    interview, applicant, job, score = ctx["interview"], ctx["applicant"], ctx["job"], ctx["score"]
    return {
        "id": interview.id,
        "status": interview.status,
        "created_at": interview.created_at,
        "completed_at": interview.completed_at,
        "applicant_name": applicant.name,
        "applicant_email": applicant.email,
        "job_title": job.title,
        "company": job.company,
        "overall_score": score.overall_score if score else None,
    }


async def _get_interview_or_404(db: AsyncSession, interview_id: str) -> Interview:
    interview = await interview_crud.get(db, interview_id)
    if not interview:
        raise NotFoundException(f"面试不存在: {interview_id}")
    return interview


@router.get("", summary="获取面试列表", response_model=PagedResponseModel[InterviewResponse])
async def get_interviews(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    status: Optional[InterviewStatus] = Query(None, description="面试状态"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_INTERVIEWS)),
):
    skip = (page - 1) * page_size
    interviews = await interview_crud.get_filtered(db, status=status, skip=skip, limit=page_size)
    total = await interview_crud.count_by_status(db, status)
    items = [InterviewResponse.model_validate(i).model_dump() for i in interviews]
    return paged_response(items, total, page, page_size)


@router.get("/recent", summary="最近的面试", response_model=DictResponse)
async def get_recent_interviews(
    limit: int = Query(10, ge=1, le=50, description="数量"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_INTERVIEWS)),
):
    recent = await interview_crud.get_recent(db, limit=limit)
    return success_response(data={"items": [_summary(ctx) for ctx in recent]})


@router.post("/invite", summary="邀请候选人面试", response_model=DictResponse)
async def invite_to_interview(
    data: InterviewInvite,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.EDIT_CANDIDATES)),
):
    """
    为已有候选人创建面试并发送邀请邮件

    候选人和岗位都必须已存在
    """
    job = await job_crud.get(db, data.job_id)
    if not job:
        raise NotFoundException(f"岗位不存在: {data.job_id}")
    applicant = await applicant_crud.get_by_email(db, data.applicant_email)
    if not applicant:
        raise NotFoundException(f"候选人不存在: {data.applicant_email}")

    result = await invite_applicant(
        db, applicant=applicant, job=job, base_url=str(request.base_url), send_email=data.send_email
    )
    interview = result["interview"]
    audit_logger.log_interview_action(
        user, AuditAction.INTERVIEW_CREATED, interview.id, {"applicant_email": applicant.email}
    )
    return success_response(
        data={
            "interview_id": interview.id,
            "application_id": result["application"].id,
            "interview_link": result["interview_link"],
            "email_sent": result["email_sent"],
        },
        message="面试邀请已创建",
    )


@router.get("/{interview_id}", summary="获取面试详情", response_model=DictResponse)
async def get_interview_detail(
    interview_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_INTERVIEWS)),
):
    """
    面试详情：面试本身、评分、岗位、候选人和视频地址
    """
    ctx = await interview_crud.get_with_context(db, interview_id)
    if ctx is None:
        raise NotFoundException(f"面试不存在: {interview_id}")

    interview, score = ctx["interview"], ctx["score"]
    audit_logger.log_for(user, AuditAction.CANDIDATE_DATA_ACCESSED, "interview", interview_id)
    return success_response(data={
        "interview": InterviewResponse.model_validate(interview).model_dump(),
        "score": InterviewScoreResponse.model_validate(score).model_dump() if score else None,
        "job": JobResponse.model_validate(ctx["job"]).model_dump(),
        "applicant": ApplicantResponse.model_validate(ctx["applicant"]).model_dump(),
        "video_url": video_storage.get_url(interview.video_path),
    })


@router.get("/{interview_id}/score", summary="获取面试评分", response_model=ResponseModel[InterviewScoreResponse])
async def get_interview_score(
    interview_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_INTERVIEWS)),
):
    score = await score_crud.get_by_interview(db, interview_id)
    if not score:
        raise NotFoundException(f"面试尚未评分: {interview_id}")
    return success_response(data=InterviewScoreResponse.model_validate(score).model_dump())


@router.put("/{interview_id}/score", summary="人工调整评分", response_model=ResponseModel[InterviewScoreResponse])
async def override_interview_score(
    interview_id: str,
    data: InterviewScoreOverride,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.OVERRIDE_SCORES)),
):
    """
    调整 AI 评分，原分数和调整原因记录在 analysis_details.overrides 中
    """
    score = await score_crud.get_by_interview(db, interview_id)
    if not score:
        raise NotFoundException(f"面试尚未评分: {interview_id}")

    changes = data.model_dump(exclude_unset=True, exclude={"reason"})
    previous = {field: getattr(score, field) for field in changes}
    details = dict(score.analysis_details or {})
    details["overrides"] = list(details.get("overrides", [])) + [{
        "by": user.email,
        "reason": data.reason,
        "previous": previous,
        "at": utcnow().isoformat(),
    }]
    score = await score_crud.update(db, db_obj=score, obj_in={**changes, "analysis_details": details})

    api_optimization.invalidate_cache("/dashboard")
    api_optimization.invalidate_cache("/analytics")
    audit_logger.log_interview_action(
        user, AuditAction.SCORE_OVERRIDDEN, interview_id, {"reason": data.reason, "previous": previous}
    )
    return success_response(data=InterviewScoreResponse.model_validate(score).model_dump(), message="评分已调整")


@router.post("/{interview_id}/schedule", summary="安排面试时间", response_model=ResponseModel[InterviewScheduleResponse])
async def schedule_interview(
    interview_id: str,
    data: InterviewScheduleCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_role(UserRole.HR_RECRUITER)),
):
    await _get_interview_or_404(db, interview_id)
    schedule = await calendar_service.schedule_interview(db, interview_id=interview_id, data=data)
    audit_logger.log_interview_action(
        user, AuditAction.INTERVIEW_SCHEDULED, interview_id, {"scheduled_at": schedule.scheduled_at.isoformat()}
    )
    return success_response(data=InterviewScheduleResponse.model_validate(schedule).model_dump(), message="面试已排期")


@router.get("/{interview_id}/schedule", summary="获取面试排期", response_model=ResponseModel[InterviewScheduleResponse])
async def get_interview_schedule(
    interview_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_INTERVIEWS)),
):
    schedule = await schedule_crud.get_by_interview(db, interview_id)
    if not schedule:
        raise NotFoundException(f"面试尚未排期: {interview_id}")
    return success_response(data=InterviewScheduleResponse.model_validate(schedule).model_dump())
