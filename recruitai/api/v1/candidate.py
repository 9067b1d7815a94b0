"""
候选人面试 API 路由

候选人通过邀请令牌访问，无需登录
"""
from fastapi import APIRouter, Depends, File, UploadFile
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.config import settings
from recruitai.core.database import get_db
from recruitai.core.exceptions import BadRequestException, NotFoundException
from recruitai.core.optimization import api_optimization
from recruitai.core.response import success_response, ResponseModel, DictResponse
from recruitai.crud import application_crud, interview_crud, job_crud, applicant_crud, score_crud
from recruitai.models.application import ApplicationStatus
from recruitai.models.interview import CandidateInterviewResponse, Interview, InterviewStatus
from recruitai.services.audit import AuditAction, audit_logger
from recruitai.services.interview_ai import analyze_interview_video
from recruitai.services.notifications import get_notification_service
from recruitai.services.video_storage import video_storage

router = APIRouter()


async def _get_by_token(db: AsyncSession, token: str) -> Interview:
    interview = await interview_crud.get_by_token(db, token)
    if not interview:
        raise NotFoundException("面试不存在或链接已失效")
    return interview


@router.get("/{token}", summary="获取面试信息", response_model=ResponseModel[CandidateInterviewResponse])
async def get_candidate_interview(token: str, db: AsyncSession = Depends(get_db)):
    interview = await _get_by_token(db, token)
    ctx = await interview_crud.get_with_context(db, interview.id)
    if ctx is None:
        raise NotFoundException("面试关联的申请不存在")

    response = CandidateInterviewResponse(
        id=interview.id,
        status=interview.status,
        questions=interview.questions or [],
        started_at=interview.started_at,
        completed_at=interview.completed_at,
        job_title=ctx["job"].title,
        company=ctx["job"].company,
        applicant_name=ctx["applicant"].name,
    )
    return success_response(data=response.model_dump())


@router.post("/{token}/start", summary="开始面试", response_model=DictResponse)
async def start_interview(token: str, db: AsyncSession = Depends(get_db)):
    """
    开始面试，只有待开始的面试可以开始
    """
    interview = await _get_by_token(db, token)
    if interview.status != InterviewStatus.PENDING:
        raise BadRequestException("面试已开始或已结束", data={"status": interview.status.value})

    interview = await interview_crud.update_status(db, db_obj=interview, status=InterviewStatus.IN_PROGRESS)
    audit_logger.log_system(AuditAction.INTERVIEW_STARTED, "interview", interview.id, actor="candidate")
    return success_response(
        data={"interview_id": interview.id, "started_at": interview.started_at},
        message="面试已开始",
    )


@router.post("/{token}/submit", summary="提交面试视频", response_model=DictResponse)
async def submit_interview(
    token: str,
    video: UploadFile = File(..., description="面试录像"),
    db: AsyncSession = Depends(get_db),
):
    """
    提交面试录像

    保存视频并标记完成，然后进行 AI 评分；评分失败不影响提交结果
    """
    interview = await _get_by_token(db, token)
    if interview.status != InterviewStatus.IN_PROGRESS:
        raise BadRequestException("面试未在进行中", data={"status": interview.status.value})

    content = await video.read()
    if not content:
        raise BadRequestException("视频文件为空")
    if len(content) > settings.max_video_size_mb * 1024 * 1024:
        raise BadRequestException(f"视频大小不能超过 {settings.max_video_size_mb}MB")

    video_path = video_storage.save(content, f"interview_{interview.id}.webm")
    interview = await interview_crud.complete_with_video(db, db_obj=interview, video_path=video_path)
    audit_logger.log_system(
        AuditAction.VIDEO_UPLOADED, "interview", interview.id,
        details={"size": len(content)}, actor="candidate",
    )

    application = await application_crud.get(db, interview.application_id)
    job = await job_crud.get(db, application.job_id) if application else None
    applicant = await applicant_crud.get(db, application.applicant_id) if application else None
    if application:
        application = await application_crud.update_status(
            db, db_obj=application, status=ApplicationStatus.INTERVIEWED
        )

    overall_score = None
    try:
        analysis = await analyze_interview_video(
            len(content), interview.questions or [], job.title if job else "Unknown Position"
        )
        score = await score_crud.create(db, obj_in={"interview_id": interview.id, **analysis})
        overall_score = score.overall_score
        if application:
            await application_crud.update_status(db, db_obj=application, status=ApplicationStatus.SCORED)
        audit_logger.log_system(
            AuditAction.INTERVIEW_SCORED, "interview", interview.id,
            details={"overall_score": overall_score},
        )
    except Exception as exc:
        logger.error("面试评分失败: interview={}, error={}", interview.id, exc)

    audit_logger.log_system(AuditAction.INTERVIEW_COMPLETED, "interview", interview.id, actor="candidate")
    api_optimization.invalidate_cache("/dashboard")
    api_optimization.invalidate_cache("/analytics")

    if applicant and job:
        await get_notification_service().notify_interview_completed(
            applicant.name, job.title, overall_score, interview.id
        )

    return success_response(
        data={
            "interview_id": interview.id,
            "status": interview.status,
            "video_url": video_storage.get_url(interview.video_path),
            "overall_score": overall_score,
        },
        message="面试提交成功",
    )
