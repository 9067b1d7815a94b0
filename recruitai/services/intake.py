"""
候选人接入服务模块。

外部平台投递、Webhook 回调和 HR 手动邀请共用的流程：
找到或创建候选人 -> 创建申请 -> 生成面试题 -> 创建带邀请令牌的面试 -> 发送邀请邮件。
"""
import secrets
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.config import settings
from recruitai.core.exceptions import NotFoundException
from recruitai.core.optimization import api_optimization
from recruitai.crud import applicant_crud, application_crud, interview_crud, job_crud
from recruitai.models.applicant import Applicant
from recruitai.models.application import (
    ApplicationStatus,
    ExternalApplicationRequest,
    ExternalApplicationResult,
    JobApplication,
)
from recruitai.models.interview import Interview, InterviewStatus
from recruitai.models.job import Job
from .audit import AuditAction, audit_logger
from .interview_ai import generate_interview_questions
from .mailer import get_email_service
from .notifications import get_notification_service

# 申请和面试变化会影响这些缓存的列表和统计
APPLICATION_CACHE_PREFIXES = ("/dashboard", "/analytics", "/jobs")


def invalidate_application_caches() -> None:
    for prefix in APPLICATION_CACHE_PREFIXES:
        api_optimization.invalidate_cache(prefix)


def generate_invite_token() -> str:
    """URL 安全的随机令牌"""
    return secrets.token_urlsafe(settings.invite_token_bytes)


def build_interview_link(base_url: str, token: str) -> str:
    """候选人面试页面地址"""
    base = settings.public_base_url or base_url
    return f"{base.rstrip('/')}/interview/{token}"


async def create_interview(
    db: AsyncSession,
    *,
    application: JobApplication,
    job: Job,
) -> Interview:
    """为申请生成面试题并创建待开始的面试"""
    questions = await generate_interview_questions(
        job.description, job.title, getattr(job.expertise_level, "value", job.expertise_level)
    )
    interview = await interview_crud.create(
        db,
        obj_in={
            "application_id": application.id,
            "questions": questions,
            "invite_token": generate_invite_token(),
            "status": InterviewStatus.PENDING,
        },
    )
    logger.info("面试已创建: interview={}, application={}", interview.id, application.id)
    return interview


async def send_invitation(
    db: AsyncSession,
    *,
    interview: Interview,
    applicant: Applicant,
    job: Job,
    interview_link: str,
) -> bool:
    """发送邀请邮件，成功时记录发送时间；任何失败只记日志"""
    try:
        sent = await get_email_service().send_interview_invitation(
            applicant.email, applicant.name, job.title, job.company, interview_link
        )
    except Exception as exc:
        logger.error("发送面试邀请失败: interview={}, error={}", interview.id, exc)
        return False

    if sent:
        await interview_crud.mark_invite_sent(db, db_obj=interview)
        await get_notification_service().notify_interview_invited(applicant.name, job.title, job.company)
    return sent


async def invite_applicant(
    db: AsyncSession,
    *,
    applicant: Applicant,
    job: Job,
    base_url: str,
    send_email: bool = True,
) -> Dict[str, Any]:
    """
    HR 邀请已有候选人参加面试。

    已存在的申请会被复用并标记为 invited，否则新建一条 invited 申请。
    """
    application = await application_crud.get_by_job_and_applicant(db, job.id, applicant.id)
    if application is None:
        application = await application_crud.create(
            db,
            obj_in={"job_id": job.id, "applicant_id": applicant.id, "status": ApplicationStatus.INVITED},
        )
    else:
        application = await application_crud.update_status(
            db, db_obj=application, status=ApplicationStatus.INVITED
        )

    interview = await create_interview(db, application=application, job=job)
    link = build_interview_link(base_url, interview.invite_token)
    email_sent = False
    if send_email:
        email_sent = await send_invitation(
            db, interview=interview, applicant=applicant, job=job, interview_link=link
        )
    invalidate_application_caches()

    return {
        "interview": interview,
        "application": application,
        "interview_link": link,
        "email_sent": email_sent,
    }


async def process_external_application(
    db: AsyncSession,
    *,
    payload: ExternalApplicationRequest,
    base_url: str,
    source: str = "external",
    actor: Optional[str] = None,
) -> ExternalApplicationResult:
    """
    处理外部平台投递。

    同一候选人对同一岗位重复投递时复用原申请，但每次都会生成新的面试。
    """
    job = await job_crud.get(db, payload.job_id)
    if not job:
        raise NotFoundException(f"岗位不存在: {payload.job_id}")

    applicant, created = await applicant_crud.get_or_create(db, obj_in=payload.applicant_data)
    if created:
        logger.info("新候选人: {} <{}>", applicant.name, applicant.email)

    application = await application_crud.get_by_job_and_applicant(db, job.id, applicant.id)
    if application is None:
        application = await application_crud.create(
            db,
            obj_in={"job_id": job.id, "applicant_id": applicant.id, "status": ApplicationStatus.APPLIED},
        )

    interview = await create_interview(db, application=application, job=job)
    link = build_interview_link(base_url, interview.invite_token)

    email_sent = False
    if payload.send_invite:
        email_sent = await send_invitation(
            db, interview=interview, applicant=applicant, job=job, interview_link=link
        )

    invalidate_application_caches()
    await get_notification_service().notify_candidate_applied(applicant.name, job.title)
    audit_logger.log_system(
        AuditAction.INTERVIEW_CREATED,
        "interview",
        interview.id,
        details={"source": source, "job_id": job.id, "applicant_email": applicant.email},
        actor=actor or source,
    )

    return ExternalApplicationResult(
        application_id=application.id,
        applicant_id=applicant.id,
        interview_id=interview.id,
        interview_token=interview.invite_token,
        interview_link=link,
        email_sent=email_sent,
    )
