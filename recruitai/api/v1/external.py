"""
外部系统接入 API 路由

招聘平台通过 API Key 推送投递，或通过签名 Webhook 回调
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.database import get_db
from recruitai.core.response import ResponseModel, success_response
from recruitai.models.application import (
    ExternalApplicationRequest,
    ExternalApplicationResult,
    WebhookApplicationRequest,
)
from recruitai.services.audit import AuditAction, audit_logger
from recruitai.services.intake import process_external_application
from ..deps import require_api_key, verify_webhook_signature

router = APIRouter()


@router.post(
    "/external/job-application",
    summary="外部平台投递",
    status_code=status.HTTP_201_CREATED,
    response_model=ResponseModel[ExternalApplicationResult],
)
async def external_job_application(
    data: ExternalApplicationRequest,
    request: Request,
    api_key: str = Depends(require_api_key),
    db: AsyncSession = Depends(get_db),
):
    """
    接收外部投递：创建候选人、申请和面试，并按需发送邀请

    每个 API Key 每分钟最多 100 次请求，超出返回 429
    """
    result = await process_external_application(
        db,
        payload=data,
        base_url=str(request.base_url),
        source="external",
        actor=f"api_key:{api_key[:8]}",
    )
    return success_response(data=result.model_dump(), message="投递处理成功", code=201)


@router.post(
    "/webhook/job-application",
    summary="Webhook 投递回调",
    response_model=ResponseModel[ExternalApplicationResult],
    dependencies=[Depends(verify_webhook_signature)],
)
async def webhook_job_application(
    data: WebhookApplicationRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    source = str(data.source_metadata.get("source") or "webhook")
    audit_logger.log_system(
        AuditAction.WEBHOOK_RECEIVED, "webhook", details={"source": source, "job_id": data.job_id}, actor=source
    )
    result = await process_external_application(
        db,
        payload=data,
        base_url=str(request.base_url),
        source=source,
    )
    return success_response(data=result.model_dump(), message="Webhook 处理成功")
