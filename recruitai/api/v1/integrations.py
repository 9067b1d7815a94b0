"""
第三方集成 API 路由
"""
import secrets
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.database import get_db
from recruitai.core.response import DictResponse, ResponseModel, success_response
from recruitai.core.security import CurrentUser, Permission
from recruitai.crud import integration_crud
from recruitai.models.integration import (
    ApiIntegration,
    ApiIntegrationCreate,
    ApiIntegrationCreated,
    ApiIntegrationResponse,
)
from recruitai.services.audit import AuditAction, AuditSeverity, audit_logger
from ..deps import require_permission

router = APIRouter()

API_KEY_PREFIX = "rk_"


def to_integration_response(integration: ApiIntegration) -> dict:
    response = ApiIntegrationResponse.model_validate(integration)
    response.api_key_preview = f"{integration.api_key[:8]}..."
    return response.model_dump()


@router.get("", summary="集成列表", response_model=DictResponse)
async def get_integrations(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_INTEGRATIONS)),
):
    integrations = await integration_crud.get_active(db)
    return success_response(data={"items": [to_integration_response(i) for i in integrations]})


@router.post("", summary="创建集成", response_model=ResponseModel[ApiIntegrationCreated])
async def create_integration(
    data: ApiIntegrationCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.MANAGE_INTEGRATIONS)),
):
    """
    创建集成并生成 API Key，完整 Key 只在此处返回一次
    """
    api_key = f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"
    integration = await integration_crud.create(db, obj_in={**data.model_dump(), "api_key": api_key})
    audit_logger.log_for(
        user, AuditAction.API_KEY_CREATED, "integration", integration.id,
        {"name": integration.name}, severity=AuditSeverity.HIGH,
    )
    created = {**to_integration_response(integration), "api_key": api_key}
    return success_response(data=created, message="集成创建成功")
