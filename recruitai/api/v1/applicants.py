"""
候选人管理 API 路由
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.database import get_db
from recruitai.core.exceptions import ConflictException, NotFoundException
from recruitai.core.response import (
    success_response,
    paged_response,
    ResponseModel,
    PagedResponseModel,
    MessageResponse,
)
from recruitai.core.security import CurrentUser, Permission
from recruitai.crud import applicant_crud
from recruitai.models.applicant import Applicant, ApplicantCreate, ApplicantUpdate, ApplicantResponse
from recruitai.services.audit import AuditAction, audit_logger
from recruitai.services.intake import invalidate_application_caches
from ..deps import require_permission

router = APIRouter()


def to_applicant_response(applicant: Applicant) -> dict:
    response = ApplicantResponse.model_validate(applicant)
    response.application_count = len(applicant.applications) if applicant.applications else 0
    return response.model_dump()


@router.get("", summary="获取候选人列表", response_model=PagedResponseModel[ApplicantResponse])
async def get_applicants(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    keyword: Optional[str] = Query(None, description="姓名或邮箱关键字"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_CANDIDATES)),
):
    skip = (page - 1) * page_size
    applicants = await applicant_crud.search(db, keyword=keyword, skip=skip, limit=page_size)
    total = await applicant_crud.count_search(db, keyword=keyword)
    return paged_response([to_applicant_response(a) for a in applicants], total, page, page_size)


@router.post("", summary="创建候选人", response_model=ResponseModel[ApplicantResponse])
async def create_applicant(
    data: ApplicantCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.EDIT_CANDIDATES)),
):
    """
    创建候选人，邮箱不可重复
    """
    if await applicant_crud.get_by_email(db, data.email):
        raise ConflictException(f"候选人邮箱已存在: {data.email}")

    applicant = await applicant_crud.create(db, obj_in=data.model_dump())
    audit_logger.log_for(user, AuditAction.APPLICANT_CREATED, "applicant", applicant.id)
    return success_response(data=to_applicant_response(applicant), message="候选人创建成功")


@router.get("/{applicant_id}", summary="获取候选人详情", response_model=ResponseModel[ApplicantResponse])
async def get_applicant(
    applicant_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_CANDIDATES)),
):
    applicant = await applicant_crud.get(db, applicant_id)
    if not applicant:
        raise NotFoundException(f"候选人不存在: {applicant_id}")
    audit_logger.log_for(user, AuditAction.CANDIDATE_DATA_ACCESSED, "applicant", applicant_id)
    return success_response(data=to_applicant_response(applicant))


@router.patch("/{applicant_id}", summary="更新候选人", response_model=ResponseModel[ApplicantResponse])
async def update_applicant(
    applicant_id: str,
    data: ApplicantUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.EDIT_CANDIDATES)),
):
    applicant = await applicant_crud.get(db, applicant_id)
    if not applicant:
        raise NotFoundException(f"候选人不存在: {applicant_id}")
    applicant = await applicant_crud.update(db, db_obj=applicant, obj_in=data)
    return success_response(data=to_applicant_response(applicant), message="候选人更新成功")


@router.delete("/{applicant_id}", summary="删除候选人", response_model=MessageResponse)
async def delete_applicant(
    applicant_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.DELETE_CANDIDATES)),
):
    if not await applicant_crud.delete(db, id=applicant_id):
        raise NotFoundException(f"候选人不存在: {applicant_id}")
    # 级联删除的申请会改变岗位申请数和统计
    invalidate_application_caches()
    audit_logger.log_for(user, AuditAction.APPLICANT_DELETED, "applicant", applicant_id)
    return success_response(message="候选人删除成功")
