"""
日历与排期 API 路由
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.database import get_db
from recruitai.core.exceptions import BadRequestException, NotFoundException
from recruitai.core.response import DictResponse, ResponseModel, success_response
from recruitai.core.security import CurrentUser, UserRole
from recruitai.crud import calendar_provider_crud, time_slot_crud
from recruitai.models.calendar import (
    CalendarProviderConnect,
    CalendarProviderResponse,
    CalendarProviderUpdate,
    InterviewScheduleResponse,
    ScheduleStatusUpdate,
    TimeSlotCreate,
    TimeSlotResponse,
    TimeSlotUpdate,
)
from recruitai.services.calendar import calendar_service, get_tz
from ..deps import require_role

router = APIRouter()
schedules_router = APIRouter()

require_recruiter = require_role(UserRole.HR_RECRUITER)


# ==================== 日历账户 ====================

@router.post("/providers", summary="连接日历账户", response_model=ResponseModel[CalendarProviderResponse])
async def connect_provider(
    data: CalendarProviderConnect,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_recruiter),
):
    provider = await calendar_service.connect_provider(db, user_id=user.id, data=data)
    return success_response(
        data=CalendarProviderResponse.model_validate(provider).model_dump(),
        message="日历账户已连接",
    )


@router.get("/providers", summary="日历账户列表", response_model=DictResponse)
async def get_providers(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_recruiter),
):
    providers = await calendar_provider_crud.get_by_user(db, user.id)
    return success_response(data={
        "items": [CalendarProviderResponse.model_validate(p).model_dump() for p in providers]
    })


@router.patch("/providers/{provider_id}", summary="更新日历账户", response_model=ResponseModel[CalendarProviderResponse])
async def update_provider(
    provider_id: str,
    data: CalendarProviderUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_recruiter),
):
    provider = await calendar_service.get_provider_for_user(db, provider_id, user.id)
    provider = await calendar_provider_crud.update(db, db_obj=provider, obj_in=data)
    return success_response(data=CalendarProviderResponse.model_validate(provider).model_dump())


@router.post("/providers/{provider_id}/sync", summary="同步外部日历", response_model=ResponseModel[CalendarProviderResponse])
async def sync_provider(
    provider_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_recruiter),
):
    provider = await calendar_service.get_provider_for_user(db, provider_id, user.id)
    provider = await calendar_service.sync_provider(db, provider)
    return success_response(data=CalendarProviderResponse.model_validate(provider).model_dump(), message="同步完成")


# ==================== 时间段 ====================

@router.post("/time-slots", summary="创建可预约时间段", response_model=ResponseModel[TimeSlotResponse])
async def create_time_slot(
    data: TimeSlotCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_recruiter),
):
    await calendar_service.get_provider_for_user(db, data.calendar_provider_id, user.id)
    get_tz(data.timezone)
    slot = await time_slot_crud.create(db, obj_in=data.model_dump())
    return success_response(data=TimeSlotResponse.model_validate(slot).model_dump(), message="时间段已创建")


@router.get("/time-slots/{provider_id}", summary="时间段列表", response_model=DictResponse)
async def get_time_slots(
    provider_id: str,
    job_id: Optional[str] = Query(None, description="岗位ID，包含通用时间段"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_recruiter),
):
    await calendar_service.get_provider_for_user(db, provider_id, user.id)
    slots = await time_slot_crud.get_by_provider(db, provider_id, job_id=job_id)
    return success_response(data={"items": [TimeSlotResponse.model_validate(s).model_dump() for s in slots]})


@router.patch("/time-slots/{slot_id}", summary="更新时间段", response_model=ResponseModel[TimeSlotResponse])
async def update_time_slot(
    slot_id: str,
    data: TimeSlotUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_recruiter),
):
    slot = await time_slot_crud.get(db, slot_id)
    if not slot:
        raise NotFoundException(f"时间段不存在: {slot_id}")
    await calendar_service.get_provider_for_user(db, slot.calendar_provider_id, user.id)

    start = data.start_time or slot.start_time
    end = data.end_time or slot.end_time
    if start >= end:
        raise BadRequestException("结束时间必须晚于开始时间")
    slot = await time_slot_crud.update(db, db_obj=slot, obj_in=data)
    return success_response(data=TimeSlotResponse.model_validate(slot).model_dump())


@router.get("/available-slots", summary="可预约时间", response_model=DictResponse)
async def get_available_slots(
    provider_id: str = Query(..., description="日历账户ID"),
    start_date: date = Query(..., description="开始日期"),
    end_date: date = Query(..., description="结束日期"),
    duration: int = Query(30, ge=5, le=480, description="面试时长（分钟）"),
    job_id: Optional[str] = Query(None, description="岗位ID"),
    db: AsyncSession = Depends(get_db),
):
    provider = await calendar_provider_crud.get(db, provider_id)
    if not provider or not provider.is_active:
        raise NotFoundException(f"日历账户不存在: {provider_id}")

    slots = await calendar_service.generate_available_slots(
        db,
        provider_id=provider_id,
        start_date=start_date,
        end_date=end_date,
        duration=duration,
        job_id=job_id,
    )
    return success_response(data={"items": [s.to_dict() for s in slots], "total": len(slots)})


# ==================== 排期 ====================

@router.get("/upcoming", summary="即将开始的面试", response_model=DictResponse)
async def get_upcoming(
    limit: int = Query(10, ge=1, le=100, description="数量"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_recruiter),
):
    schedules = await calendar_service.get_upcoming_schedules(db, user_id=user.id, limit=limit)
    return success_response(data={
        "items": [InterviewScheduleResponse.model_validate(s).model_dump() for s in schedules]
    })


@router.post("/reminders", summary="发送面试提醒", response_model=DictResponse)
async def send_reminders(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_recruiter),
):
    result = await calendar_service.send_schedule_reminders(db)
    return success_response(data=result, message=f"已发送 {result['sent']} 条提醒")


@schedules_router.put("/{schedule_id}/status", summary="更新排期状态", response_model=ResponseModel[InterviewScheduleResponse])
async def update_schedule_status(
    schedule_id: str,
    data: ScheduleStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_recruiter),
):
    schedule = await calendar_service.update_schedule_status(db, schedule_id=schedule_id, status=data.status)
    return success_response(data=InterviewScheduleResponse.model_validate(schedule).model_dump())
