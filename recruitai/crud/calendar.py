"""
日历、面试排期、可预约时间段 CRUD 操作
"""
from datetime import datetime, timedelta
from typing import Optional, List, Sequence
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.models.base import utcnow
from recruitai.models.calendar import (
    CalendarProvider,
    InterviewSchedule,
    AvailableTimeSlot,
    ScheduleStatus,
)
from .base import CRUDBase


class CRUDCalendarProvider(CRUDBase[CalendarProvider]):
    """日历账户 CRUD 操作类"""

    async def get_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        *,
        active_only: bool = True
    ) -> List[CalendarProvider]:
        query = select(self.model).where(self.model.user_id == user_id)
        if active_only:
            query = query.where(self.model.is_active == True)  # noqa: E712
        result = await db.execute(query.order_by(self.model.created_at.desc()))
        return list(result.scalars().all())


class CRUDInterviewSchedule(CRUDBase[InterviewSchedule]):
    """面试排期 CRUD 操作类"""

    async def get_by_interview(self, db: AsyncSession, interview_id: str) -> Optional[InterviewSchedule]:
        """获取面试最近一次排期"""
        result = await db.execute(
            select(self.model)
            .where(self.model.interview_id == interview_id)
            .order_by(self.model.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def update_status(
        self,
        db: AsyncSession,
        *,
        db_obj: InterviewSchedule,
        status: ScheduleStatus
    ) -> InterviewSchedule:
        """更新状态，确认/取消时记录时间"""
        data = {"status": status}
        if status == ScheduleStatus.CONFIRMED:
            data["confirmed_at"] = utcnow()
        elif status == ScheduleStatus.CANCELLED:
            data["cancelled_at"] = utcnow()
        return await self.update(db, db_obj=db_obj, obj_in=data)

    async def get_in_range(
        self,
        db: AsyncSession,
        *,
        provider_id: str,
        start: datetime,
        end: datetime,
        statuses: Sequence[ScheduleStatus] = (ScheduleStatus.SCHEDULED, ScheduleStatus.CONFIRMED)
    ) -> List[InterviewSchedule]:
        """查询账户在时间范围内可能冲突的排期（开始时间早于 end 且不早于 start 前一天）"""
        result = await db.execute(
            select(self.model).where(
                self.model.calendar_provider_id == provider_id,
                self.model.status.in_(list(statuses)),
                self.model.scheduled_at >= start - timedelta(days=1),
                self.model.scheduled_at < end,
            )
        )
        return list(result.scalars().all())

    async def get_due_reminders(
        self,
        db: AsyncSession,
        *,
        now: datetime,
        window: timedelta = timedelta(hours=24)
    ) -> List[InterviewSchedule]:
        """已确认、未提醒、且在 window 内开始的排期"""
        result = await db.execute(
            select(self.model).where(
                self.model.status == ScheduleStatus.CONFIRMED,
                self.model.reminder_sent == False,  # noqa: E712
                self.model.scheduled_at >= now,
                self.model.scheduled_at <= now + window,
            )
        )
        return list(result.scalars().all())

    async def get_upcoming(
        self,
        db: AsyncSession,
        *,
        provider_ids: Sequence[str],
        now: datetime,
        limit: int = 10
    ) -> List[InterviewSchedule]:
        """指定日历账户下即将开始的已确认排期"""
        if not provider_ids:
            return []
        result = await db.execute(
            select(self.model)
            .where(
                self.model.calendar_provider_id.in_(list(provider_ids)),
                self.model.status == ScheduleStatus.CONFIRMED,
                self.model.scheduled_at >= now,
            )
            .order_by(self.model.scheduled_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())


class CRUDTimeSlot(CRUDBase[AvailableTimeSlot]):
    """可预约时间段 CRUD 操作类"""

    async def get_by_provider(
        self,
        db: AsyncSession,
        provider_id: str,
        *,
        job_id: Optional[str] = None,
        active_only: bool = True
    ) -> List[AvailableTimeSlot]:
        """获取账户的时间段；指定岗位时同时包含通用时间段"""
        query = select(self.model).where(self.model.calendar_provider_id == provider_id)
        if active_only:
            query = query.where(self.model.is_active == True)  # noqa: E712
        if job_id:
            query = query.where(or_(self.model.job_id == job_id, self.model.job_id.is_(None)))
        result = await db.execute(
            query.order_by(self.model.day_of_week.asc(), self.model.start_time.asc())
        )
        return list(result.scalars().all())


calendar_provider_crud = CRUDCalendarProvider(CalendarProvider)
schedule_crud = CRUDInterviewSchedule(InterviewSchedule)
time_slot_crud = CRUDTimeSlot(AvailableTimeSlot)
