"""
日历排期服务模块。

管理日历账户、可预约时间段和面试排期；根据时间段规则生成可预约时间并剔除冲突。
外部日历（Google / Outlook / Calendly）的实际同步尚未接入，会议链接为模拟生成。
"""
import secrets
import string
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.exceptions import BadRequestException, ConflictException, NotFoundException
from recruitai.crud import (
    applicant_crud,
    application_crud,
    calendar_provider_crud,
    interview_crud,
    job_crud,
    schedule_crud,
    time_slot_crud,
)
from recruitai.models.base import ensure_utc, utcnow
from recruitai.models.calendar import (
    AvailableTimeSlot,
    CalendarProvider,
    CalendarProviderConnect,
    InterviewSchedule,
    InterviewScheduleCreate,
    ScheduleStatus,
)
from .mailer import get_email_service

TOKEN_LIFETIME = timedelta(hours=1)
REMINDER_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class SlotWindow:
    """一个可预约的时间窗口（UTC）"""
    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "available": True}


def get_tz(name: str) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise BadRequestException(f"无效的时区: {name}")


def js_weekday(day: date) -> int:
    """周日为 0 的星期编号"""
    return (day.weekday() + 1) % 7


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def _utc_instant(day: date, hhmm: str, tz: tzinfo) -> datetime:
    """
    本地墙钟时间转 UTC。

    夏令时跳过的时间按切换前的偏移解释，即顺延一个跳变长度；
    重复的时间取第一次出现。
    """
    return datetime.combine(day, _parse_hhmm(hhmm), tzinfo=tz).astimezone(timezone.utc)


def expand_time_slots(
    slots: Iterable[AvailableTimeSlot],
    start_date: date,
    end_date: date,
    duration: int,
) -> List[SlotWindow]:
    """
    把每周时间段规则展开为 [start_date, end_date] 内的具体时间窗口。

    时间段的 HH:MM 按其自身时区解释，结果统一为 UTC；
    起止换算成 UTC 后再按 duration 分钟切分，跨夏令时切换的窗口时长不变；
    末尾不足一个时长的部分丢弃。
    """
    step = timedelta(minutes=duration)
    windows: List[SlotWindow] = []
    slots = list(slots)
    day = start_date
    while day <= end_date:
        weekday = js_weekday(day)
        for slot in slots:
            if slot.day_of_week != weekday:
                continue
            tz = get_tz(slot.timezone)
            current = _utc_instant(day, slot.start_time, tz)
            slot_end = _utc_instant(day, slot.end_time, tz)
            while current + step <= slot_end:
                windows.append(SlotWindow(start=current, end=current + step))
                current += step
        day += timedelta(days=1)
    windows.sort(key=lambda w: w.start)
    return windows


def remove_conflicts(windows: Iterable[SlotWindow], schedules: Iterable[InterviewSchedule]) -> List[SlotWindow]:
    """剔除与已有排期重叠的窗口"""
    busy = []
    for schedule in schedules:
        start = ensure_utc(schedule.scheduled_at)
        busy.append((start, start + timedelta(minutes=schedule.duration)))
    return [w for w in windows if not any(w.overlaps(s, e) for s, e in busy)]


def generate_meeting() -> Dict[str, str]:
    """模拟会议链接，格式 xxx-xxxx-xxx"""
    letters = string.ascii_lowercase
    parts = ["".join(secrets.choice(letters) for _ in range(n)) for n in (3, 4, 3)]
    meeting_id = "-".join(parts)
    return {"meeting_id": meeting_id, "meeting_url": f"https://meet.google.com/{meeting_id}"}


class CalendarService:
    """日历排期服务"""

    # ---------- 日历账户 ----------

    async def connect_provider(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        data: CalendarProviderConnect,
    ) -> CalendarProvider:
        account_id = data.provider_account_id or f"{data.provider.value}_{user_id}_{int(utcnow().timestamp() * 1000)}"
        provider = await calendar_provider_crud.create(
            db,
            obj_in={
                **data.model_dump(),
                "provider_account_id": account_id,
                "user_id": user_id,
                "expires_at": utcnow() + TOKEN_LIFETIME,
                "is_active": True,
            },
        )
        logger.info("日历账户已连接: user={}, provider={}", user_id, data.provider.value)
        return provider

    async def get_provider_for_user(self, db: AsyncSession, provider_id: str, user_id: str) -> CalendarProvider:
        provider = await calendar_provider_crud.get(db, provider_id)
        if not provider or provider.user_id != user_id:
            raise NotFoundException(f"日历账户不存在: {provider_id}")
        return provider

    async def sync_provider(self, db: AsyncSession, provider: CalendarProvider) -> CalendarProvider:
        """与外部日历同步，目前只刷新更新时间"""
        provider = await calendar_provider_crud.update(db, db_obj=provider, obj_in={"updated_at": utcnow()})
        logger.info("日历账户已同步: {}", provider.id)
        return provider

    # ---------- 可预约时间 ----------

    async def generate_available_slots(
        self,
        db: AsyncSession,
        *,
        provider_id: str,
        start_date: date,
        end_date: date,
        duration: int = 30,
        job_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[SlotWindow]:
        """生成可预约时间，已开始的时间和已被占用的时间不返回"""
        if end_date < start_date:
            raise BadRequestException("结束日期不能早于开始日期")
        if (end_date - start_date).days > 62:
            raise BadRequestException("查询范围不能超过 62 天")

        slots = await time_slot_crud.get_by_provider(db, provider_id, job_id=job_id)
        windows = expand_time_slots(slots, start_date, end_date, duration)
        if not windows:
            return []

        schedules = await schedule_crud.get_in_range(
            db, provider_id=provider_id, start=windows[0].start, end=windows[-1].end
        )
        available = remove_conflicts(windows, schedules)
        now = now or utcnow()
        return [w for w in available if w.start >= now]

    # ---------- 排期 ----------

    async def schedule_interview(
        self,
        db: AsyncSession,
        *,
        interview_id: str,
        data: InterviewScheduleCreate,
    ) -> InterviewSchedule:
        scheduled_at = ensure_utc(data.scheduled_at)
        if data.calendar_provider_id:
            provider = await calendar_provider_crud.get(db, data.calendar_provider_id)
            if not provider or not provider.is_active:
                raise NotFoundException(f"日历账户不存在: {data.calendar_provider_id}")
            end = scheduled_at + timedelta(minutes=data.duration)
            existing = await schedule_crud.get_in_range(
                db, provider_id=provider.id, start=scheduled_at, end=end
            )
            if remove_conflicts([SlotWindow(scheduled_at, end)], existing) == []:
                raise ConflictException("该时间段已有其他面试")

        schedule = await schedule_crud.create(
            db,
            obj_in={
                **data.model_dump(),
                "scheduled_at": scheduled_at,
                "interview_id": interview_id,
                "status": ScheduleStatus.SCHEDULED,
                **generate_meeting(),
            },
        )
        logger.info("面试已排期: interview={}, at={}", interview_id, scheduled_at.isoformat())
        return schedule

    async def update_schedule_status(
        self,
        db: AsyncSession,
        *,
        schedule_id: str,
        status: ScheduleStatus,
    ) -> InterviewSchedule:
        schedule = await schedule_crud.get(db, schedule_id)
        if not schedule:
            raise NotFoundException(f"排期不存在: {schedule_id}")
        if schedule.status == ScheduleStatus.CANCELLED and status != ScheduleStatus.CANCELLED:
            raise BadRequestException("已取消的排期不能再修改状态")
        return await schedule_crud.update_status(db, db_obj=schedule, status=status)

    async def get_upcoming_schedules(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        limit: int = 10,
    ) -> List[InterviewSchedule]:
        providers = await calendar_provider_crud.get_by_user(db, user_id)
        return await schedule_crud.get_upcoming(
            db, provider_ids=[p.id for p in providers], now=utcnow(), limit=limit
        )

    async def send_schedule_reminders(self, db: AsyncSession) -> Dict[str, int]:
        """给 24 小时内开始、已确认且未提醒的面试发送提醒"""
        due = await schedule_crud.get_due_reminders(db, now=utcnow(), window=REMINDER_WINDOW)
        sent = 0
        for schedule in due:
            interview = await interview_crud.get(db, schedule.interview_id)
            if not interview:
                continue
            application = await application_crud.get(db, interview.application_id)
            if not application:
                continue
            applicant = await applicant_crud.get(db, application.applicant_id)
            job = await job_crud.get(db, application.job_id)
            if not applicant or not job:
                continue

            delivered = await get_email_service().send_interview_reminder(
                applicant.email,
                applicant.name,
                job.title,
                ensure_utc(schedule.scheduled_at),
                schedule.meeting_url,
            )
            if delivered:
                await schedule_crud.update(db, db_obj=schedule, obj_in={"reminder_sent": True})
                sent += 1

        if due:
            logger.info("面试提醒: 待提醒 {} 个，已发送 {} 个", len(due), sent)
        return {"due": len(due), "sent": sent}


# 全局单例
calendar_service = CalendarService()
