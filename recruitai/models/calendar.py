"""
日历与面试排期模型模块

包含日历账户、面试排期和可预约时间段三张表
"""
import re
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import field_validator, model_validator
from sqlalchemy import Column as SAColumn, DateTime, String, ForeignKey
from sqlmodel import Field

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class CalendarProviderType(str, Enum):
    """日历服务商"""
    GOOGLE = "google"
    OUTLOOK = "outlook"
    CALENDLY = "calendly"


class ScheduleStatus(str, Enum):
    """排期状态"""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# ==================== 日历账户 ====================

class CalendarProviderBase(SQLModelBase):
    """日历账户基础字段"""
    provider: CalendarProviderType = Field(..., description="服务商")
    provider_account_id: str = Field(..., min_length=1, max_length=200, description="服务商账户ID")
    calendar_id: Optional[str] = Field(None, max_length=200, description="日历ID")


class CalendarProvider(CalendarProviderBase, TimestampMixin, IDMixin, table=True):
    """日历账户表模型"""
    __tablename__ = "calendar_providers"

    user_id: str = Field(..., max_length=100, index=True, description="所属用户")
    access_token: str = Field(..., description="访问令牌")
    refresh_token: Optional[str] = Field(None, description="刷新令牌")
    expires_at: Optional[datetime] = Field(None, sa_type=DateTime(timezone=True), description="令牌过期时间")
    is_active: bool = Field(True, index=True, description="是否启用")


class CalendarProviderConnect(CalendarProviderBase):
    """连接日历账户请求"""
    provider_account_id: Optional[str] = Field(None, max_length=200, description="服务商账户ID，不填则自动生成")
    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None


class CalendarProviderUpdate(SQLModelBase):
    """更新日历账户"""
    calendar_id: Optional[str] = Field(None, max_length=200)
    is_active: Optional[bool] = None


class CalendarProviderResponse(TimestampResponse):
    """日历账户响应（不返回令牌）"""
    user_id: str
    provider: CalendarProviderType
    provider_account_id: str
    calendar_id: Optional[str]
    expires_at: Optional[datetime]
    is_active: bool


# ==================== 面试排期 ====================

class InterviewScheduleBase(SQLModelBase):
    """排期基础字段"""
    scheduled_at: datetime = Field(..., sa_type=DateTime(timezone=True), description="面试开始时间")
    duration: int = Field(30, ge=5, le=480, description="时长（分钟）")
    timezone: str = Field("UTC", max_length=64, description="时区")


class InterviewSchedule(InterviewScheduleBase, TimestampMixin, IDMixin, table=True):
    """面试排期表模型"""
    __tablename__ = "interview_schedules"

    interview_id: str = Field(
        sa_column=SAColumn(
            String(36),
            ForeignKey("interviews.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        description="面试ID"
    )
    calendar_provider_id: Optional[str] = Field(
        sa_column=SAColumn(
            String(36),
            ForeignKey("calendar_providers.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        default=None,
        description="日历账户ID"
    )
    meeting_url: Optional[str] = Field(None, max_length=500, description="会议链接")
    meeting_id: Optional[str] = Field(None, max_length=100, description="会议ID")
    status: ScheduleStatus = Field(ScheduleStatus.SCHEDULED, index=True, description="排期状态")
    confirmed_at: Optional[datetime] = Field(None, sa_type=DateTime(timezone=True), description="确认时间")
    cancelled_at: Optional[datetime] = Field(None, sa_type=DateTime(timezone=True), description="取消时间")
    reminder_sent: bool = Field(False, description="是否已发送提醒")


class InterviewScheduleCreate(InterviewScheduleBase):
    """创建排期请求"""
    calendar_provider_id: Optional[str] = None


class ScheduleStatusUpdate(SQLModelBase):
    """更新排期状态"""
    status: ScheduleStatus


class InterviewScheduleResponse(TimestampResponse):
    """排期响应"""
    interview_id: str
    calendar_provider_id: Optional[str]
    scheduled_at: datetime
    duration: int
    timezone: str
    meeting_url: Optional[str]
    meeting_id: Optional[str]
    status: ScheduleStatus
    confirmed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    reminder_sent: bool


# ==================== 可预约时间段 ====================

class TimeSlotBase(SQLModelBase):
    """时间段基础字段，day_of_week 以周日为 0"""
    day_of_week: int = Field(..., ge=0, le=6, description="星期几 (0=周日)")
    start_time: str = Field(..., max_length=5, description="开始时间 HH:MM")
    end_time: str = Field(..., max_length=5, description="结束时间 HH:MM")
    timezone: str = Field("UTC", max_length=64, description="时区")

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time_format(cls, v: str) -> str:
        if not TIME_PATTERN.match(v):
            raise ValueError("时间格式应为 HH:MM")
        return v


class AvailableTimeSlot(TimeSlotBase, TimestampMixin, IDMixin, table=True):
    """可预约时间段表模型"""
    __tablename__ = "available_time_slots"

    calendar_provider_id: str = Field(
        sa_column=SAColumn(
            String(36),
            ForeignKey("calendar_providers.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        description="日历账户ID"
    )
    job_id: Optional[str] = Field(
        sa_column=SAColumn(
            String(36),
            ForeignKey("jobs.id", ondelete="CASCADE"),
            nullable=True,
            index=True,
        ),
        default=None,
        description="限定岗位，为空表示通用"
    )
    is_active: bool = Field(True, description="是否启用")


class TimeSlotCreate(TimeSlotBase):
    """创建时间段请求"""
    calendar_provider_id: str
    job_id: Optional[str] = None

    @model_validator(mode="after")
    def check_range(self) -> "TimeSlotCreate":
        if self.start_time >= self.end_time:
            raise ValueError("结束时间必须晚于开始时间")
        return self


class TimeSlotUpdate(SQLModelBase):
    """更新时间段"""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def check_time_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not TIME_PATTERN.match(v):
            raise ValueError("时间格式应为 HH:MM")
        return v


class TimeSlotResponse(TimestampResponse):
    """时间段响应"""
    calendar_provider_id: str
    job_id: Optional[str]
    day_of_week: int
    start_time: str
    end_time: str
    timezone: str
    is_active: bool
