"""
视频面试模型模块

每场面试属于一个应聘申请，通过邀请令牌对候选人开放
"""
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, TYPE_CHECKING
from sqlalchemy import Column as SAColumn, DateTime, String, ForeignKey
from sqlmodel import Field, Relationship, Column, JSON

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse

if TYPE_CHECKING:
    from .application import JobApplication


class InterviewStatus(str, Enum):
    """面试状态"""
    PENDING = "pending"            # 已邀请，未开始
    IN_PROGRESS = "in_progress"    # 录制中
    COMPLETED = "completed"        # 已提交
    EXPIRED = "expired"            # 已过期


class QuestionType(str, Enum):
    """面试题类型"""
    TECHNICAL = "technical"
    BEHAVIORAL = "behavioral"
    SITUATIONAL = "situational"


# ==================== 嵌套结构 ====================

class InterviewQuestion(SQLModelBase):
    """面试题"""
    question: str
    type: QuestionType = QuestionType.TECHNICAL
    expected_duration: int = Field(120, ge=10, le=900, description="建议作答时长（秒）")


# ==================== 表模型 ====================

class Interview(TimestampMixin, IDMixin, table=True):
    """视频面试表模型"""
    __tablename__ = "interviews"

    application_id: str = Field(
        sa_column=SAColumn(
            String(36),
            ForeignKey("job_applications.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        description="应聘申请ID"
    )
    questions: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON), description="面试题列表"
    )
    invite_token: str = Field(..., max_length=64, unique=True, index=True, description="邀请令牌")
    invite_sent_at: Optional[datetime] = Field(None, sa_type=DateTime(timezone=True), description="邀请发送时间")
    started_at: Optional[datetime] = Field(None, sa_type=DateTime(timezone=True), description="开始时间")
    completed_at: Optional[datetime] = Field(None, sa_type=DateTime(timezone=True), description="完成时间")
    video_path: Optional[str] = Field(None, max_length=500, description="视频文件路径")
    status: InterviewStatus = Field(InterviewStatus.PENDING, index=True, description="面试状态")

    application: Optional["JobApplication"] = Relationship(
        sa_relationship_kwargs={"lazy": "selectin"}
    )

    def __repr__(self) -> str:
        return f"<Interview(id={self.id}, status={self.status})>"


# ==================== 请求 Schema ====================

class InterviewInvite(SQLModelBase):
    """邀请候选人面试请求"""
    applicant_email: str = Field(..., min_length=3, description="候选人邮箱")
    job_id: str = Field(..., min_length=1, description="岗位ID")
    send_email: bool = Field(True, description="是否发送邀请邮件")


class InterviewStatusUpdate(SQLModelBase):
    """更新面试状态"""
    status: InterviewStatus


# ==================== 响应 Schema ====================

class InterviewResponse(TimestampResponse):
    """面试响应"""
    application_id: str
    questions: List[Dict[str, Any]]
    invite_token: str
    invite_sent_at: Optional[datetime]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    video_path: Optional[str]
    status: InterviewStatus


class CandidateInterviewResponse(SQLModelBase):
    """候选人通过令牌看到的面试信息（不含内部字段）"""
    id: str
    status: InterviewStatus
    questions: List[Dict[str, Any]]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    job_title: Optional[str] = None
    company: Optional[str] = None
    applicant_name: Optional[str] = None
