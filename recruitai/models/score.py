"""
面试评分模型模块
"""
from typing import Optional, Dict, Any
from sqlalchemy import Column as SAColumn, String, ForeignKey
from sqlmodel import Field, Column, JSON

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse


class InterviewScoreBase(SQLModelBase):
    """评分基础字段，分值范围 1-10"""
    technical_score: float = Field(..., ge=1, le=10, description="技术能力")
    communication_score: float = Field(..., ge=1, le=10, description="沟通表达")
    confidence_score: float = Field(..., ge=1, le=10, description="自信程度")
    overall_score: float = Field(..., ge=1, le=10, description="综合得分")
    feedback: Optional[str] = Field(None, description="评语")


class InterviewScore(InterviewScoreBase, TimestampMixin, IDMixin, table=True):
    """面试评分表模型"""
    __tablename__ = "interview_scores"

    interview_id: str = Field(
        sa_column=SAColumn(
            String(36),
            ForeignKey("interviews.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
            index=True,
        ),
        description="面试ID"
    )
    analysis_details: Dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON), description="分析细节"
    )

    def __repr__(self) -> str:
        return f"<InterviewScore(interview_id={self.interview_id}, overall={self.overall_score})>"


class InterviewScoreCreate(InterviewScoreBase):
    """创建评分"""
    interview_id: str
    analysis_details: Dict[str, Any] = Field(default_factory=dict)


class InterviewScoreOverride(SQLModelBase):
    """人工调整评分"""
    technical_score: Optional[float] = Field(None, ge=1, le=10)
    communication_score: Optional[float] = Field(None, ge=1, le=10)
    confidence_score: Optional[float] = Field(None, ge=1, le=10)
    overall_score: Optional[float] = Field(None, ge=1, le=10)
    feedback: Optional[str] = None
    reason: str = Field(..., min_length=1, description="调整原因")


class InterviewScoreResponse(TimestampResponse):
    """评分响应"""
    interview_id: str
    technical_score: float
    communication_score: float
    confidence_score: float
    overall_score: float
    feedback: Optional[str]
    analysis_details: Dict[str, Any]
