"""
应聘申请模型模块

JobApplication 连接岗位和候选人，面试挂在申请之下
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, TYPE_CHECKING
from sqlalchemy import Column as SAColumn, DateTime, String, ForeignKey
from sqlmodel import Field, Relationship

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse, utcnow
from .applicant import ApplicantCreate

if TYPE_CHECKING:
    from .job import Job
    from .applicant import Applicant


class ApplicationStatus(str, Enum):
    """应聘申请状态枚举"""
    APPLIED = "applied"            # 已投递
    SCREENING = "screening"        # 筛选中
    INVITED = "invited"            # 已邀请面试
    INTERVIEWED = "interviewed"    # 已完成面试
    SCORED = "scored"              # 已评分
    REJECTED = "rejected"          # 已拒绝
    HIRED = "hired"                # 已录用


class JobApplicationBase(SQLModelBase):
    """申请基础字段"""
    status: ApplicationStatus = Field(ApplicationStatus.APPLIED, description="申请状态", index=True)


class JobApplication(JobApplicationBase, TimestampMixin, IDMixin, table=True):
    """应聘申请表模型"""
    __tablename__ = "job_applications"

    job_id: str = Field(
        sa_column=SAColumn(
            String(36),
            ForeignKey("jobs.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        description="岗位ID"
    )
    applicant_id: str = Field(
        sa_column=SAColumn(
            String(36),
            ForeignKey("applicants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        description="候选人ID"
    )
    applied_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), description="投递时间")

    job: Optional["Job"] = Relationship(
        back_populates="applications",
        sa_relationship_kwargs={"lazy": "selectin"}
    )
    applicant: Optional["Applicant"] = Relationship(
        back_populates="applications",
        sa_relationship_kwargs={"lazy": "selectin"}
    )

    def __repr__(self) -> str:
        return f"<JobApplication(id={self.id}, status={self.status})>"


class JobApplicationCreate(JobApplicationBase):
    """创建申请请求"""
    job_id: str
    applicant_id: str


class JobApplicationUpdate(SQLModelBase):
    """更新申请请求"""
    status: Optional[ApplicationStatus] = None


class JobApplicationResponse(TimestampResponse):
    """申请响应"""
    job_id: str
    applicant_id: str
    status: ApplicationStatus
    applied_at: datetime


class ExternalApplicationRequest(SQLModelBase):
    """外部招聘平台推送的投递"""
    job_id: str = Field(..., min_length=1, alias="jobId", description="岗位ID")
    applicant_data: ApplicantCreate = Field(..., alias="applicantData", description="候选人信息")
    send_invite: bool = Field(True, alias="sendInvite", description="是否发送面试邀请邮件")


class ExternalApplicationResult(SQLModelBase):
    """外部投递处理结果"""
    application_id: str
    applicant_id: str
    interview_id: str
    interview_token: str
    interview_link: str
    email_sent: bool = False


class WebhookApplicationRequest(ExternalApplicationRequest):
    """Webhook 推送的投递，附带来源平台的元数据"""
    source_metadata: Dict[str, Any] = Field(default_factory=dict, alias="metadata", description="来源平台元数据")
