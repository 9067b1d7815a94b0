"""
岗位模型模块 - SQLModel 版本

合并了 Model 和 Schema，减少代码重复
"""
from enum import Enum
from typing import Optional, List, TYPE_CHECKING
from sqlmodel import Field, Relationship

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse

if TYPE_CHECKING:
    from .application import JobApplication


class ExpertiseLevel(str, Enum):
    """岗位级别"""
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"


class JobStatus(str, Enum):
    """岗位状态"""
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"


# ==================== 基础字段定义 ====================

class JobBase(SQLModelBase):
    """岗位基础字段 - 用于创建和继承"""
    title: str = Field(..., min_length=1, max_length=200, description="岗位名称", index=True)
    description: str = Field(..., min_length=1, description="岗位描述/JD")
    company: str = Field(..., min_length=1, max_length=200, description="公司名称")
    requirements: str = Field("", description="岗位要求")
    expertise_level: ExpertiseLevel = Field(ExpertiseLevel.MID, description="岗位级别")
    status: JobStatus = Field(JobStatus.ACTIVE, description="岗位状态", index=True)
    department: Optional[str] = Field(None, max_length=100, description="所属部门")


# ==================== 表模型 ====================

class Job(JobBase, TimestampMixin, IDMixin, table=True):
    """岗位表模型"""
    __tablename__ = "jobs"

    # ATS 同步来源
    external_id: Optional[str] = Field(None, max_length=100, index=True, description="外部系统岗位ID")
    source: Optional[str] = Field(None, max_length=50, description="来源平台")

    applications: List["JobApplication"] = Relationship(
        back_populates="job",
        sa_relationship_kwargs={"lazy": "selectin", "passive_deletes": "all"}
    )

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, title={self.title})>"


# ==================== 请求 Schema ====================

class JobCreate(JobBase):
    """创建岗位请求"""
    pass


class JobUpdate(SQLModelBase):
    """更新岗位请求 - 所有字段可选"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    company: Optional[str] = Field(None, min_length=1, max_length=200)
    requirements: Optional[str] = None
    expertise_level: Optional[ExpertiseLevel] = None
    status: Optional[JobStatus] = None
    department: Optional[str] = Field(None, max_length=100)


class JobStatusUpdate(SQLModelBase):
    """更新岗位状态请求"""
    status: JobStatus


# ==================== 响应 Schema ====================

class JobResponse(TimestampResponse):
    """岗位详情响应"""
    title: str
    description: str
    company: str
    requirements: str
    expertise_level: ExpertiseLevel
    status: JobStatus
    department: Optional[str]
    external_id: Optional[str] = None
    source: Optional[str] = None
    application_count: int = Field(0, description="申请数量")
