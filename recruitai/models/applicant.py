"""
候选人模型模块
"""
import re
from typing import Optional, List, TYPE_CHECKING
from pydantic import field_validator
from sqlmodel import Field, Relationship

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse

if TYPE_CHECKING:
    from .application import JobApplication

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ApplicantBase(SQLModelBase):
    """候选人基础字段"""
    name: str = Field(..., min_length=1, max_length=100, description="姓名")
    email: str = Field(..., max_length=200, index=True, description="邮箱")
    phone: Optional[str] = Field(None, max_length=50, description="电话")
    resume: Optional[str] = Field(None, description="简历内容或链接")
    profile_image: Optional[str] = Field(None, max_length=500, description="头像地址")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("邮箱格式不正确")
        return v


class Applicant(ApplicantBase, TimestampMixin, IDMixin, table=True):
    """候选人表模型"""
    __tablename__ = "applicants"

    applications: List["JobApplication"] = Relationship(
        back_populates="applicant",
        sa_relationship_kwargs={"lazy": "selectin", "passive_deletes": "all"}
    )

    def __repr__(self) -> str:
        return f"<Applicant(id={self.id}, email={self.email})>"


class ApplicantCreate(ApplicantBase):
    """创建候选人请求"""
    pass


class ApplicantUpdate(SQLModelBase):
    """更新候选人请求"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    resume: Optional[str] = None
    profile_image: Optional[str] = Field(None, max_length=500)


class ApplicantResponse(TimestampResponse):
    """候选人响应"""
    name: str
    email: str
    phone: Optional[str]
    resume: Optional[str]
    profile_image: Optional[str]
    application_count: int = 0
