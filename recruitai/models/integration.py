"""
第三方集成模型模块

保存外部系统调用本平台所用的 API Key 与回调地址
"""
from enum import Enum
from typing import Optional
from sqlmodel import Field

from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse


class ApiIntegrationBase(SQLModelBase):
    """集成基础字段"""
    name: str = Field(..., min_length=1, max_length=100, description="集成名称")
    webhook_url: Optional[str] = Field(None, max_length=500, description="回调地址")
    is_active: bool = Field(True, description="是否启用")


class ApiIntegration(ApiIntegrationBase, TimestampMixin, IDMixin, table=True):
    """集成表模型"""
    __tablename__ = "api_integrations"

    api_key: str = Field(..., max_length=128, unique=True, index=True, description="API Key")


class ApiIntegrationCreate(ApiIntegrationBase):
    """创建集成，api_key 由服务端生成"""
    pass


class ApiIntegrationResponse(TimestampResponse):
    """集成响应，api_key 仅展示前缀"""
    name: str
    webhook_url: Optional[str]
    is_active: bool
    api_key_preview: str = ""


class ApiIntegrationCreated(ApiIntegrationResponse):
    """创建成功时返回完整 api_key，仅此一次"""
    api_key: str


class SyncPlatform(str, Enum):
    """支持同步的 ATS 平台"""
    GREENHOUSE = "greenhouse"
    WORKDAY = "workday"
    LEVER = "lever"
    BAMBOOHR = "bamboohr"


class SyncConfigCreate(SQLModelBase):
    """注册 ATS 同步配置"""
    integration_id: str = Field(..., min_length=1, max_length=100, description="集成ID")
    platform_type: SyncPlatform = Field(..., description="平台类型")
    api_key: str = Field(..., min_length=1, description="平台 API Key")
    base_url: Optional[str] = Field(None, max_length=500, description="平台 API 地址")
    sync_jobs: bool = Field(True, description="是否同步岗位")
    sync_applicants: bool = Field(True, description="是否同步候选人")
    sync_interval: int = Field(15, ge=1, le=1440, description="同步间隔（分钟）")
