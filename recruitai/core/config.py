"""
应用配置模块

使用 pydantic-settings 管理环境变量和应用配置
"""
from functools import lru_cache
from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
import json

# 项目根目录
BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 应用基础配置
    app_name: str = "RecruitAI-API"
    app_env: str = "development"
    debug: bool = True
    api_prefix: str = "/api"

    # 数据库配置
    database_url: str = f"sqlite+aiosqlite:///{BASE_DIR / 'data' / 'recruitai.db'}"
    db_pool_max: int = 10

    # CORS 配置
    cors_origins: List[str] = ["*"]

    # 面试链接的对外地址，为空时使用请求地址
    public_base_url: str = ""

    # OpenAI 配置
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o"
    llm_temperature: float = 0.7
    llm_timeout: int = 120
    llm_max_concurrency: int = 5
    llm_rate_limit: int = 60

    # Brevo 邮件配置
    brevo_api_key: str = ""
    brevo_api_url: str = "https://api.brevo.com/v3/smtp/email"
    from_email: str = "noreply@recruitai.app"
    from_name: str = "AI Interview Platform"

    # 消息通知配置
    slack_bot_token: str = ""
    slack_default_channel: str = "#recruiting"
    teams_webhook_url: str = ""

    # 视频存储
    upload_dir: str = str(BASE_DIR / "uploads" / "videos")
    max_video_size_mb: int = 500

    # 外部接口安全
    webhook_secret: str = ""
    strict_api_keys: bool = False
    external_rate_limit: int = 100
    external_rate_window: int = 60
    invite_token_bytes: int = 24

    # API 优化组件
    cache_max_entries: int = 1000
    cache_sweep_interval: int = 300
    rate_limit_sweep_interval: int = 60

    # ATS 数据同步
    sync_auto_enabled: bool = True
    sync_interval_minutes: int = 15
    sync_mock_latency: float = 1.0

    # 模拟登录用户
    mock_default_user: str = "admin@company.com"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("database_url", mode="before")
    @classmethod
    def fix_database_path(cls, v):
        if isinstance(v, str) and "./data/" in v:
            return v.replace("./data/", str(BASE_DIR / "data") + "/")
        return v

    @property
    def is_development(self) -> bool:
        """是否为开发环境"""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """是否为生产环境"""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


# 全局配置实例
settings = get_settings()
