"""
测试配置文件

提供测试用的 fixtures：内存数据库、测试客户端、测试数据工厂等
"""
from dataclasses import dataclass, field
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from recruitai import models  # noqa: F401
from recruitai.core.database import enable_sqlite_foreign_keys, get_db
from recruitai.core.optimization import api_optimization
from recruitai.main import create_app
from recruitai.services.audit import audit_logger
from recruitai.services.data_sync import data_sync_service
from recruitai.services.llm_client import get_llm_client
from recruitai.services.mailer import get_email_service
from recruitai.services.notifications import get_notification_service
from recruitai.services.video_storage import video_storage

ADMIN = {"X-Mock-User": "admin@company.com"}
HR = {"X-Mock-User": "hr@company.com"}
REVIEWER = {"X-Mock-User": "reviewer@company.com"}


# ========== 测试数据工厂 ==========

@dataclass
class DataFactory:
    """
    测试数据工厂类

    集中管理测试数据创建，避免各测试文件重复代码
    字段变更时只需修改此处
    """
    client: AsyncClient
    _counter: int = field(default=0, repr=False)

    def _next_id(self) -> str:
        """生成唯一后缀，避免数据冲突"""
        self._counter += 1
        return str(self._counter)

    async def create_job(self, **overrides) -> dict:
        """创建岗位，返回完整响应数据"""
        suffix = self._next_id()
        data = {
            "title": f"Backend Engineer {suffix}",
            "description": "Build and operate Python services.",
            "company": "Acme",
            "requirements": "3+ years Python",
            "expertise_level": "mid",
            "department": "Engineering",
            **overrides
        }
        resp = await self.client.post("/api/jobs", json=data, headers=ADMIN)
        assert resp.status_code == 200, f"创建岗位失败: {resp.text}"
        return resp.json()["data"]

    async def create_applicant(self, **overrides) -> dict:
        """创建候选人，返回完整响应数据"""
        suffix = self._next_id()
        data = {
            "name": f"Candidate {suffix}",
            "email": f"candidate{suffix}@example.com",
            "phone": f"555-{suffix.zfill(4)}",
            **overrides
        }
        resp = await self.client.post("/api/applicants", json=data, headers=ADMIN)
        assert resp.status_code == 200, f"创建候选人失败: {resp.text}"
        return resp.json()["data"]

    async def invite(self, job_id: Optional[str] = None, applicant_email: Optional[str] = None) -> dict:
        """邀请候选人面试，自动创建依赖的岗位和候选人；返回数据中附带邀请令牌"""
        if job_id is None:
            job_id = (await self.create_job())["id"]
        if applicant_email is None:
            applicant_email = (await self.create_applicant())["email"]

        resp = await self.client.post(
            "/api/interviews/invite",
            json={"applicant_email": applicant_email, "job_id": job_id},
            headers=ADMIN,
        )
        assert resp.status_code == 200, f"邀请失败: {resp.text}"
        data = resp.json()["data"]
        data["token"] = data["interview_link"].rsplit("/", 1)[-1]
        data["job_id"] = job_id
        return data

    async def complete_interview(self, video: bytes = b"\x1a\x45\xdf\xa3webm-data") -> dict:
        """走完候选人开始 -> 提交视频的流程"""
        invited = await self.invite()
        token = invited["token"]
        resp = await self.client.post(f"/api/interview/{token}/start")
        assert resp.status_code == 200, f"开始面试失败: {resp.text}"
        resp = await self.client.post(
            f"/api/interview/{token}/submit",
            files={"video": ("answer.webm", video, "video/webm")},
        )
        assert resp.status_code == 200, f"提交面试失败: {resp.text}"
        return {**invited, **resp.json()["data"]}


# ========== 全局状态隔离 ==========

@pytest.fixture(autouse=True)
def isolate_singletons(monkeypatch, tmp_path):
    """重置进程内单例，外部服务一律视为未配置"""
    api_optimization.reset()
    audit_logger.clear()
    data_sync_service.clear()
    monkeypatch.setattr(data_sync_service, "mock_latency", 0)
    monkeypatch.setattr(video_storage, "upload_dir", tmp_path / "videos")

    monkeypatch.setattr(get_llm_client(), "api_key", "")
    monkeypatch.setattr(get_email_service(), "api_key", "")
    notifications = get_notification_service()
    monkeypatch.setattr(notifications, "slack_token", "")
    monkeypatch.setattr(notifications, "teams_webhook_url", "")
    yield
    api_optimization.reset()
    audit_logger.clear()
    data_sync_service.clear()


# ========== 数据库与客户端 ==========

@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    为每个测试函数提供独立的内存数据库会话

    StaticPool 保证同一个内存库在多次连接间共享
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    提供测试用的 HTTP 客户端

    覆盖 get_db 依赖，使用测试数据库；不触发应用生命周期
    """
    app = create_app()

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise
        finally:
            # 生产环境每个请求独立会话，这里清空身份映射，避免关系集合跨请求残留
            db_session.expunge_all()

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def factory(client: AsyncClient) -> DataFactory:
    """提供测试数据工厂实例"""
    return DataFactory(client=client)
