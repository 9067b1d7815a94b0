"""
ATS 数据同步服务模块。

从 Greenhouse / Workday / Lever / BambooHR 拉取岗位和候选人并写入本地库。
平台接口目前为模拟实现，只有 Greenhouse 返回样例数据。
同步是幂等的：岗位按 (external_id, source) 匹配，候选人按邮箱匹配。
"""
import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.config import settings
from recruitai.core.database import AsyncSessionLocal
from recruitai.crud import applicant_crud, application_crud, job_crud
from recruitai.models.applicant import ApplicantCreate
from recruitai.models.application import ApplicationStatus
from recruitai.models.base import utcnow
from recruitai.models.integration import SyncConfigCreate, SyncPlatform
from recruitai.models.job import ExpertiseLevel, JobStatus

JOB_STATUS_MAP = {
    "open": JobStatus.ACTIVE,
    "closed": JobStatus.CLOSED,
    "draft": JobStatus.PAUSED,
}

LEVEL_MAP = {
    "entry": ExpertiseLevel.JUNIOR,
    "mid": ExpertiseLevel.MID,
    "senior": ExpertiseLevel.SENIOR,
}

APPLICANT_STATUS_MAP = {
    "new": ApplicationStatus.APPLIED,
    "reviewed": ApplicationStatus.SCREENING,
    "interview_scheduled": ApplicationStatus.INVITED,
    "rejected": ApplicationStatus.REJECTED,
    "hired": ApplicationStatus.HIRED,
}


def map_job_status(external: str) -> JobStatus:
    return JOB_STATUS_MAP.get(external, JobStatus.ACTIVE)


def map_expertise_level(external: str) -> ExpertiseLevel:
    return LEVEL_MAP.get(external, ExpertiseLevel.MID)


def map_applicant_status(external: str) -> ApplicationStatus:
    return APPLICANT_STATUS_MAP.get(external, ApplicationStatus.APPLIED)


@dataclass
class ExternalJob:
    external_id: str
    title: str
    description: str
    requirements: str
    department: str
    location: str
    expertise_level: str
    status: str
    posted_date: date
    source: SyncPlatform
    salary_range: Optional[str] = None


@dataclass
class ExternalApplicant:
    external_id: str
    external_job_id: str
    first_name: str
    last_name: str
    email: str
    application_date: date
    status: str
    source: SyncPlatform
    phone: Optional[str] = None
    resume_url: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class SyncConfig:
    platform_type: SyncPlatform
    api_key: str
    base_url: Optional[str] = None
    sync_jobs: bool = True
    sync_applicants: bool = True
    sync_interval: int = 15
    last_sync: Optional[datetime] = None

    @classmethod
    def from_request(cls, data: SyncConfigCreate) -> "SyncConfig":
        return cls(
            platform_type=data.platform_type,
            api_key=data.api_key,
            base_url=data.base_url,
            sync_jobs=data.sync_jobs,
            sync_applicants=data.sync_applicants,
            sync_interval=data.sync_interval,
        )

    @property
    def next_sync(self) -> Optional[datetime]:
        if self.last_sync is None:
            return None
        return self.last_sync + timedelta(minutes=self.sync_interval)


@dataclass
class SyncResult:
    integration_id: str
    platform: str
    success: bool = True
    jobs_synced: int = 0
    applicants_synced: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "integration_id": self.integration_id,
            "platform": self.platform,
            "success": self.success,
            "jobs_synced": self.jobs_synced,
            "applicants_synced": self.applicants_synced,
            "errors": list(self.errors),
        }


class DataSyncService:
    """ATS 同步服务，配置只保存在进程内"""

    def __init__(self, mock_latency: float = 1.0):
        self.mock_latency = mock_latency
        self.configs: Dict[str, SyncConfig] = {}
        self._task: Optional[asyncio.Task] = None

    def register_sync(self, integration_id: str, config: SyncConfig) -> None:
        self.configs[integration_id] = config
        logger.info("注册 ATS 同步: platform={}, id={}", config.platform_type.value, integration_id)

    # ---------- 平台接口（模拟） ----------

    async def _simulate_latency(self, factor: float = 1.0) -> None:
        if self.mock_latency > 0:
            await asyncio.sleep(self.mock_latency * factor)

    async def fetch_jobs(self, config: SyncConfig) -> List[ExternalJob]:
        logger.info("从 {} 拉取岗位, key={}...", config.platform_type.value, config.api_key[:8])
        if config.platform_type != SyncPlatform.GREENHOUSE:
            return []

        await self._simulate_latency()
        return [
            ExternalJob(
                external_id="gh_job_123",
                title="Senior Frontend Developer",
                description="We are looking for a senior frontend developer to join our team...",
                requirements="5+ years React experience, TypeScript, etc.",
                department="Engineering",
                location="San Francisco, CA",
                salary_range="$120,000 - $160,000",
                expertise_level="senior",
                status="open",
                posted_date=date(2025, 6, 25),
                source=SyncPlatform.GREENHOUSE,
            ),
            ExternalJob(
                external_id="gh_job_124",
                title="Product Manager",
                description="Lead product strategy and roadmap development...",
                requirements="3+ years product management experience",
                department="Product",
                location="Remote",
                salary_range="$100,000 - $140,000",
                expertise_level="mid",
                status="open",
                posted_date=date(2025, 6, 28),
                source=SyncPlatform.GREENHOUSE,
            ),
        ]

    async def fetch_applicants(self, config: SyncConfig) -> List[ExternalApplicant]:
        logger.info("从 {} 拉取候选人", config.platform_type.value)
        if config.platform_type != SyncPlatform.GREENHOUSE:
            return []

        await self._simulate_latency(0.8)
        return [
            ExternalApplicant(
                external_id="gh_applicant_456",
                external_job_id="gh_job_123",
                first_name="Sarah",
                last_name="Chen",
                email="sarah.chen@email.com",
                phone="+1-555-0123",
                application_date=date(2025, 6, 29),
                status="new",
                source=SyncPlatform.GREENHOUSE,
            ),
            ExternalApplicant(
                external_id="gh_applicant_457",
                external_job_id="gh_job_124",
                first_name="Mike",
                last_name="Johnson",
                email="mike.johnson@email.com",
                application_date=date(2025, 6, 30),
                status="reviewed",
                source=SyncPlatform.GREENHOUSE,
            ),
        ]

    # ---------- 写库 ----------

    async def sync_job(self, db: AsyncSession, external: ExternalJob) -> None:
        status = map_job_status(external.status)
        job = await job_crud.get_by_external_id(db, external.external_id, external.source.value)
        if job is None:
            await job_crud.create(
                db,
                obj_in={
                    "title": external.title,
                    "description": external.description,
                    "company": external.department,
                    "department": external.department,
                    "requirements": external.requirements,
                    "expertise_level": map_expertise_level(external.expertise_level),
                    "status": status,
                    "external_id": external.external_id,
                    "source": external.source.value,
                },
            )
            logger.info("同步新岗位: {}", external.title)
        elif job.status != status:
            await job_crud.update_status(db, db_obj=job, status=status)
            logger.info("岗位状态更新: {} -> {}", external.title, status.value)

    async def sync_applicant(self, db: AsyncSession, external: ExternalApplicant) -> None:
        job = await job_crud.get_by_external_id(db, external.external_job_id, external.source.value)
        if job is None:
            raise ValueError(f"未找到对应岗位 {external.external_job_id}")

        applicant, created = await applicant_crud.get_or_create(
            db,
            obj_in=ApplicantCreate(
                name=external.full_name,
                email=external.email,
                phone=external.phone,
                resume=external.resume_url,
            ),
        )
        if created:
            logger.info("同步新候选人: {}", applicant.email)

        status = map_applicant_status(external.status)
        application = await application_crud.get_by_job_and_applicant(db, job.id, applicant.id)
        if application is None:
            await application_crud.create(
                db,
                obj_in={"job_id": job.id, "applicant_id": applicant.id, "status": status},
            )
            logger.info("创建申请: {} -> {}", applicant.email, job.title)
        elif application.status != status:
            await application_crud.update_status(db, db_obj=application, status=status)
            logger.info("申请状态更新: {} -> {}", applicant.email, status.value)

    async def _sync_items(
        self,
        db: AsyncSession,
        items: List[Any],
        sync: Callable[[AsyncSession, Any], Awaitable[None]],
        label: Callable[[Any], str],
        errors: List[str],
    ) -> int:
        """逐条同步，单条失败记录错误后继续"""
        synced = 0
        for item in items:
            try:
                # 单条失败只回滚到保存点，之前已同步的数据和会话不受影响
                async with db.begin_nested():
                    await sync(db, item)
            except Exception as exc:
                logger.warning("同步失败: {} - {}", label(item), exc)
                errors.append(f"{label(item)}: {exc}")
            else:
                synced += 1
        return synced

    async def sync_platform(self, db: AsyncSession, integration_id: str, config: SyncConfig) -> SyncResult:
        result = SyncResult(integration_id=integration_id, platform=config.platform_type.value)
        if config.sync_jobs:
            jobs = await self.fetch_jobs(config)
            result.jobs_synced = await self._sync_items(
                db, jobs, self.sync_job, lambda j: f"job {j.title}", result.errors
            )
        if config.sync_applicants:
            applicants = await self.fetch_applicants(config)
            result.applicants_synced = await self._sync_items(
                db, applicants, self.sync_applicant, lambda a: f"applicant {a.email}", result.errors
            )
        result.success = not result.errors
        return result

    async def perform_full_sync(self, db: AsyncSession) -> List[SyncResult]:
        results = []
        for integration_id, config in list(self.configs.items()):
            try:
                result = await self.sync_platform(db, integration_id, config)
            except Exception as exc:
                logger.exception("平台同步出错: {}", config.platform_type.value)
                result = SyncResult(
                    integration_id=integration_id,
                    platform=config.platform_type.value,
                    success=False,
                    errors=[str(exc)],
                )
            config.last_sync = utcnow()
            logger.info(
                "同步完成 {}: {} 个岗位, {} 个候选人",
                config.platform_type.value,
                result.jobs_synced,
                result.applicants_synced,
            )
            results.append(result)
        return results

    def get_sync_status(self) -> Dict[str, Any]:
        next_times = [c.next_sync for c in self.configs.values() if c.next_sync is not None]
        return {
            "total_configurations": len(self.configs),
            "last_sync_times": {
                integration_id: c.last_sync for integration_id, c in self.configs.items()
            },
            "next_scheduled_sync": min(next_times) if next_times else None,
        }

    # ---------- 定时同步 ----------

    async def _auto_sync(self, interval_minutes: int) -> None:
        while True:
            await asyncio.sleep(interval_minutes * 60)
            if not self.configs:
                continue
            try:
                async with AsyncSessionLocal() as db:
                    results = await self.perform_full_sync(db)
                    await db.commit()
            except Exception:
                logger.exception("自动同步出错")
                continue
            jobs = sum(r.jobs_synced for r in results)
            applicants = sum(r.applicants_synced for r in results)
            if jobs or applicants:
                logger.info("自动同步完成: {} 个岗位, {} 个候选人", jobs, applicants)

    def start(self, interval_minutes: int = 15) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._auto_sync(interval_minutes))
        logger.info("ATS 自动同步已启动，间隔 {} 分钟", interval_minutes)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def clear(self) -> None:
        self.configs.clear()


# 全局单例
data_sync_service = DataSyncService(mock_latency=settings.sync_mock_latency)
