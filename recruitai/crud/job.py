"""
岗位 CRUD 操作
"""
from typing import Optional, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.models.job import Job, JobCreate, JobUpdate, JobStatus
from .base import CRUDBase


class CRUDJob(CRUDBase[Job]):
    """岗位 CRUD 操作类"""

    def _conditions(self, status: Optional[JobStatus], company: Optional[str]) -> list:
        conditions = []
        if status is not None:
            conditions.append(self.model.status == status)
        if company:
            conditions.append(self.model.company == company)
        return conditions

    async def get_by_title(self, db: AsyncSession, title: str) -> Optional[Job]:
        """根据岗位名称查找"""
        result = await db.execute(
            select(self.model).where(self.model.title == title).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_external_id(
        self,
        db: AsyncSession,
        external_id: str,
        source: Optional[str] = None
    ) -> Optional[Job]:
        """根据外部系统 ID 查找同步来的岗位"""
        query = select(self.model).where(self.model.external_id == external_id)
        if source:
            query = query.where(self.model.source == source)
        result = await db.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def get_filtered(
        self,
        db: AsyncSession,
        *,
        status: Optional[JobStatus] = None,
        company: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Job]:
        """按状态和公司筛选岗位"""
        return await self.get_multi(db, *self._conditions(status, company), skip=skip, limit=limit)

    async def count_filtered(
        self,
        db: AsyncSession,
        *,
        status: Optional[JobStatus] = None,
        company: Optional[str] = None
    ) -> int:
        return await self.count(db, *self._conditions(status, company))

    async def create_job(self, db: AsyncSession, *, obj_in: JobCreate) -> Job:
        """创建岗位"""
        return await self.create(db, obj_in=obj_in.model_dump())

    async def update_job(self, db: AsyncSession, *, db_obj: Job, obj_in: JobUpdate) -> Job:
        """更新岗位"""
        update_data = obj_in.model_dump(exclude_unset=True)
        return await self.update(db, db_obj=db_obj, obj_in=update_data)

    async def update_status(self, db: AsyncSession, *, db_obj: Job, status: JobStatus) -> Job:
        """更新岗位状态"""
        return await self.update(db, db_obj=db_obj, obj_in={"status": status})


job_crud = CRUDJob(Job)
