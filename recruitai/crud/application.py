"""
应聘申请 CRUD 操作
"""
from typing import Optional, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.models.application import JobApplication, ApplicationStatus
from .base import CRUDBase


class CRUDJobApplication(CRUDBase[JobApplication]):
    """应聘申请 CRUD 操作类"""

    async def get_by_job(self, db: AsyncSession, job_id: str) -> List[JobApplication]:
        """获取岗位下的全部申请"""
        result = await db.execute(
            select(self.model)
            .where(self.model.job_id == job_id)
            .order_by(self.model.applied_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_job_and_applicant(
        self,
        db: AsyncSession,
        job_id: str,
        applicant_id: str
    ) -> Optional[JobApplication]:
        """查找候选人对某岗位的申请"""
        result = await db.execute(
            select(self.model)
            .where(self.model.job_id == job_id, self.model.applicant_id == applicant_id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def update_status(
        self,
        db: AsyncSession,
        *,
        db_obj: JobApplication,
        status: ApplicationStatus
    ) -> JobApplication:
        """更新申请状态"""
        return await self.update(db, db_obj=db_obj, obj_in={"status": status})


application_crud = CRUDJobApplication(JobApplication)
