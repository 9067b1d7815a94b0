"""
候选人 CRUD 操作
"""
from typing import Optional, List
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.models.applicant import Applicant, ApplicantCreate
from .base import CRUDBase


class CRUDApplicant(CRUDBase[Applicant]):
    """候选人 CRUD 操作类"""

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[Applicant]:
        """根据邮箱查找（不区分大小写）"""
        result = await db.execute(
            select(self.model)
            .where(func.lower(self.model.email) == email.strip().lower())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def search(
        self,
        db: AsyncSession,
        *,
        keyword: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Applicant]:
        """按姓名或邮箱模糊搜索"""
        return await self.get_multi(db, *self._keyword(keyword), skip=skip, limit=limit)

    async def count_search(self, db: AsyncSession, *, keyword: Optional[str] = None) -> int:
        return await self.count(db, *self._keyword(keyword))

    def _keyword(self, keyword: Optional[str]) -> list:
        if not keyword:
            return []
        pattern = f"%{keyword}%"
        return [or_(self.model.name.ilike(pattern), self.model.email.ilike(pattern))]

    async def get_or_create(self, db: AsyncSession, *, obj_in: ApplicantCreate) -> tuple[Applicant, bool]:
        """按邮箱查找候选人，不存在则创建；返回 (候选人, 是否新建)"""
        existing = await self.get_by_email(db, obj_in.email)
        if existing:
            return existing, False
        applicant = await self.create(db, obj_in=obj_in.model_dump())
        return applicant, True


applicant_crud = CRUDApplicant(Applicant)
