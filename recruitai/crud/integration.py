"""
第三方集成 CRUD 操作
"""
from typing import Optional, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.models.integration import ApiIntegration
from .base import CRUDBase


class CRUDApiIntegration(CRUDBase[ApiIntegration]):
    """集成 CRUD 操作类"""

    async def get_active(self, db: AsyncSession) -> List[ApiIntegration]:
        result = await db.execute(
            select(self.model)
            .where(self.model.is_active == True)  # noqa: E712
            .order_by(self.model.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_api_key(self, db: AsyncSession, api_key: str) -> Optional[ApiIntegration]:
        """根据 API Key 查找启用中的集成"""
        result = await db.execute(
            select(self.model).where(
                self.model.api_key == api_key,
                self.model.is_active == True,  # noqa: E712
            )
        )
        return result.scalar_one_or_none()


integration_crud = CRUDApiIntegration(ApiIntegration)
