"""
CRUD 基类模块

各实体 CRUD 的公共部分：按 ID 读取、条件列表与计数、创建、部分更新、删除。
只 flush 不 commit，事务由 get_db 统一提交。
"""
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

ModelType = TypeVar("ModelType", bound=SQLModel)

ObjIn = Union[SQLModel, Dict[str, Any]]


class CRUDBase(Generic[ModelType]):
    """通用 CRUD，model 需带 id 和 created_at 字段"""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: str) -> Optional[ModelType]:
        return await db.get(self.model, id)

    async def get_multi(
        self,
        db: AsyncSession,
        *conditions: Any,
        skip: int = 0,
        limit: int = 100,
        order_by: Any = None,
    ) -> List[ModelType]:
        """按条件分页查询，默认最新的在前"""
        query = select(self.model).where(*conditions)
        query = query.order_by(order_by if order_by is not None else self.model.created_at.desc())
        result = await db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def count(self, db: AsyncSession, *conditions: Any) -> int:
        query = select(func.count()).select_from(self.model).where(*conditions)
        return (await db.execute(query)).scalar() or 0

    async def create(self, db: AsyncSession, *, obj_in: ObjIn) -> ModelType:
        """从 dict 或请求 Schema 创建，flush 后即可拿到 id 和默认值"""
        db_obj = self.model(**obj_in) if isinstance(obj_in, dict) else self.model.model_validate(obj_in)
        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def update(self, db: AsyncSession, *, db_obj: ModelType, obj_in: ObjIn) -> ModelType:
        """
        部分更新

        Schema 只取显式传入的字段；值为 None 的字段保持原值
        """
        changes = obj_in if isinstance(obj_in, dict) else obj_in.model_dump(exclude_unset=True)
        for name, value in changes.items():
            if value is not None:
                setattr(db_obj, name, value)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def delete(self, db: AsyncSession, *, id: str) -> bool:
        """删除记录，不存在时返回 False"""
        db_obj = await self.get(db, id)
        if db_obj is None:
            return False
        await db.delete(db_obj)
        await db.flush()
        return True
