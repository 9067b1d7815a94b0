"""
视频面试 CRUD 操作
"""
from typing import Optional, List, Dict, Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.models.base import utcnow
from recruitai.models.interview import Interview, InterviewStatus
from recruitai.models.application import JobApplication
from recruitai.models.applicant import Applicant
from recruitai.models.job import Job
from recruitai.models.score import InterviewScore
from .base import CRUDBase


class CRUDInterview(CRUDBase[Interview]):
    """视频面试 CRUD 操作类"""

    def _with_context(self):
        """面试 + 候选人 + 岗位 + 评分 的联表查询"""
        return (
            select(self.model, Applicant, Job, InterviewScore)
            .join(JobApplication, self.model.application_id == JobApplication.id)
            .join(Applicant, JobApplication.applicant_id == Applicant.id)
            .join(Job, JobApplication.job_id == Job.id)
            .outerjoin(InterviewScore, InterviewScore.interview_id == self.model.id)
        )

    async def get_by_token(self, db: AsyncSession, token: str) -> Optional[Interview]:
        """根据邀请令牌查找"""
        result = await db.execute(
            select(self.model).where(self.model.invite_token == token)
        )
        return result.scalar_one_or_none()

    async def get_by_application(self, db: AsyncSession, application_id: str) -> List[Interview]:
        return await self.get_multi(db, self.model.application_id == application_id, limit=1000)

    def _status_conditions(self, status: Optional[InterviewStatus]) -> list:
        return [self.model.status == status] if status is not None else []

    async def get_filtered(
        self,
        db: AsyncSession,
        *,
        status: Optional[InterviewStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Interview]:
        return await self.get_multi(db, *self._status_conditions(status), skip=skip, limit=limit)

    async def count_by_status(self, db: AsyncSession, status: Optional[InterviewStatus] = None) -> int:
        return await self.count(db, *self._status_conditions(status))

    async def get_with_context(self, db: AsyncSession, id: str) -> Optional[Dict[str, Any]]:
        """获取面试详情及其候选人、岗位、评分"""
        result = await db.execute(self._with_context().where(self.model.id == id))
        row = result.first()
        if row is None:
            return None
        interview, applicant, job, score = row
        return {"interview": interview, "applicant": applicant, "job": job, "score": score}

    async def get_recent(self, db: AsyncSession, limit: int = 10) -> List[Dict[str, Any]]:
        """最近的面试列表"""
        result = await db.execute(
            self._with_context().order_by(self.model.created_at.desc()).limit(limit)
        )
        return [
            {"interview": interview, "applicant": applicant, "job": job, "score": score}
            for interview, applicant, job, score in result.all()
        ]

    async def update_status(
        self,
        db: AsyncSession,
        *,
        db_obj: Interview,
        status: InterviewStatus
    ) -> Interview:
        """更新状态，进入 in_progress / completed 时记录对应时间"""
        data: Dict[str, Any] = {"status": status}
        if status == InterviewStatus.IN_PROGRESS:
            data["started_at"] = utcnow()
        elif status == InterviewStatus.COMPLETED:
            data["completed_at"] = utcnow()
        return await self.update(db, db_obj=db_obj, obj_in=data)

    async def complete_with_video(
        self,
        db: AsyncSession,
        *,
        db_obj: Interview,
        video_path: str
    ) -> Interview:
        """保存视频路径并标记完成"""
        return await self.update(
            db,
            db_obj=db_obj,
            obj_in={
                "video_path": video_path,
                "status": InterviewStatus.COMPLETED,
                "completed_at": utcnow(),
            },
        )

    async def mark_invite_sent(self, db: AsyncSession, *, db_obj: Interview) -> Interview:
        return await self.update(db, db_obj=db_obj, obj_in={"invite_sent_at": utcnow()})


interview_crud = CRUDInterview(Interview)
