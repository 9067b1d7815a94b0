"""
面试评分 CRUD 操作
"""
from typing import Optional, Dict
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.models.score import InterviewScore
from .base import CRUDBase


class CRUDInterviewScore(CRUDBase[InterviewScore]):
    """面试评分 CRUD 操作类"""

    async def get_by_interview(self, db: AsyncSession, interview_id: str) -> Optional[InterviewScore]:
        result = await db.execute(
            select(self.model).where(self.model.interview_id == interview_id)
        )
        return result.scalar_one_or_none()

    async def get_averages(self, db: AsyncSession) -> Dict[str, float]:
        """各维度平均分，无数据时为 0"""
        result = await db.execute(
            select(
                func.avg(self.model.technical_score),
                func.avg(self.model.communication_score),
                func.avg(self.model.confidence_score),
                func.avg(self.model.overall_score),
            )
        )
        technical, communication, confidence, overall = result.one()
        return {
            "technical": round(float(technical or 0), 1),
            "communication": round(float(communication or 0), 1),
            "confidence": round(float(confidence or 0), 1),
            "overall": round(float(overall or 0), 1),
        }


score_crud = CRUDInterviewScore(InterviewScore)
