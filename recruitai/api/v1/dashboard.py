"""
仪表盘 API 路由
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.database import get_db
from recruitai.core.optimization import api_optimization, get_cache_key, get_cache_ttl
from recruitai.core.response import DictResponse, success_response
from recruitai.crud import interview_crud, score_crud
from recruitai.models.interview import InterviewStatus

router = APIRouter()

ANALYTICS_TTL = 300.0


async def _measured(name: str, call):
    measured = await api_optimization.measure_api_call(name, call)
    if not measured.success:
        raise measured.error
    return measured.result


@router.get("/stats", summary="仪表盘统计", response_model=DictResponse)
async def get_dashboard_stats(db: AsyncSession = Depends(get_db)):
    """
    面试总数、待复核数（已完成）、平均分和 API 调用次数

    结果按 /dashboard 规则缓存
    """
    key = get_cache_key("/dashboard/stats")
    cached = api_optimization.get_cached_response(key)
    if cached is not None:
        return success_response(data=cached)

    async def load():
        averages = await score_crud.get_averages(db)
        return {
            "total_interviews": await interview_crud.count_by_status(db),
            "pending_reviews": await interview_crud.count_by_status(db, InterviewStatus.COMPLETED),
            "average_score": averages["overall"],
        }

    stats = await _measured("dashboard-stats", load)
    stats["api_calls"] = api_optimization.total_calls
    api_optimization.set_cached_response(key, stats, get_cache_ttl("/dashboard/stats"))
    return success_response(data=stats)


@router.get("/analytics", summary="技能维度平均分", response_model=DictResponse)
async def get_dashboard_analytics(db: AsyncSession = Depends(get_db)):
    key = get_cache_key("/dashboard/analytics")
    cached = api_optimization.get_cached_response(key)
    if cached is not None:
        return success_response(data=cached)

    averages = await _measured("dashboard-analytics", lambda: score_crud.get_averages(db))
    api_optimization.set_cached_response(key, averages, ANALYTICS_TTL)
    return success_response(data=averages)
