"""
招聘分析 API 路由
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.core.database import get_db
from recruitai.core.optimization import api_optimization, get_cache_key, get_cache_ttl
from recruitai.core.response import DictResponse, success_response
from recruitai.core.security import CurrentUser, Permission
from recruitai.models.job import ExpertiseLevel
from recruitai.services.analytics import EXPORT_LIMIT, AnalyticsFilters, analytics_service
from recruitai.services.audit import AuditAction, AuditSeverity, audit_logger
from ..deps import require_permission

router = APIRouter()


def get_filters(
    start_date: Optional[datetime] = Query(None, description="开始时间"),
    end_date: Optional[datetime] = Query(None, description="结束时间"),
    job_id: Optional[str] = Query(None, description="岗位ID"),
    department: Optional[str] = Query(None, description="部门"),
    expertise_level: Optional[ExpertiseLevel] = Query(None, description="岗位级别"),
) -> AnalyticsFilters:
    return AnalyticsFilters(
        start_date=start_date,
        end_date=end_date,
        job_id=job_id,
        department=department,
        expertise_level=expertise_level.value if expertise_level else None,
    )


def _filter_key(endpoint: str, filters: AnalyticsFilters) -> str:
    params = {k: v for k, v in vars(filters).items() if v is not None}
    return get_cache_key(endpoint, params)


@router.get("/completion-stats", summary="面试完成率", response_model=DictResponse)
async def get_completion_stats(
    filters: AnalyticsFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_ADVANCED_ANALYTICS)),
):
    key = _filter_key("/analytics/completion-stats", filters)
    stats = api_optimization.get_cached_response(key)
    if stats is None:
        stats = await analytics_service.get_completion_stats(db, filters)
        api_optimization.set_cached_response(key, stats, get_cache_ttl(key))
    return success_response(data=stats)


@router.get("/candidate-comparison", summary="候选人对比排名", response_model=DictResponse)
async def get_candidate_comparison(
    job_id: Optional[str] = Query(None, description="岗位ID"),
    limit: int = Query(20, ge=1, le=100, description="数量"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_ADVANCED_ANALYTICS)),
):
    candidates = await analytics_service.get_candidate_comparison(db, job_id=job_id, limit=limit)
    audit_logger.log_for(user, AuditAction.ANALYTICS_ACCESSED, "analytics", "candidate-comparison")
    return success_response(data={"items": candidates})


@router.get("/performance-trends", summary="月度表现趋势", response_model=DictResponse)
async def get_performance_trends(
    filters: AnalyticsFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_ADVANCED_ANALYTICS)),
):
    key = _filter_key("/analytics/performance-trends", filters)
    trends = api_optimization.get_cached_response(key)
    if trends is None:
        trends = await analytics_service.get_performance_trends(db, filters)
        api_optimization.set_cached_response(key, trends, get_cache_ttl(key))
    return success_response(data={"items": trends})


@router.get("/bias-analysis", summary="评分偏差分析", response_model=DictResponse)
async def get_bias_analysis(
    filters: AnalyticsFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_BIAS_ANALYSIS)),
):
    analysis = await analytics_service.analyze_bias(db, filters)
    audit_logger.log_for(
        user, AuditAction.BIAS_ANALYSIS_VIEWED, "analytics", "bias-analysis", severity=AuditSeverity.MEDIUM
    )
    return success_response(data=analysis)


@router.get("/time-based", summary="答题用时分析", response_model=DictResponse)
async def get_time_based_analytics(
    filters: AnalyticsFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_ADVANCED_ANALYTICS)),
):
    return success_response(data=await analytics_service.get_time_based_analytics(db, filters))


@router.get("/export/candidates", summary="导出候选人分析 CSV")
async def export_candidates(
    job_id: Optional[str] = Query(None, description="岗位ID"),
    limit: int = Query(EXPORT_LIMIT, ge=1, le=10000, description="最多导出条数"),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_permission(Permission.EXPORT_REPORTS)),
):
    content = await analytics_service.export_candidates_csv(db, job_id=job_id, limit=limit)
    audit_logger.log_for(
        user, AuditAction.REPORT_EXPORTED, "report", "candidates",
        {"job_id": job_id, "limit": limit}, severity=AuditSeverity.MEDIUM,
    )
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="candidate-analysis.csv"'},
    )
