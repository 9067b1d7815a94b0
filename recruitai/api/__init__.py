"""
API 路由模块
"""
from fastapi import APIRouter

from .v1 import (
    dashboard,
    jobs,
    applicants,
    interviews,
    candidate,
    videos,
    external,
    sync,
    analytics,
    rbac,
    audit,
    integrations,
    calendar,
)

# 创建主路由
api_router = APIRouter()

# 注册各模块路由
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["仪表盘"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["岗位管理"])
api_router.include_router(applicants.router, prefix="/applicants", tags=["候选人管理"])
api_router.include_router(interviews.router, prefix="/interviews", tags=["面试管理"])
api_router.include_router(candidate.router, prefix="/interview", tags=["候选人面试"])
api_router.include_router(videos.router, prefix="/videos", tags=["面试视频"])
api_router.include_router(external.router, tags=["外部接入"])
api_router.include_router(sync.router, prefix="/sync", tags=["ATS 同步"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["招聘分析"])
api_router.include_router(rbac.router, prefix="/rbac", tags=["权限"])
api_router.include_router(audit.router, prefix="/audit", tags=["审计日志"])
api_router.include_router(integrations.router, prefix="/integrations", tags=["第三方集成"])
api_router.include_router(calendar.router, prefix="/calendar", tags=["日历排期"])
api_router.include_router(calendar.schedules_router, prefix="/schedules", tags=["日历排期"])
