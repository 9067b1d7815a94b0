"""
API v1 路由模块
"""
from . import (
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

__all__ = [
    "dashboard",
    "jobs",
    "applicants",
    "interviews",
    "candidate",
    "videos",
    "external",
    "sync",
    "analytics",
    "rbac",
    "audit",
    "integrations",
    "calendar",
]
