"""
权限模型模块

角色 -> 权限映射、模拟用户，以及 Webhook 签名计算
"""
import hashlib
import hmac
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable


class UserRole(str, Enum):
    """用户角色"""
    ADMIN = "admin"
    HR_RECRUITER = "hr_recruiter"
    SUPPORT_REVIEWER = "support_reviewer"
    CANDIDATE = "candidate"


class Permission(str, Enum):
    """权限点"""
    # 岗位
    CREATE_JOBS = "create_jobs"
    VIEW_JOBS = "view_jobs"
    EDIT_JOBS = "edit_jobs"
    DELETE_JOBS = "delete_jobs"

    # 候选人
    VIEW_CANDIDATES = "view_candidates"
    EDIT_CANDIDATES = "edit_candidates"
    DELETE_CANDIDATES = "delete_candidates"

    # 面试
    VIEW_INTERVIEWS = "view_interviews"
    CONDUCT_INTERVIEWS = "conduct_interviews"
    SCORE_INTERVIEWS = "score_interviews"
    OVERRIDE_SCORES = "override_scores"

    # 分析报表
    VIEW_ANALYTICS = "view_analytics"
    VIEW_ADVANCED_ANALYTICS = "view_advanced_analytics"
    EXPORT_REPORTS = "export_reports"
    VIEW_BIAS_ANALYSIS = "view_bias_analysis"

    # 系统管理
    MANAGE_USERS = "manage_users"
    MANAGE_INTEGRATIONS = "manage_integrations"
    MANAGE_SETTINGS = "manage_settings"
    VIEW_AUDIT_LOGS = "view_audit_logs"

    # 接口访问
    API_ACCESS = "api_access"
    WEBHOOK_ACCESS = "webhook_access"


ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[Permission]] = {
    UserRole.ADMIN: frozenset(Permission),
    UserRole.HR_RECRUITER: frozenset({
        Permission.CREATE_JOBS,
        Permission.VIEW_JOBS,
        Permission.EDIT_JOBS,
        Permission.VIEW_CANDIDATES,
        Permission.EDIT_CANDIDATES,
        Permission.VIEW_INTERVIEWS,
        Permission.SCORE_INTERVIEWS,
        Permission.OVERRIDE_SCORES,
        Permission.VIEW_ANALYTICS,
        Permission.VIEW_ADVANCED_ANALYTICS,
        Permission.EXPORT_REPORTS,
        Permission.MANAGE_INTEGRATIONS,
    }),
    UserRole.SUPPORT_REVIEWER: frozenset({
        Permission.VIEW_JOBS,
        Permission.VIEW_CANDIDATES,
        Permission.VIEW_INTERVIEWS,
        Permission.SCORE_INTERVIEWS,
        Permission.OVERRIDE_SCORES,
        Permission.VIEW_ANALYTICS,
        Permission.VIEW_BIAS_ANALYSIS,
    }),
    UserRole.CANDIDATE: frozenset({
        Permission.CONDUCT_INTERVIEWS,
    }),
}


@dataclass(frozen=True)
class CurrentUser:
    """当前请求的用户"""
    id: str
    email: str
    role: UserRole
    permissions: FrozenSet[Permission] = field(default_factory=frozenset)

    def has_permission(self, permission: Permission) -> bool:
        return permission in self.permissions

    def has_any_permission(self, permissions: Iterable[Permission]) -> bool:
        return any(p in self.permissions for p in permissions)


def _user(id: str, email: str, role: UserRole) -> CurrentUser:
    return CurrentUser(id=id, email=email, role=role, permissions=ROLE_PERMISSIONS[role])


# 模拟用户，正式环境应由认证服务提供
MOCK_USERS: Dict[str, CurrentUser] = {
    "admin@company.com": _user("1", "admin@company.com", UserRole.ADMIN),
    "hr@company.com": _user("2", "hr@company.com", UserRole.HR_RECRUITER),
    "reviewer@company.com": _user("3", "reviewer@company.com", UserRole.SUPPORT_REVIEWER),
}


def resolve_mock_user(email: str) -> CurrentUser:
    """按邮箱取模拟用户，未知用户按 HR 处理"""
    user = MOCK_USERS.get(email)
    if user is not None:
        return user
    return _user("default", email, UserRole.HR_RECRUITER)


def get_user_capabilities(user: CurrentUser) -> Dict[str, object]:
    """前端用于控制界面功能的能力开关"""
    return {
        "role": user.role.value,
        "permissions": sorted(p.value for p in user.permissions),
        "can_manage_jobs": user.has_permission(Permission.CREATE_JOBS),
        "can_view_analytics": user.has_permission(Permission.VIEW_ANALYTICS),
        "can_override_scores": user.has_permission(Permission.OVERRIDE_SCORES),
        "can_manage_users": user.has_permission(Permission.MANAGE_USERS),
        "can_view_bias_analysis": user.has_permission(Permission.VIEW_BIAS_ANALYSIS),
        "can_export_reports": user.has_permission(Permission.EXPORT_REPORTS),
    }


def compute_webhook_signature(secret: str, body: bytes) -> str:
    """HMAC-SHA256 签名，十六进制"""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_webhook_signature(secret: str, body: bytes, signature: str) -> bool:
    """支持 "sha256=<hex>" 和纯 hex 两种格式"""
    if signature.startswith("sha256="):
        signature = signature[len("sha256="):]
    return hmac.compare_digest(compute_webhook_signature(secret, body), signature)
