"""
审计日志服务模块。

审计事件写入 loguru 日志，并在内存中保留最近 1000 条供查询。
记录审计日志失败不会影响主流程。
"""
from collections import Counter, deque
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from enum import Enum
from itertools import count
from threading import Lock
from typing import Any, Deque, Dict, List, Optional

from loguru import logger

from recruitai.models.base import utcnow

MAX_AUDIT_ENTRIES = 1000


class AuditAction(str, Enum):
    """审计事件类型"""
    # 岗位
    JOB_CREATED = "job_created"
    JOB_UPDATED = "job_updated"
    JOB_DELETED = "job_deleted"
    JOB_STATUS_CHANGED = "job_status_changed"

    # 候选人
    APPLICANT_CREATED = "applicant_created"
    APPLICANT_DELETED = "applicant_deleted"

    # 面试
    INTERVIEW_CREATED = "interview_created"
    INTERVIEW_STARTED = "interview_started"
    INTERVIEW_COMPLETED = "interview_completed"
    INTERVIEW_SCORED = "interview_scored"
    SCORE_OVERRIDDEN = "score_overridden"
    VIDEO_UPLOADED = "video_uploaded"
    INTERVIEW_SCHEDULED = "interview_scheduled"

    # 集成
    API_KEY_CREATED = "api_key_created"
    INTEGRATION_ADDED = "integration_added"
    WEBHOOK_RECEIVED = "webhook_received"
    DATA_SYNC_TRIGGERED = "data_sync_triggered"

    # 数据访问
    CANDIDATE_DATA_ACCESSED = "candidate_data_accessed"
    REPORT_EXPORTED = "report_exported"
    ANALYTICS_ACCESSED = "analytics_accessed"
    BIAS_ANALYSIS_VIEWED = "bias_analysis_viewed"

    # 安全
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    PERMISSION_DENIED = "permission_denied"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"

    # 系统
    CONFIGURATION_CHANGED = "configuration_changed"


class AuditSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


SECURITY_ACTIONS = {
    AuditAction.UNAUTHORIZED_ACCESS,
    AuditAction.PERMISSION_DENIED,
    AuditAction.SUSPICIOUS_ACTIVITY,
}

TIME_RANGES = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


@dataclass
class AuditEntry:
    """审计记录"""
    id: int
    user_id: str
    user_email: str
    user_role: str
    action: AuditAction
    resource_type: str
    resource_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    severity: AuditSeverity = AuditSeverity.LOW
    ip_address: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["action"] = self.action.value
        data["severity"] = self.severity.value
        return data


class AuditLogger:
    """内存审计日志"""

    def __init__(self, max_entries: int = MAX_AUDIT_ENTRIES):
        self._entries: Deque[AuditEntry] = deque(maxlen=max_entries)
        self._ids = count(1)
        self._lock = Lock()

    def log(
        self,
        *,
        user_id: str,
        user_email: str,
        user_role: str,
        action: AuditAction,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: AuditSeverity = AuditSeverity.LOW,
        ip_address: Optional[str] = None,
    ) -> Optional[AuditEntry]:
        try:
            with self._lock:
                entry = AuditEntry(
                    id=next(self._ids),
                    user_id=user_id,
                    user_email=user_email,
                    user_role=user_role,
                    action=action,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    details=details or {},
                    severity=severity,
                    ip_address=ip_address,
                )
                self._entries.append(entry)
        except Exception as exc:
            logger.error("写入审计日志失败: {}", exc)
            return None

        logger.info(
            "[AUDIT] {}: {} ({}) - {}{}",
            action.value,
            user_email,
            user_role,
            resource_type,
            f" ({resource_id})" if resource_id else "",
        )
        return entry

    def log_for(
        self,
        user: Any,
        action: AuditAction,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: AuditSeverity = AuditSeverity.LOW,
        ip_address: Optional[str] = None,
    ) -> Optional[AuditEntry]:
        """以当前用户身份记录，user 需要 id / email / role 属性"""
        role = getattr(user, "role", "unknown")
        return self.log(
            user_id=getattr(user, "id", "anonymous"),
            user_email=getattr(user, "email", "anonymous"),
            user_role=getattr(role, "value", role),
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
            severity=severity,
            ip_address=ip_address,
        )

    def log_system(
        self,
        action: AuditAction,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        actor: str = "system",
    ) -> Optional[AuditEntry]:
        """外部系统或候选人触发的事件"""
        return self.log(
            user_id=actor,
            user_email=actor,
            user_role="system",
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
        )

    def log_interview_action(
        self,
        user: Any,
        action: AuditAction,
        interview_id: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditEntry]:
        severity = AuditSeverity.MEDIUM if action == AuditAction.SCORE_OVERRIDDEN else AuditSeverity.LOW
        return self.log_for(user, action, "interview", interview_id, details, severity)

    def log_security_event(
        self,
        user: Any,
        action: AuditAction,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> Optional[AuditEntry]:
        return self.log_for(user, action, "security", None, details, AuditSeverity.HIGH, ip_address)

    def get_logs(
        self,
        *,
        user_id: Optional[str] = None,
        action: Optional[AuditAction] = None,
        resource_type: Optional[str] = None,
        severity: Optional[AuditSeverity] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """按条件查询，最新的在前"""
        logs: List[AuditEntry] = list(self._entries)
        if user_id:
            logs = [e for e in logs if e.user_id == user_id]
        if action:
            logs = [e for e in logs if e.action == action]
        if resource_type:
            logs = [e for e in logs if e.resource_type == resource_type]
        if severity:
            logs = [e for e in logs if e.severity == severity]
        if start_date:
            logs = [e for e in logs if e.timestamp >= start_date]
        if end_date:
            logs = [e for e in logs if e.timestamp <= end_date]

        logs.sort(key=lambda e: (e.timestamp, e.id), reverse=True)
        return {
            "logs": [e.to_dict() for e in logs[offset:offset + limit]],
            "total": len(logs),
        }

    def get_summary(self, time_range: str = "week") -> Dict[str, Any]:
        """统计时间范围内的事件"""
        since = utcnow() - TIME_RANGES.get(time_range, TIME_RANGES["week"])
        relevant = [e for e in self._entries if e.timestamp >= since]

        action_counts = Counter(e.action.value for e in relevant)
        user_counts = Counter(e.user_email for e in relevant)
        return {
            "time_range": time_range,
            "total_events": len(relevant),
            "critical_events": sum(1 for e in relevant if e.severity == AuditSeverity.CRITICAL),
            "top_actions": [{"action": a, "count": c} for a, c in action_counts.most_common(5)],
            "top_users": [{"user_email": u, "count": c} for u, c in user_counts.most_common(5)],
            "security_events": sum(1 for e in relevant if e.action in SECURITY_ACTIONS),
        }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# 全局单例
audit_logger = AuditLogger()
