"""
审计日志服务测试
"""
from datetime import timedelta

from recruitai.core.security import resolve_mock_user
from recruitai.models.base import utcnow
from recruitai.services.audit import AuditAction, AuditLogger, AuditSeverity


def test_log_for_user_and_query():
    audit = AuditLogger()
    hr = resolve_mock_user("hr@company.com")
    audit.log_for(hr, AuditAction.JOB_CREATED, "job", "j1", {"title": "SRE"})
    audit.log_system(AuditAction.WEBHOOK_RECEIVED, "webhook", actor="greenhouse")

    result = audit.get_logs(user_id="2")

    assert result["total"] == 1
    entry = result["logs"][0]
    assert entry["action"] == "job_created"
    assert entry["user_role"] == "hr_recruiter"
    assert entry["details"] == {"title": "SRE"}


def test_logs_newest_first_with_pagination():
    audit = AuditLogger()
    for i in range(5):
        audit.log_system(AuditAction.INTERVIEW_STARTED, "interview", f"i{i}")

    page = audit.get_logs(limit=2, offset=1)

    assert page["total"] == 5
    assert [e["resource_id"] for e in page["logs"]] == ["i3", "i2"]


def test_severity_of_helpers():
    audit = AuditLogger()
    user = resolve_mock_user("reviewer@company.com")
    override = audit.log_interview_action(user, AuditAction.SCORE_OVERRIDDEN, "i1")
    denied = audit.log_security_event(user, AuditAction.PERMISSION_DENIED, ip_address="10.0.0.1")

    assert override.severity == AuditSeverity.MEDIUM
    assert denied.severity == AuditSeverity.HIGH
    assert denied.ip_address == "10.0.0.1"
    assert audit.get_logs(severity=AuditSeverity.HIGH)["total"] == 1


def test_keeps_only_latest_entries():
    audit = AuditLogger(max_entries=3)
    for i in range(5):
        audit.log_system(AuditAction.VIDEO_UPLOADED, "interview", str(i))

    assert len(audit) == 3
    assert audit.get_logs()["logs"][-1]["resource_id"] == "2"


def test_summary_counts():
    audit = AuditLogger()
    user = resolve_mock_user("admin@company.com")
    audit.log_for(user, AuditAction.REPORT_EXPORTED, "report")
    audit.log_for(user, AuditAction.REPORT_EXPORTED, "report")
    audit.log_security_event(user, AuditAction.UNAUTHORIZED_ACCESS)
    old = audit.log_system(AuditAction.JOB_DELETED, "job")
    old.timestamp = utcnow() - timedelta(days=3)

    summary = audit.get_summary("day")

    assert summary["total_events"] == 3
    assert summary["security_events"] == 1
    assert summary["top_actions"][0] == {"action": "report_exported", "count": 2}
    assert summary["top_users"][0]["user_email"] == "admin@company.com"
    assert audit.get_summary("week")["total_events"] == 4
