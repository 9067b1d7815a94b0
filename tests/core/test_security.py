"""
权限模型与签名校验测试
"""
from recruitai.core.security import (
    MOCK_USERS,
    Permission,
    UserRole,
    compute_webhook_signature,
    get_user_capabilities,
    resolve_mock_user,
    verify_webhook_signature,
)


def test_admin_has_every_permission():
    admin = MOCK_USERS["admin@company.com"]
    assert all(admin.has_permission(p) for p in Permission)


def test_role_permission_boundaries():
    hr = resolve_mock_user("hr@company.com")
    reviewer = resolve_mock_user("reviewer@company.com")

    assert hr.role == UserRole.HR_RECRUITER
    assert hr.has_permission(Permission.CREATE_JOBS)
    assert not hr.has_permission(Permission.DELETE_JOBS)
    assert not hr.has_permission(Permission.VIEW_BIAS_ANALYSIS)

    assert reviewer.has_permission(Permission.VIEW_BIAS_ANALYSIS)
    assert not reviewer.has_permission(Permission.CREATE_JOBS)
    assert reviewer.has_any_permission([Permission.CREATE_JOBS, Permission.OVERRIDE_SCORES])


def test_unknown_user_falls_back_to_recruiter():
    user = resolve_mock_user("someone@else.com")
    assert user.id == "default"
    assert user.role == UserRole.HR_RECRUITER


def test_capabilities_reflect_permissions():
    caps = get_user_capabilities(resolve_mock_user("reviewer@company.com"))
    assert caps["role"] == "support_reviewer"
    assert caps["can_view_bias_analysis"] is True
    assert caps["can_manage_jobs"] is False
    assert caps["permissions"] == sorted(caps["permissions"])


def test_webhook_signature_formats():
    body = b'{"jobId": "1"}'
    signature = compute_webhook_signature("s3cret", body)

    assert verify_webhook_signature("s3cret", body, signature)
    assert verify_webhook_signature("s3cret", body, f"sha256={signature}")
    assert not verify_webhook_signature("other", body, signature)
    assert not verify_webhook_signature("s3cret", body + b" ", signature)
