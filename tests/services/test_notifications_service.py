"""
邮件与消息通知测试

消息体构造，以及使用 httpx.MockTransport 验证发送逻辑
"""
from datetime import datetime, timezone

import httpx
import pytest

from recruitai.services.mailer import build_invitation_email, build_reminder_email, get_email_service
from recruitai.services.notifications import (
    NotificationData,
    NotificationType,
    build_slack_message,
    build_teams_message,
    get_notification_service,
)


def test_slack_completed_message_has_score_and_button():
    data = NotificationData(candidate_name="Ann", job_title="SRE", score=8.5, link="http://x/interviews?id=1")
    message = build_slack_message(NotificationType.INTERVIEW_COMPLETED, data, "#hiring")

    assert message["channel"] == "#hiring"
    assert message["blocks"][0]["text"]["text"] == "🎬 Interview Completed"
    fields = message["blocks"][2]["fields"]
    assert fields[0]["text"] == "*Score:* 8.5/10"
    assert message["blocks"][3]["elements"][0]["url"] == "http://x/interviews?id=1"


def test_slack_score_pending_text():
    data = NotificationData(candidate_name="Ann", job_title="SRE")
    message = build_slack_message(NotificationType.SCORE_AVAILABLE, data, "#hiring")
    assert message["blocks"][2]["fields"][0]["text"] == "*Score:* Processing..."


def test_teams_invited_card():
    data = NotificationData(candidate_name="Ann", job_title="SRE", company="Acme")
    card = build_teams_message(NotificationType.INTERVIEW_INVITED, data)

    assert card["themeColor"] == "007bff"
    assert {"name": "Company", "value": "Acme"} in card["sections"][1]["facts"]
    assert "potentialAction" not in card


def test_invitation_email_escapes_html():
    message = build_invitation_email("a@b.com", "<Ann>", "SRE", "Acme", "http://test/interview/tok")

    assert message.subject == "AI Video Interview Invitation - SRE Position at Acme"
    assert "&lt;Ann&gt;" in message.html
    assert "http://test/interview/tok" in message.text


def test_reminder_email_without_meeting_url():
    message = build_reminder_email("a@b.com", "Ann", "SRE", datetime(2026, 10, 20, 9, 0, tzinfo=timezone.utc), None)
    assert "2026-10-20 09:00 UTC" in message.text
    assert "Meeting link" not in message.text


@pytest.mark.asyncio
async def test_unconfigured_channels_are_skipped():
    assert await get_notification_service().notify_candidate_applied("Ann", "SRE") is False
    assert await get_email_service().send_interview_invitation("a@b.com", "Ann", "SRE", "Acme", "http://x") is False


@pytest.mark.asyncio
async def test_email_sent_through_brevo(monkeypatch):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["key"] = request.headers["api-key"]
        captured["body"] = request.read()
        return httpx.Response(201, json={"messageId": "m1"})

    service = get_email_service()
    monkeypatch.setattr(service, "api_key", "brevo-key")
    monkeypatch.setattr(service, "transport", httpx.MockTransport(handler))

    assert await service.send_interview_invitation("a@b.com", "Ann", "SRE", "Acme", "http://x") is True
    assert captured["key"] == "brevo-key"
    assert b'"htmlContent"' in captured["body"]


@pytest.mark.asyncio
async def test_email_failure_returns_false(monkeypatch):
    service = get_email_service()
    monkeypatch.setattr(service, "api_key", "brevo-key")
    monkeypatch.setattr(service, "transport", httpx.MockTransport(lambda r: httpx.Response(400, text="bad")))

    assert await service.send_interview_invitation("a@b.com", "Ann", "SRE", "Acme", "http://x") is False


@pytest.mark.asyncio
async def test_slack_error_does_not_block_teams(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "slack.com":
            return httpx.Response(200, json={"ok": False, "error": "channel_not_found"})
        return httpx.Response(200, text="1")

    service = get_notification_service()
    monkeypatch.setattr(service, "slack_token", "xoxb-test")
    monkeypatch.setattr(service, "teams_webhook_url", "https://teams.example.com/hook")
    monkeypatch.setattr(service, "transport", httpx.MockTransport(handler))

    assert await service.notify_interview_completed("Ann", "SRE", 7.5, "i1") is True
