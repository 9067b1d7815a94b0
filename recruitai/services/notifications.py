"""
消息通知服务模块。

向 Slack（chat.postMessage）和 Microsoft Teams（Incoming Webhook）推送招聘事件。
未配置的渠道直接跳过；发送失败只记录日志。
"""
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from recruitai.core.config import settings

SLACK_POST_MESSAGE_URL = "https://slack.com/api/chat.postMessage"


class NotificationType(str, Enum):
    """通知类型"""
    INTERVIEW_COMPLETED = "interview_completed"
    INTERVIEW_INVITED = "interview_invited"
    SCORE_AVAILABLE = "score_available"
    CANDIDATE_APPLIED = "candidate_applied"


TITLES = {
    NotificationType.INTERVIEW_COMPLETED: "🎬 Interview Completed",
    NotificationType.INTERVIEW_INVITED: "📧 Interview Invitation Sent",
    NotificationType.SCORE_AVAILABLE: "📊 Interview Score Available",
    NotificationType.CANDIDATE_APPLIED: "👤 New Candidate Application",
}
DEFAULT_TITLE = "🔔 Interview Platform Notification"

COLORS = {
    NotificationType.INTERVIEW_COMPLETED: "28a745",
    NotificationType.INTERVIEW_INVITED: "007bff",
    NotificationType.SCORE_AVAILABLE: "ffc107",
    NotificationType.CANDIDATE_APPLIED: "6f42c1",
}
DEFAULT_COLOR = "6c757d"


@dataclass
class NotificationData:
    """通知内容"""
    candidate_name: str
    job_title: str
    company: Optional[str] = None
    score: Optional[float] = None
    interview_id: Optional[str] = None
    link: Optional[str] = None

    @property
    def score_text(self) -> str:
        return f"{self.score:.1f}/10" if self.score else "Processing..."


def get_title(kind: NotificationType) -> str:
    return TITLES.get(kind, DEFAULT_TITLE)


def get_color(kind: NotificationType) -> str:
    return COLORS.get(kind, DEFAULT_COLOR)


def build_slack_message(kind: NotificationType, data: NotificationData, channel: str) -> Dict[str, Any]:
    """Slack Block Kit 消息"""
    blocks: List[Dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": get_title(kind)}},
    ]

    if kind in (NotificationType.INTERVIEW_COMPLETED, NotificationType.SCORE_AVAILABLE):
        verb = "has completed their interview for" if kind == NotificationType.INTERVIEW_COMPLETED \
            else "has a new interview score for"
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*{data.candidate_name}* {verb} *{data.job_title}*"},
        })
        blocks.append({
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Score:* {data.score_text}"},
                {"type": "mrkdwn", "text": f"*Position:* {data.job_title}"},
            ],
        })
        if data.link:
            blocks.append({
                "type": "actions",
                "elements": [{
                    "type": "button",
                    "text": {"type": "plain_text", "text": "View Interview"},
                    "url": data.link,
                    "style": "primary",
                }],
            })
    elif kind == NotificationType.INTERVIEW_INVITED:
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f"*{data.candidate_name}* has been invited for an interview for *{data.job_title}*",
            },
        })
        blocks.append({
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": f"Company: {data.company or 'Not specified'}"}],
        })
    elif kind == NotificationType.CANDIDATE_APPLIED:
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*{data.candidate_name}* has applied for *{data.job_title}*"},
        })
        blocks.append({
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": "Application received via job platform integration"}],
        })

    return {"channel": channel, "text": get_title(kind), "blocks": blocks}


def build_teams_message(kind: NotificationType, data: NotificationData) -> Dict[str, Any]:
    """Teams MessageCard 消息"""
    title = get_title(kind)
    card: Dict[str, Any] = {
        "@type": "MessageCard",
        "@context": "https://schema.org/extensions",
        "summary": title,
        "themeColor": get_color(kind),
        "sections": [{"activityTitle": title, "activitySubtitle": "Interview Platform Notification"}],
    }

    facts = [
        {"name": "Candidate", "value": data.candidate_name},
        {"name": "Position", "value": data.job_title},
    ]
    if kind in (NotificationType.INTERVIEW_COMPLETED, NotificationType.SCORE_AVAILABLE):
        facts.append({"name": "Score", "value": data.score_text})
        if data.link:
            card["potentialAction"] = [{
                "@type": "OpenUri",
                "name": "View Interview",
                "targets": [{"os": "default", "uri": data.link}],
            }]
    elif kind == NotificationType.INTERVIEW_INVITED:
        facts.append({"name": "Company", "value": data.company or "Not specified"})
    elif kind == NotificationType.CANDIDATE_APPLIED:
        facts.append({"name": "Source", "value": "Job Platform Integration"})

    card["sections"].append({"facts": facts})
    return card


class NotificationService:
    """
    通知服务单例类。
    """

    _instance: Optional["NotificationService"] = None
    _lock = Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if getattr(self, "_initialized", False):
            return

        self.slack_token = settings.slack_bot_token
        self.slack_channel = settings.slack_default_channel
        self.teams_webhook_url = settings.teams_webhook_url
        self.base_url = settings.public_base_url or "http://localhost:8000"
        self.transport: Optional[httpx.AsyncBaseTransport] = None
        self._initialized = True

    def is_configured(self) -> bool:
        return bool(self.slack_token or self.teams_webhook_url)

    async def _send_slack(self, client: httpx.AsyncClient, message: Dict[str, Any]) -> None:
        response = await client.post(
            SLACK_POST_MESSAGE_URL,
            json=message,
            headers={"Authorization": f"Bearer {self.slack_token}"},
        )
        response.raise_for_status()
        body = response.json()
        if not body.get("ok"):
            raise ValueError(f"Slack 返回错误: {body.get('error')}")

    async def _send_teams(self, client: httpx.AsyncClient, message: Dict[str, Any]) -> None:
        response = await client.post(self.teams_webhook_url, json=message)
        response.raise_for_status()

    async def send_notification(
        self,
        kind: NotificationType,
        data: NotificationData,
        slack_channel: Optional[str] = None,
    ) -> bool:
        """推送到所有已配置渠道，任一渠道成功即返回 True"""
        if not self.is_configured():
            logger.debug("通知渠道未配置，跳过: {}", kind.value)
            return False

        delivered = False
        async with httpx.AsyncClient(timeout=15.0, transport=self.transport) as client:
            if self.slack_token:
                try:
                    await self._send_slack(
                        client, build_slack_message(kind, data, slack_channel or self.slack_channel)
                    )
                    delivered = True
                except (httpx.HTTPError, ValueError) as exc:
                    logger.error("Slack 通知发送失败: {}", exc)
            if self.teams_webhook_url:
                try:
                    await self._send_teams(client, build_teams_message(kind, data))
                    delivered = True
                except httpx.HTTPError as exc:
                    logger.error("Teams 通知发送失败: {}", exc)
        return delivered

    def interview_link(self, interview_id: str) -> str:
        return f"{self.base_url.rstrip('/')}/interviews?id={interview_id}"

    async def notify_interview_completed(
        self, candidate_name: str, job_title: str, score: Optional[float], interview_id: str
    ) -> bool:
        return await self.send_notification(
            NotificationType.INTERVIEW_COMPLETED,
            NotificationData(
                candidate_name=candidate_name,
                job_title=job_title,
                score=score,
                interview_id=interview_id,
                link=self.interview_link(interview_id),
            ),
        )

    async def notify_interview_invited(self, candidate_name: str, job_title: str, company: str) -> bool:
        return await self.send_notification(
            NotificationType.INTERVIEW_INVITED,
            NotificationData(candidate_name=candidate_name, job_title=job_title, company=company),
        )

    async def notify_candidate_applied(self, candidate_name: str, job_title: str) -> bool:
        return await self.send_notification(
            NotificationType.CANDIDATE_APPLIED,
            NotificationData(candidate_name=candidate_name, job_title=job_title),
        )


def get_notification_service() -> NotificationService:
    """获取通知服务单例"""
    return NotificationService()
