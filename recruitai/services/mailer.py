"""
邮件发送服务模块。

通过 Brevo 事务邮件 HTTP 接口发送面试邀请和面试提醒。
发送失败只记录日志并返回 False，不向调用方抛出异常。
"""
from dataclasses import dataclass
from datetime import datetime
from html import escape
from threading import Lock
from typing import Optional

import httpx
from loguru import logger

from recruitai.core.config import settings

EMAIL_STYLE = """
  body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
  .container { max-width: 600px; margin: 0 auto; padding: 20px; }
  .header { background: #2563EB; color: white; padding: 20px; text-align: center; }
  .content { padding: 20px; background: #f9f9f9; }
  .button { background: #2563EB; color: white; padding: 12px 24px; text-decoration: none; border-radius: 5px; display: inline-block; margin: 20px 0; }
  .footer { text-align: center; color: #666; font-size: 12px; margin-top: 30px; }
"""


@dataclass
class EmailMessage:
    """待发送邮件"""
    to: str
    subject: str
    html: str
    text: str
    to_name: Optional[str] = None


def _wrap_html(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{escape(title)}</title>
  <style>{EMAIL_STYLE}</style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{escape(title)}</h1></div>
    <div class="content">
{body}
    </div>
    <div class="footer">
      <p>This is an automated message. Please do not reply to this email.</p>
    </div>
  </div>
</body>
</html>"""


def build_invitation_email(
    candidate_email: str,
    candidate_name: str,
    job_title: str,
    company: str,
    interview_link: str,
) -> EmailMessage:
    """面试邀请邮件"""
    name, title, org, link = (escape(v) for v in (candidate_name, job_title, company, interview_link))
    body = f"""      <p>Dear {name},</p>
      <p>Thank you for your interest in the <strong>{title}</strong> position at <strong>{org}</strong>!</p>
      <p>We're excited to move forward with your application and invite you to complete an AI-powered video interview. This interview helps us better understand your skills and fit for the role.</p>
      <h3>What to Expect:</h3>
      <ul>
        <li>Duration: Approximately 15-20 minutes</li>
        <li>Format: Video-recorded responses to pre-selected questions</li>
        <li>AI Analysis: Your responses will be analyzed for technical skills, communication, and confidence</li>
        <li>Preparation: Ensure you have a stable internet connection and working camera/microphone</li>
      </ul>
      <p>Please complete your interview within the next 7 days by clicking the button below:</p>
      <p style="text-align: center;"><a href="{link}" class="button">Start Your Video Interview</a></p>
      <p><strong>Interview Link:</strong> <a href="{link}">{link}</a></p>
      <p>If you have any questions or technical issues, please contact our support team.</p>
      <p>We look forward to learning more about you!</p>
      <p>Best regards,<br>The {org} Hiring Team</p>"""

    text = f"""Dear {candidate_name},

Thank you for your interest in the {job_title} position at {company}!

We're excited to move forward with your application and invite you to complete an AI-powered video interview.

What to Expect:
- Duration: Approximately 15-20 minutes
- Format: Video-recorded responses to pre-selected questions
- AI Analysis: Your responses will be analyzed for technical skills, communication, and confidence
- Preparation: Ensure you have a stable internet connection and working camera/microphone

Please complete your interview within the next 7 days using this link:
{interview_link}

We look forward to learning more about you!

Best regards,
The {company} Hiring Team
"""
    return EmailMessage(
        to=candidate_email,
        to_name=candidate_name,
        subject=f"AI Video Interview Invitation - {job_title} Position at {company}",
        html=_wrap_html("AI Video Interview Invitation", body),
        text=text,
    )


def build_reminder_email(
    candidate_email: str,
    candidate_name: str,
    job_title: str,
    scheduled_at: datetime,
    meeting_url: Optional[str],
) -> EmailMessage:
    """面试开始前的提醒邮件"""
    when = scheduled_at.strftime("%Y-%m-%d %H:%M UTC")
    link_html = (
        f'<p style="text-align: center;"><a href="{escape(meeting_url)}" class="button">Join Meeting</a></p>'
        if meeting_url else ""
    )
    body = f"""      <p>Dear {escape(candidate_name)},</p>
      <p>This is a reminder that your interview for the <strong>{escape(job_title)}</strong> position is scheduled for <strong>{when}</strong>.</p>
      {link_html}
      <p>Best of luck!</p>"""
    text = (
        f"Dear {candidate_name},\n\n"
        f"This is a reminder that your interview for the {job_title} position is scheduled for {when}.\n"
        + (f"Meeting link: {meeting_url}\n" if meeting_url else "")
        + "\nBest of luck!\n"
    )
    return EmailMessage(
        to=candidate_email,
        to_name=candidate_name,
        subject=f"Interview Reminder - {job_title}",
        html=_wrap_html("Interview Reminder", body),
        text=text,
    )


class EmailService:
    """
    Brevo 邮件客户端单例类。
    """

    _instance: Optional["EmailService"] = None
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

        self.api_key = settings.brevo_api_key
        self.api_url = settings.brevo_api_url
        self.sender = {"email": settings.from_email, "name": settings.from_name}
        self.transport: Optional[httpx.AsyncBaseTransport] = None

        self._initialized = True
        if not self.is_configured():
            logger.warning("Brevo 未配置，邮件只记录日志不实际发送")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def send(self, message: EmailMessage) -> bool:
        """发送邮件，成功返回 True"""
        if not self.is_configured():
            logger.info("跳过邮件发送（未配置）: to={}, subject={}", message.to, message.subject)
            return False

        recipient = {"email": message.to}
        if message.to_name:
            recipient["name"] = message.to_name
        payload = {
            "sender": self.sender,
            "to": [recipient],
            "subject": message.subject,
            "htmlContent": message.html,
            "textContent": message.text,
        }
        headers = {"api-key": self.api_key, "accept": "application/json"}

        async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
            try:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "邮件发送失败: status={}, body={}",
                    exc.response.status_code,
                    exc.response.text[:500],
                )
                return False
            except httpx.HTTPError as exc:
                logger.error("邮件发送失败: {}", exc)
                return False

        logger.info("邮件已发送: to={}, status={}", message.to, response.status_code)
        return True

    async def send_interview_invitation(
        self,
        candidate_email: str,
        candidate_name: str,
        job_title: str,
        company: str,
        interview_link: str,
    ) -> bool:
        return await self.send(
            build_invitation_email(candidate_email, candidate_name, job_title, company, interview_link)
        )

    async def send_interview_reminder(
        self,
        candidate_email: str,
        candidate_name: str,
        job_title: str,
        scheduled_at: datetime,
        meeting_url: Optional[str],
    ) -> bool:
        return await self.send(
            build_reminder_email(candidate_email, candidate_name, job_title, scheduled_at, meeting_url)
        )


def get_email_service() -> EmailService:
    """获取邮件服务单例"""
    return EmailService()
