"""
服务层模块
"""
from .llm_client import LLMClient, get_llm_client
from .interview_ai import (
    generate_interview_questions,
    analyze_interview_video,
    generate_email_content,
    fallback_questions,
    fallback_analysis,
)
from .video_storage import VideoStorage, video_storage
from .mailer import EmailService, get_email_service
from .notifications import NotificationService, NotificationType, get_notification_service
from .audit import AuditAction, AuditSeverity, AuditLogger, audit_logger
from .intake import invite_applicant, process_external_application
from .calendar import CalendarService, calendar_service
from .data_sync import DataSyncService, SyncConfig, data_sync_service
from .analytics import AnalyticsFilters, AnalyticsService, analytics_service

__all__ = [
    # LLM
    "LLMClient",
    "get_llm_client",
    # 面试 AI
    "generate_interview_questions",
    "analyze_interview_video",
    "generate_email_content",
    "fallback_questions",
    "fallback_analysis",
    # 视频存储
    "VideoStorage",
    "video_storage",
    # 邮件与通知
    "EmailService",
    "get_email_service",
    "NotificationService",
    "NotificationType",
    "get_notification_service",
    # 审计
    "AuditAction",
    "AuditSeverity",
    "AuditLogger",
    "audit_logger",
    # 候选人接入
    "invite_applicant",
    "process_external_application",
    # 日历
    "CalendarService",
    "calendar_service",
    # ATS 同步
    "DataSyncService",
    "SyncConfig",
    "data_sync_service",
    # 分析
    "AnalyticsFilters",
    "AnalyticsService",
    "analytics_service",
]
