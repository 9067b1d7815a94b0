"""
数据模型模块 - SQLModel 版本

每个文件包含表模型以及对应的请求/响应 Schema
"""
from .base import SQLModelBase, TimestampMixin, IDMixin, TimestampResponse, utcnow, ensure_utc
from .job import (
    Job,
    JobCreate,
    JobUpdate,
    JobStatusUpdate,
    JobResponse,
    JobStatus,
    ExpertiseLevel,
)
from .applicant import (
    Applicant,
    ApplicantCreate,
    ApplicantUpdate,
    ApplicantResponse,
)
from .application import (
    JobApplication,
    JobApplicationCreate,
    JobApplicationUpdate,
    JobApplicationResponse,
    ApplicationStatus,
    ExternalApplicationRequest,
    ExternalApplicationResult,
    WebhookApplicationRequest,
)
from .interview import (
    Interview,
    InterviewInvite,
    InterviewStatusUpdate,
    InterviewResponse,
    CandidateInterviewResponse,
    InterviewQuestion,
    InterviewStatus,
    QuestionType,
)
from .score import (
    InterviewScore,
    InterviewScoreCreate,
    InterviewScoreOverride,
    InterviewScoreResponse,
)
from .integration import (
    ApiIntegration,
    ApiIntegrationCreate,
    ApiIntegrationResponse,
    ApiIntegrationCreated,
    SyncPlatform,
    SyncConfigCreate,
)
from .calendar import (
    CalendarProvider,
    CalendarProviderConnect,
    CalendarProviderUpdate,
    CalendarProviderResponse,
    CalendarProviderType,
    InterviewSchedule,
    InterviewScheduleCreate,
    InterviewScheduleResponse,
    ScheduleStatusUpdate,
    ScheduleStatus,
    AvailableTimeSlot,
    TimeSlotCreate,
    TimeSlotUpdate,
    TimeSlotResponse,
)

__all__ = [
    # base
    "SQLModelBase", "TimestampMixin", "IDMixin", "TimestampResponse", "utcnow", "ensure_utc",
    # job
    "Job", "JobCreate", "JobUpdate", "JobStatusUpdate", "JobResponse", "JobStatus", "ExpertiseLevel",
    # applicant
    "Applicant", "ApplicantCreate", "ApplicantUpdate", "ApplicantResponse",
    # application
    "JobApplication", "JobApplicationCreate", "JobApplicationUpdate",
    "JobApplicationResponse", "ApplicationStatus",
    "ExternalApplicationRequest", "ExternalApplicationResult", "WebhookApplicationRequest",
    # interview
    "Interview", "InterviewInvite", "InterviewStatusUpdate", "InterviewResponse",
    "CandidateInterviewResponse", "InterviewQuestion", "InterviewStatus", "QuestionType",
    # score
    "InterviewScore", "InterviewScoreCreate", "InterviewScoreOverride", "InterviewScoreResponse",
    # integration
    "ApiIntegration", "ApiIntegrationCreate", "ApiIntegrationResponse", "ApiIntegrationCreated",
    "SyncPlatform", "SyncConfigCreate",
    # calendar
    "CalendarProvider", "CalendarProviderConnect", "CalendarProviderUpdate",
    "CalendarProviderResponse", "CalendarProviderType",
    "InterviewSchedule", "InterviewScheduleCreate", "InterviewScheduleResponse",
    "ScheduleStatusUpdate", "ScheduleStatus",
    "AvailableTimeSlot", "TimeSlotCreate", "TimeSlotUpdate", "TimeSlotResponse",
]
