"""
CRUD 操作模块
"""
from .job import job_crud
from .applicant import applicant_crud
from .application import application_crud
from .interview import interview_crud
from .score import score_crud
from .integration import integration_crud
from .calendar import calendar_provider_crud, schedule_crud, time_slot_crud

__all__ = [
    "job_crud",
    "applicant_crud",
    "application_crud",
    "interview_crud",
    "score_crud",
    "integration_crud",
    "calendar_provider_crud",
    "schedule_crud",
    "time_slot_crud",
]
