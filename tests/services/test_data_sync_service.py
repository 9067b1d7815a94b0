"""
ATS 数据同步服务测试
"""
import pytest

from recruitai.crud import applicant_crud, application_crud, job_crud
from recruitai.models.application import ApplicationStatus
from recruitai.models.integration import SyncPlatform
from recruitai.models.job import ExpertiseLevel, JobStatus
from recruitai.services.data_sync import (
    DataSyncService,
    SyncConfig,
    map_applicant_status,
    map_expertise_level,
    map_job_status,
)


def test_status_mappings():
    assert map_job_status("open") == JobStatus.ACTIVE
    assert map_job_status("draft") == JobStatus.PAUSED
    assert map_job_status("archived") == JobStatus.ACTIVE
    assert map_expertise_level("entry") == ExpertiseLevel.JUNIOR
    assert map_expertise_level("principal") == ExpertiseLevel.MID
    assert map_applicant_status("interview_scheduled") == ApplicationStatus.INVITED
    assert map_applicant_status("unknown") == ApplicationStatus.APPLIED


@pytest.mark.asyncio
async def test_greenhouse_sync_is_idempotent(db_session):
    service = DataSyncService(mock_latency=0)
    service.register_sync("gh", SyncConfig(platform_type=SyncPlatform.GREENHOUSE, api_key="key"))

    first = await service.perform_full_sync(db_session)
    second = await service.perform_full_sync(db_session)

    assert first[0].success and first[0].jobs_synced == 2 and first[0].applicants_synced == 2
    assert second[0].success
    assert await job_crud.count(db_session) == 2
    assert await applicant_crud.count(db_session) == 2
    assert await application_crud.count(db_session) == 2

    job = await job_crud.get_by_external_id(db_session, "gh_job_123", "greenhouse")
    assert job.title == "Senior Frontend Developer"
    assert job.expertise_level == ExpertiseLevel.SENIOR

    mike = await applicant_crud.get_by_email(db_session, "mike.johnson@email.com")
    application = (await application_crud.get_by_job(
        db_session, (await job_crud.get_by_external_id(db_session, "gh_job_124")).id
    ))[0]
    assert application.applicant_id == mike.id
    assert application.status == ApplicationStatus.SCREENING


@pytest.mark.asyncio
async def test_applicants_without_synced_job_are_reported(db_session):
    service = DataSyncService(mock_latency=0)
    service.register_sync(
        "gh", SyncConfig(platform_type=SyncPlatform.GREENHOUSE, api_key="key", sync_jobs=False)
    )

    result = (await service.perform_full_sync(db_session))[0]

    assert result.success is False
    assert result.applicants_synced == 0
    assert len(result.errors) == 2
    assert await applicant_crud.count(db_session) == 0


@pytest.mark.asyncio
async def test_other_platforms_return_nothing(db_session):
    service = DataSyncService(mock_latency=0)
    service.register_sync("wd", SyncConfig(platform_type=SyncPlatform.WORKDAY, api_key="key"))

    result = (await service.perform_full_sync(db_session))[0]

    assert result.to_dict() == {
        "integration_id": "wd",
        "platform": "workday",
        "success": True,
        "jobs_synced": 0,
        "applicants_synced": 0,
        "errors": [],
    }


@pytest.mark.asyncio
async def test_sync_status_tracks_last_and_next_sync(db_session):
    service = DataSyncService(mock_latency=0)
    service.register_sync("lv", SyncConfig(platform_type=SyncPlatform.LEVER, api_key="k", sync_interval=30))
    assert service.get_sync_status()["next_scheduled_sync"] is None

    await service.perform_full_sync(db_session)
    status = service.get_sync_status()

    last = status["last_sync_times"]["lv"]
    assert status["total_configurations"] == 1
    assert (status["next_scheduled_sync"] - last).total_seconds() == 30 * 60


@pytest.mark.asyncio
async def test_failed_item_rolls_back_only_itself(db_session):
    service = DataSyncService(mock_latency=0)

    async def sync(db, title):
        if title == "broken":
            # 外键指向不存在的岗位，flush 时触发 IntegrityError
            await application_crud.create(db, obj_in={"job_id": "missing", "applicant_id": "missing"})
        else:
            await job_crud.create(db, obj_in={"title": title, "description": "d", "company": "Acme"})

    errors = []
    synced = await service._sync_items(db_session, ["QA", "broken", "SRE"], sync, lambda t: t, errors)

    assert synced == 2
    assert len(errors) == 1 and errors[0].startswith("broken:")
    assert sorted(j.title for j in await job_crud.get_multi(db_session)) == ["QA", "SRE"]
