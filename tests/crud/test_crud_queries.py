"""
CRUD 层测试

直接使用数据库会话，验证条件查询、部分更新和删除
"""
import pytest
from sqlalchemy import DateTime
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateTable
from sqlmodel import SQLModel

from recruitai.crud import applicant_crud, application_crud, interview_crud, job_crud
from recruitai.models.base import ensure_utc
from recruitai.models.interview import Interview, InterviewStatus
from recruitai.models.job import JobStatus


async def create_job(db, **overrides):
    data = {"title": "QA Engineer", "description": "Testing", "company": "Acme", **overrides}
    return await job_crud.create(db, obj_in=data)


@pytest.mark.asyncio
async def test_job_lookup_and_filters(db_session):
    await create_job(db_session, title="QA Engineer", company="Acme")
    await create_job(db_session, title="SRE", company="Globex", status=JobStatus.PAUSED)

    job = await job_crud.get_by_title(db_session, "SRE")
    assert job is not None and job.company == "Globex"
    assert await job_crud.get_by_title(db_session, "Missing") is None

    assert await job_crud.count(db_session) == 2
    assert await job_crud.count_filtered(db_session, status=JobStatus.PAUSED) == 1
    active = await job_crud.get_filtered(db_session, status=JobStatus.ACTIVE, company="Acme")
    assert [j.title for j in active] == ["QA Engineer"]


@pytest.mark.asyncio
async def test_update_skips_none_values(db_session):
    job = await create_job(db_session, department="Quality")

    job = await job_crud.update(db_session, db_obj=job, obj_in={"title": "Senior QA", "department": None})
    assert job.title == "Senior QA"
    assert job.department == "Quality"


@pytest.mark.asyncio
async def test_delete_missing_returns_false(db_session):
    job = await create_job(db_session)
    assert await job_crud.delete(db_session, id=job.id) is True
    assert await job_crud.get(db_session, job.id) is None
    assert await job_crud.delete(db_session, id=job.id) is False


@pytest.mark.asyncio
async def test_applicant_search_and_email_lookup(db_session):
    await applicant_crud.create(db_session, obj_in={"name": "Ada Lovelace", "email": "ada@example.com"})
    await applicant_crud.create(db_session, obj_in={"name": "Alan Turing", "email": "alan@example.com"})

    assert (await applicant_crud.get_by_email(db_session, " ADA@example.com ")).name == "Ada Lovelace"
    assert await applicant_crud.count_search(db_session, keyword="turing") == 1
    assert len(await applicant_crud.search(db_session, keyword="example.com")) == 2


@pytest.mark.asyncio
async def test_interviews_by_application_and_status(db_session):
    job = await create_job(db_session)
    applicant = await applicant_crud.create(db_session, obj_in={"name": "Grace", "email": "grace@example.com"})
    application = await application_crud.create(
        db_session, obj_in={"job_id": job.id, "applicant_id": applicant.id}
    )
    first = await interview_crud.create(
        db_session, obj_in={"application_id": application.id, "invite_token": "tok-1"}
    )
    await interview_crud.create(db_session, obj_in={"application_id": application.id, "invite_token": "tok-2"})

    interviews = await interview_crud.get_by_application(db_session, application.id)
    assert {i.invite_token for i in interviews} == {"tok-1", "tok-2"}

    first = await interview_crud.update_status(db_session, db_obj=first, status=InterviewStatus.IN_PROGRESS)
    assert first.started_at is not None
    assert await interview_crud.count_by_status(db_session, InterviewStatus.PENDING) == 1
    assert await interview_crud.count_by_status(db_session) == 2
    assert (await interview_crud.get_by_token(db_session, "tok-1")).id == first.id


def test_datetime_columns_are_timezone_aware():
    naive = [
        f"{table.name}.{column.name}"
        for table in SQLModel.metadata.sorted_tables
        for column in table.columns
        if isinstance(column.type, DateTime) and not column.type.timezone
    ]
    assert naive == []

    ddl = str(CreateTable(Interview.__table__).compile(dialect=postgresql.dialect()))
    assert "completed_at TIMESTAMP WITH TIME ZONE" in ddl
    assert "created_at TIMESTAMP WITH TIME ZONE NOT NULL" in ddl


@pytest.mark.asyncio
async def test_timestamps_read_back_as_utc(db_session):
    job = await create_job(db_session)
    created_at = ensure_utc(job.created_at)
    db_session.expunge_all()

    reloaded = await job_crud.get(db_session, job.id)
    assert ensure_utc(reloaded.created_at) == created_at
