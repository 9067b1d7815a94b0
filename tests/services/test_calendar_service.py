"""
日历排期测试

时间段展开、冲突剔除和 Range 解析；以及排期服务的数据库流程
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from recruitai.api.v1.videos import parse_range
from recruitai.core.exceptions import BadRequestException, ConflictException
from recruitai.crud import (
    applicant_crud,
    application_crud,
    calendar_provider_crud,
    interview_crud,
    job_crud,
    schedule_crud,
    time_slot_crud,
)
from recruitai.models.calendar import (
    AvailableTimeSlot,
    CalendarProviderConnect,
    InterviewSchedule,
    InterviewScheduleCreate,
    ScheduleStatus,
)
from recruitai.services.calendar import (
    SlotWindow,
    calendar_service,
    expand_time_slots,
    generate_meeting,
    get_tz,
    js_weekday,
    remove_conflicts,
)

UTC = timezone.utc
MONDAY = date(2026, 10, 19)


def _slot(day_of_week=1, start="09:00", end="10:00", tz="UTC"):
    return AvailableTimeSlot(
        calendar_provider_id="p1",
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        timezone=tz,
    )


def test_js_weekday_sunday_is_zero():
    assert js_weekday(date(2026, 10, 18)) == 0
    assert js_weekday(MONDAY) == 1
    assert js_weekday(date(2026, 10, 24)) == 6


def test_expand_splits_slot_into_windows():
    windows = expand_time_slots([_slot()], MONDAY, MONDAY, 30)

    assert windows == [
        SlotWindow(datetime(2026, 10, 19, 9, 0, tzinfo=UTC), datetime(2026, 10, 19, 9, 30, tzinfo=UTC)),
        SlotWindow(datetime(2026, 10, 19, 9, 30, tzinfo=UTC), datetime(2026, 10, 19, 10, 0, tzinfo=UTC)),
    ]


def test_expand_drops_short_tail_and_other_days():
    windows = expand_time_slots([_slot(end="10:10"), _slot(day_of_week=3)], MONDAY, MONDAY, 30)
    assert len(windows) == 2


def test_expand_over_week_is_sorted():
    slots = [_slot(day_of_week=3, start="08:00", end="09:00"), _slot(day_of_week=1, start="14:00", end="15:00")]
    windows = expand_time_slots(slots, MONDAY, MONDAY + timedelta(days=6), 60)

    assert [w.start for w in windows] == [
        datetime(2026, 10, 19, 14, 0, tzinfo=UTC),
        datetime(2026, 10, 21, 8, 0, tzinfo=UTC),
    ]


def test_expand_uses_slot_timezone():
    windows = expand_time_slots([_slot(tz="Asia/Shanghai")], MONDAY, MONDAY, 60)
    assert windows[0].start == datetime(2026, 10, 19, 1, 0, tzinfo=UTC)


def test_expand_across_spring_forward_keeps_windows_ordered():
    # 2026-03-08 纽约 02:00 跳到 03:00
    sunday = date(2026, 3, 8)

    assert expand_time_slots([_slot(0, "02:00", "03:00", "America/New_York")], sunday, sunday, 30) == []

    windows = expand_time_slots([_slot(0, "01:00", "04:00", "America/New_York")], sunday, sunday, 30)
    assert [w.start.strftime("%H:%M") for w in windows] == ["06:00", "06:30", "07:00", "07:30"]
    assert all(w.end - w.start == timedelta(minutes=30) for w in windows)


def test_expand_across_fall_back_counts_repeated_hour():
    # 2026-11-01 纽约 01:00-02:00 出现两次
    sunday = date(2026, 11, 1)

    windows = expand_time_slots([_slot(0, "01:00", "02:00", "America/New_York")], sunday, sunday, 30)
    assert windows[0].start == datetime(2026, 11, 1, 5, 0, tzinfo=UTC)
    assert windows[-1].end == datetime(2026, 11, 1, 7, 0, tzinfo=UTC)
    assert all(a.end == b.start for a, b in zip(windows, windows[1:]))


def test_invalid_timezone_is_rejected():
    with pytest.raises(BadRequestException):
        get_tz("Mars/Olympus_Mons")


def test_remove_conflicts_uses_schedule_duration():
    windows = expand_time_slots([_slot(end="11:00")], MONDAY, MONDAY, 30)
    busy = InterviewSchedule(
        interview_id="i1",
        scheduled_at=datetime(2026, 10, 19, 9, 15),
        duration=45,
    )

    free = remove_conflicts(windows, [busy])
    assert [w.start.hour * 60 + w.start.minute for w in free] == [10 * 60, 10 * 60 + 30]


def test_adjacent_schedule_is_not_a_conflict():
    window = SlotWindow(datetime(2026, 10, 19, 9, 0, tzinfo=UTC), datetime(2026, 10, 19, 9, 30, tzinfo=UTC))
    busy = InterviewSchedule(interview_id="i1", scheduled_at=datetime(2026, 10, 19, 9, 30, tzinfo=UTC), duration=30)
    assert remove_conflicts([window], [busy]) == [window]


def test_generate_meeting_format():
    meeting = generate_meeting()
    parts = meeting["meeting_id"].split("-")
    assert [len(p) for p in parts] == [3, 4, 3]
    assert meeting["meeting_url"] == f"https://meet.google.com/{meeting['meeting_id']}"


@pytest.mark.parametrize(
    "header,expected",
    [
        ("bytes=0-99", (0, 99)),
        ("bytes=100-", (100, 999)),
        ("bytes=-200", (800, 999)),
        ("bytes=900-5000", (900, 999)),
        ("bytes=1000-", None),
        ("bytes=5-1", None),
        ("items=0-1", None),
        ("bytes=-", None),
    ],
)
def test_parse_range(header, expected):
    assert parse_range(header, 1000) == expected


# ========== 数据库流程 ==========

async def _interview(db):
    job = await job_crud.create(db, obj_in={"title": "SRE", "description": "d", "company": "Acme"})
    applicant = await applicant_crud.create(db, obj_in={"name": "Ann", "email": "ann@example.com"})
    application = await application_crud.create(db, obj_in={"job_id": job.id, "applicant_id": applicant.id})
    return await interview_crud.create(
        db, obj_in={"application_id": application.id, "invite_token": "tok-1", "questions": []}
    )


@pytest.mark.asyncio
async def test_available_slots_skip_booked_and_past(db_session):
    provider = await calendar_service.connect_provider(
        db_session,
        user_id="2",
        data=CalendarProviderConnect(provider="google", access_token="token"),
    )
    assert provider.provider_account_id.startswith("google_2_")

    for day in range(7):
        await time_slot_crud.create(
            db_session,
            obj_in={"calendar_provider_id": provider.id, "day_of_week": day, "start_time": "09:00", "end_time": "10:00"},
        )
    interview = await _interview(db_session)
    await calendar_service.schedule_interview(
        db_session,
        interview_id=interview.id,
        data=InterviewScheduleCreate(
            scheduled_at=datetime(2026, 10, 19, 9, 0, tzinfo=UTC),
            duration=30,
            calendar_provider_id=provider.id,
        ),
    )

    slots = await calendar_service.generate_available_slots(
        db_session,
        provider_id=provider.id,
        start_date=MONDAY,
        end_date=MONDAY + timedelta(days=1),
        now=datetime(2026, 10, 19, 9, 45, tzinfo=UTC),
    )
    assert [s.start for s in slots] == [
        datetime(2026, 10, 20, 9, 0, tzinfo=UTC),
        datetime(2026, 10, 20, 9, 30, tzinfo=UTC),
    ]


@pytest.mark.asyncio
async def test_available_slots_range_validation(db_session):
    with pytest.raises(BadRequestException):
        await calendar_service.generate_available_slots(
            db_session, provider_id="p", start_date=MONDAY, end_date=MONDAY - timedelta(days=1)
        )
    with pytest.raises(BadRequestException):
        await calendar_service.generate_available_slots(
            db_session, provider_id="p", start_date=MONDAY, end_date=MONDAY + timedelta(days=63)
        )


@pytest.mark.asyncio
async def test_double_booking_conflicts(db_session):
    provider = await calendar_provider_crud.create(
        db_session,
        obj_in={"user_id": "1", "provider": "outlook", "provider_account_id": "acc", "access_token": "t"},
    )
    interview = await _interview(db_session)
    data = InterviewScheduleCreate(
        scheduled_at=datetime(2026, 10, 19, 9, 0, tzinfo=UTC), duration=60, calendar_provider_id=provider.id
    )
    schedule = await calendar_service.schedule_interview(db_session, interview_id=interview.id, data=data)
    assert schedule.status == ScheduleStatus.SCHEDULED
    assert schedule.meeting_url.startswith("https://meet.google.com/")

    overlapping = InterviewScheduleCreate(
        scheduled_at=datetime(2026, 10, 19, 9, 30, tzinfo=UTC), duration=30, calendar_provider_id=provider.id
    )
    with pytest.raises(ConflictException):
        await calendar_service.schedule_interview(db_session, interview_id=interview.id, data=overlapping)


@pytest.mark.asyncio
async def test_cancelled_schedule_cannot_be_reopened(db_session):
    interview = await _interview(db_session)
    schedule = await schedule_crud.create(
        db_session,
        obj_in={"interview_id": interview.id, "scheduled_at": datetime(2026, 10, 19, 9, 0, tzinfo=UTC)},
    )

    cancelled = await calendar_service.update_schedule_status(
        db_session, schedule_id=schedule.id, status=ScheduleStatus.CANCELLED
    )
    assert cancelled.cancelled_at is not None

    with pytest.raises(BadRequestException):
        await calendar_service.update_schedule_status(
            db_session, schedule_id=schedule.id, status=ScheduleStatus.CONFIRMED
        )


@pytest.mark.asyncio
async def test_reminders_not_marked_when_email_unavailable(db_session):
    interview = await _interview(db_session)
    soon = datetime.now(UTC) + timedelta(hours=2)
    schedule = await schedule_crud.create(
        db_session,
        obj_in={"interview_id": interview.id, "scheduled_at": soon, "status": ScheduleStatus.CONFIRMED},
    )

    result = await calendar_service.send_schedule_reminders(db_session)

    assert result == {"due": 1, "sent": 0}
    assert (await schedule_crud.get(db_session, schedule.id)).reminder_sent is False
