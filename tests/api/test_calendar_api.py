"""
日历排期 API 测试
"""
from datetime import datetime, time, timedelta, timezone

import pytest
from httpx import AsyncClient

from recruitai.models.base import utcnow
from tests.conftest import ADMIN, HR, REVIEWER, DataFactory


async def connect_with_daily_slots(client: AsyncClient) -> str:
    """连接日历账户，每天 09:00-10:00 UTC 可预约"""
    response = await client.post(
        "/api/calendar/providers",
        json={"provider": "google", "access_token": "token-123"},
        headers=ADMIN,
    )
    assert response.status_code == 200, response.text
    provider = response.json()["data"]
    assert "access_token" not in provider
    assert provider["provider_account_id"].startswith("google_1_")

    for day in range(7):
        response = await client.post(
            "/api/calendar/time-slots",
            json={
                "calendar_provider_id": provider["id"],
                "day_of_week": day,
                "start_time": "09:00",
                "end_time": "10:00",
            },
            headers=ADMIN,
        )
        assert response.status_code == 200, response.text
    return provider["id"]


def tomorrow_at(hour: int) -> datetime:
    return datetime.combine(utcnow().date() + timedelta(days=1), time(hour), tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_available_slots_and_scheduling(client: AsyncClient, factory: DataFactory):
    provider_id = await connect_with_daily_slots(client)
    tomorrow = utcnow().date() + timedelta(days=1)
    params = {
        "provider_id": provider_id,
        "start_date": tomorrow.isoformat(),
        "end_date": (tomorrow + timedelta(days=1)).isoformat(),
    }

    response = await client.get("/api/calendar/available-slots", params=params)
    assert response.status_code == 200
    assert response.json()["data"]["total"] == 4

    invited = await factory.invite()
    response = await client.post(
        f"/api/interviews/{invited['interview_id']}/schedule",
        json={
            "scheduled_at": tomorrow_at(9).isoformat(),
            "duration": 30,
            "calendar_provider_id": provider_id,
        },
        headers=HR,
    )
    assert response.status_code == 200, response.text
    schedule = response.json()["data"]
    assert schedule["status"] == "scheduled"
    assert schedule["meeting_url"].startswith("https://meet.google.com/")

    response = await client.get("/api/calendar/available-slots", params=params)
    data = response.json()["data"]
    assert data["total"] == 3
    assert all(not item["start"].startswith(f"{tomorrow.isoformat()}T09:00") for item in data["items"])

    response = await client.get(f"/api/interviews/{invited['interview_id']}/schedule")
    assert response.json()["data"]["id"] == schedule["id"]


@pytest.mark.asyncio
async def test_double_booking_conflict(client: AsyncClient, factory: DataFactory):
    provider_id = await connect_with_daily_slots(client)
    payload = {
        "scheduled_at": tomorrow_at(9).isoformat(),
        "duration": 30,
        "calendar_provider_id": provider_id,
    }

    first = await factory.invite()
    response = await client.post(f"/api/interviews/{first['interview_id']}/schedule", json=payload)
    assert response.status_code == 200

    second = await factory.invite()
    payload["scheduled_at"] = (tomorrow_at(9) + timedelta(minutes=15)).isoformat()
    response = await client.post(f"/api/interviews/{second['interview_id']}/schedule", json=payload)
    assert response.status_code == 409
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_reviewer_cannot_schedule(client: AsyncClient, factory: DataFactory):
    invited = await factory.invite()
    response = await client.post(
        f"/api/interviews/{invited['interview_id']}/schedule",
        json={"scheduled_at": tomorrow_at(11).isoformat()},
        headers=REVIEWER,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_schedule_unknown_interview(client: AsyncClient):
    response = await client.post(
        "/api/interviews/missing/schedule",
        json={"scheduled_at": tomorrow_at(11).isoformat()},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_schedule_status_and_upcoming(client: AsyncClient, factory: DataFactory):
    provider_id = await connect_with_daily_slots(client)
    invited = await factory.invite()
    response = await client.post(
        f"/api/interviews/{invited['interview_id']}/schedule",
        json={"scheduled_at": tomorrow_at(9).isoformat(), "calendar_provider_id": provider_id},
    )
    schedule_id = response.json()["data"]["id"]

    response = await client.put(f"/api/schedules/{schedule_id}/status", json={"status": "confirmed"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "confirmed"
    assert data["confirmed_at"] is not None

    response = await client.get("/api/calendar/upcoming")
    items = response.json()["data"]["items"]
    assert [item["id"] for item in items] == [schedule_id]

    response = await client.put(f"/api/schedules/{schedule_id}/status", json={"status": "cancelled"})
    assert response.json()["data"]["cancelled_at"] is not None

    response = await client.put(f"/api/schedules/{schedule_id}/status", json={"status": "confirmed"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_time_slot_validation(client: AsyncClient):
    provider_id = await connect_with_daily_slots(client)

    response = await client.post(
        "/api/calendar/time-slots",
        json={
            "calendar_provider_id": provider_id,
            "day_of_week": 1,
            "start_time": "10:00",
            "end_time": "09:00",
        },
    )
    assert response.status_code == 422

    response = await client.post(
        "/api/calendar/time-slots",
        json={
            "calendar_provider_id": provider_id,
            "day_of_week": 1,
            "start_time": "09:00",
            "end_time": "10:00",
            "timezone": "Mars/Olympus",
        },
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_time_slots_owned_by_other_user(client: AsyncClient):
    """其他用户的日历账户视为不存在"""
    provider_id = await connect_with_daily_slots(client)
    response = await client.get(f"/api/calendar/time-slots/{provider_id}", headers=HR)
    assert response.status_code == 404

    response = await client.get(f"/api/calendar/time-slots/{provider_id}", headers=ADMIN)
    assert len(response.json()["data"]["items"]) == 7


@pytest.mark.asyncio
async def test_available_slots_range_limits(client: AsyncClient):
    provider_id = await connect_with_daily_slots(client)
    today = utcnow().date()

    response = await client.get(
        "/api/calendar/available-slots",
        params={
            "provider_id": provider_id,
            "start_date": (today + timedelta(days=2)).isoformat(),
            "end_date": today.isoformat(),
        },
    )
    assert response.status_code == 400

    response = await client.get(
        "/api/calendar/available-slots",
        params={"provider_id": "missing", "start_date": today.isoformat(), "end_date": today.isoformat()},
    )
    assert response.status_code == 404
