"""
招聘分析 API 测试
"""
import csv
import io

import pytest
from httpx import AsyncClient

from tests.conftest import HR, REVIEWER, DataFactory


@pytest.mark.asyncio
async def test_completion_stats_after_interview(client: AsyncClient, factory: DataFactory):
    """完成一场面试、另有一场仅邀请"""
    await factory.complete_interview()
    await factory.invite()

    response = await client.get("/api/analytics/completion-stats")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total_invited"] == 2
    assert data["total_completed"] == 1
    assert data["completion_rate"] == 50.0
    assert data["dropoff_stages"] == {"invited": 2, "started": 1, "completed": 1}


@pytest.mark.asyncio
async def test_completion_stats_refresh_after_submit(client: AsyncClient, factory: DataFactory):
    """提交面试后分析缓存失效"""
    response = await client.get("/api/analytics/completion-stats")
    assert response.json()["data"]["total_completed"] == 0

    await factory.complete_interview()

    response = await client.get("/api/analytics/completion-stats")
    assert response.json()["data"]["total_completed"] == 1


@pytest.mark.asyncio
async def test_candidate_comparison_and_trends(client: AsyncClient, factory: DataFactory):
    completed = await factory.complete_interview()

    response = await client.get("/api/analytics/candidate-comparison")
    items = response.json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["interview_id"] == completed["interview_id"]
    assert items[0]["ranking"] == 1
    assert set(items[0]["scores"]) == {"technical", "communication", "confidence", "overall"}

    response = await client.get("/api/analytics/performance-trends")
    trends = response.json()["data"]["items"]
    assert len(trends) == 1
    assert trends[0]["interview_count"] == 1

    response = await client.get("/api/analytics/time-based")
    assert response.json()["data"]["total_interviews"] == 1


@pytest.mark.asyncio
async def test_bias_analysis_permissions(client: AsyncClient, factory: DataFactory):
    """HR 无权查看偏差分析，评审员可以"""
    await factory.complete_interview()

    response = await client.get("/api/analytics/bias-analysis", headers=HR)
    assert response.status_code == 403

    response = await client.get("/api/analytics/bias-analysis", headers=REVIEWER)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["sample_size"] == 1
    assert data["scoring_consistency"] == 1.0
    assert data["recommendations"]


@pytest.mark.asyncio
async def test_hr_can_view_advanced_analytics(client: AsyncClient):
    response = await client.get("/api/analytics/completion-stats", headers=HR)
    assert response.status_code == 200
    assert response.json()["data"]["total_invited"] == 0


@pytest.mark.asyncio
async def test_invalid_expertise_filter_rejected(client: AsyncClient):
    response = await client.get("/api/analytics/completion-stats", params={"expertise_level": "guru"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_export_candidates_csv(client: AsyncClient, factory: DataFactory):
    completed = await factory.complete_interview()

    response = await client.get("/api/analytics/export/candidates")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == 'attachment; filename="candidate-analysis.csv"'

    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0][0] == "Name"
    assert rows[0][-1] == "Ranking"
    assert len(rows) == 2
    assert rows[1][-1] == "1"

    response = await client.get(
        "/api/analytics/export/candidates", params={"job_id": completed["job_id"]}
    )
    assert len(list(csv.reader(io.StringIO(response.text)))) == 2

    await factory.complete_interview()
    response = await client.get("/api/analytics/export/candidates", params={"limit": 1})
    assert len(list(csv.reader(io.StringIO(response.text)))) == 2
    assert (await client.get("/api/analytics/export/candidates", params={"limit": 0})).status_code == 422
