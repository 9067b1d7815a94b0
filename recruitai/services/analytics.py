"""
招聘分析服务模块。

面试完成率、候选人对比排名、月度趋势、评分偏差分析和 CSV 导出。
统计在 Python 中完成，不依赖数据库方言的聚合函数。
"""
import csv
import io
import statistics
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recruitai.models.applicant import Applicant
from recruitai.models.application import JobApplication
from recruitai.models.base import ensure_utc, utcnow
from recruitai.models.interview import Interview, InterviewStatus
from recruitai.models.job import Job
from recruitai.models.score import InterviewScore

TREND_WINDOW = timedelta(days=183)

# 分析明细缺失时的默认指标
DEFAULT_METRICS = {
    "speech_pace": 150,
    "pause_frequency": 5,
    "eye_contact": 7,
    "enthusiasm": 6,
    "time_management": 120,
}

DEFAULT_TOP_SKILLS = [
    "Technical Problem Solving",
    "Clear Communication",
    "System Design Knowledge",
    "Professional Demeanor",
]

DEFAULT_IMPROVEMENT_AREAS = [
    "More specific examples needed",
    "Deeper technical explanations",
    "Better time management",
    "Increased confidence",
]

# 题目公平性暂无逐题评分数据，先返回样例
QUESTION_FAIRNESS = [
    {
        "question_id": "tech_1",
        "question": "Explain your approach to system design",
        "average_score": 7.2,
        "score_variation": 1.8,
        "potential_bias": False,
    },
    {
        "question_id": "behav_1",
        "question": "Describe a challenging team situation",
        "average_score": 6.8,
        "score_variation": 2.3,
        "potential_bias": True,
    },
]

MOCK_GENDER_BALANCE = 0.45
MOCK_EXPERIENCE_DISTRIBUTION = {"junior": 0.35, "mid": 0.45, "senior": 0.20}

CSV_HEADER = [
    "Name",
    "Email",
    "Job Title",
    "Technical Score",
    "Communication Score",
    "Confidence Score",
    "Overall Score",
    "Speech Pace",
    "Eye Contact",
    "Enthusiasm",
    "Ranking",
]
EXPORT_LIMIT = 1000


@dataclass
class AnalyticsFilters:
    """分析过滤条件，日期按面试创建时间过滤"""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    job_id: Optional[str] = None
    department: Optional[str] = None
    expertise_level: Optional[str] = None


@dataclass
class InterviewRow:
    interview: Interview
    applicant: Applicant
    job: Job
    score: Optional[InterviewScore]


def _avg(values: List[float]) -> float:
    return round(sum(values) / len(values), 1) if values else 0.0


def _stdev(values: List[float]) -> float:
    return statistics.stdev(values) if len(values) > 1 else 0.0


def _metric(details: Dict[str, Any], key: str) -> Any:
    value = details.get(key)
    return value if value else DEFAULT_METRICS[key]


class AnalyticsService:
    """招聘分析服务"""

    async def _load_rows(
        self,
        db: AsyncSession,
        filters: Optional[AnalyticsFilters] = None,
        *,
        scored_only: bool = False,
    ) -> List[InterviewRow]:
        filters = filters or AnalyticsFilters()
        query = (
            select(Interview, Applicant, Job, InterviewScore)
            .join(JobApplication, Interview.application_id == JobApplication.id)
            .join(Applicant, JobApplication.applicant_id == Applicant.id)
            .join(Job, JobApplication.job_id == Job.id)
        )
        if scored_only:
            query = query.join(InterviewScore, InterviewScore.interview_id == Interview.id)
        else:
            query = query.outerjoin(InterviewScore, InterviewScore.interview_id == Interview.id)

        if filters.start_date:
            query = query.where(Interview.created_at >= filters.start_date)
        if filters.end_date:
            query = query.where(Interview.created_at <= filters.end_date)
        if filters.job_id:
            query = query.where(Job.id == filters.job_id)
        if filters.department:
            query = query.where(Job.department == filters.department)
        if filters.expertise_level:
            query = query.where(Job.expertise_level == filters.expertise_level)

        result = await db.execute(query)
        return [InterviewRow(*row) for row in result.all()]

    async def get_completion_stats(
        self, db: AsyncSession, filters: Optional[AnalyticsFilters] = None
    ) -> Dict[str, Any]:
        """邀请 -> 开始 -> 完成 的漏斗"""
        rows = await self._load_rows(db, filters)
        invited = len(rows)
        started = sum(1 for r in rows if r.interview.started_at is not None)
        completed = [r.interview for r in rows if r.interview.status == InterviewStatus.COMPLETED]

        durations = [
            (ensure_utc(i.completed_at) - ensure_utc(i.started_at)).total_seconds() / 60
            for i in completed
            if i.started_at and i.completed_at
        ]
        return {
            "total_invited": invited,
            "total_completed": len(completed),
            "completion_rate": round(len(completed) / invited * 100, 1) if invited else 0.0,
            "average_completion_time": _avg(durations),
            "dropoff_stages": {
                "invited": invited,
                "started": started,
                "completed": len(completed),
            },
        }

    async def get_candidate_comparison(
        self,
        db: AsyncSession,
        *,
        job_id: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """按总分从高到低排名，ranking 从 1 开始"""
        rows = await self._load_rows(db, AnalyticsFilters(job_id=job_id), scored_only=True)
        rows.sort(key=lambda r: r.score.overall_score, reverse=True)

        candidates = []
        for rank, row in enumerate(rows[:limit], start=1):
            details = row.score.analysis_details or {}
            candidates.append({
                "candidate_id": row.applicant.id,
                "interview_id": row.interview.id,
                "name": row.applicant.name,
                "email": row.applicant.email,
                "job_title": row.job.title,
                "interview_date": ensure_utc(row.interview.completed_at or row.score.created_at),
                "scores": {
                    "technical": row.score.technical_score,
                    "communication": row.score.communication_score,
                    "confidence": row.score.confidence_score,
                    "overall": row.score.overall_score,
                },
                "metrics": {key: _metric(details, key) for key in DEFAULT_METRICS},
                "ranking": rank,
            })
        return candidates

    async def get_performance_trends(
        self,
        db: AsyncSession,
        filters: Optional[AnalyticsFilters] = None,
        *,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """最近 6 个月已完成面试的月度平均分"""
        since = (now or utcnow()) - TREND_WINDOW
        rows = await self._load_rows(db, filters, scored_only=True)

        by_month: Dict[str, List[InterviewRow]] = defaultdict(list)
        for row in rows:
            completed_at = ensure_utc(row.interview.completed_at)
            if row.interview.status != InterviewStatus.COMPLETED or completed_at is None:
                continue
            if completed_at < since:
                continue
            by_month[completed_at.strftime("%Y-%m")].append(row)

        trends = []
        for month in sorted(by_month):
            scores = [r.score for r in by_month[month]]
            details = [s.analysis_details or {} for s in scores]
            trends.append({
                "time_range": month,
                "average_scores": {
                    "technical": _avg([s.technical_score for s in scores]),
                    "communication": _avg([s.communication_score for s in scores]),
                    "confidence": _avg([s.confidence_score for s in scores]),
                    "overall": _avg([s.overall_score for s in scores]),
                },
                "interview_count": len(scores),
                "top_skills": self._most_common(details, "key_strengths") or DEFAULT_TOP_SKILLS,
                "improvement_areas": (
                    self._most_common(details, "improvement_areas") or DEFAULT_IMPROVEMENT_AREAS
                ),
            })
        return trends

    @staticmethod
    def _most_common(details: Iterable[Dict[str, Any]], key: str, n: int = 4) -> List[str]:
        counter: Counter = Counter()
        for item in details:
            values = item.get(key) or []
            if isinstance(values, list):
                counter.update(str(v) for v in values)
        return [value for value, _ in counter.most_common(n)]

    async def analyze_bias(
        self, db: AsyncSession, filters: Optional[AnalyticsFilters] = None
    ) -> Dict[str, Any]:
        """
        评分一致性分析。

        一致性 = max(0, 1 - 三项分数样本标准差均值 / 10)，越接近 1 越一致。
        性别分布暂无数据，使用固定样例值。
        """
        rows = await self._load_rows(db, filters, scored_only=True)
        scores = [r.score for r in rows]
        average_stdev = (
            _stdev([s.technical_score for s in scores])
            + _stdev([s.communication_score for s in scores])
            + _stdev([s.confidence_score for s in scores])
        ) / 3
        consistency = round(max(0.0, 1 - average_stdev / 10), 3)

        levels = Counter(getattr(r.job.expertise_level, "value", r.job.expertise_level) for r in rows)
        if levels:
            total = sum(levels.values())
            experience = {level: round(levels.get(level, 0) / total, 2) for level in MOCK_EXPERIENCE_DISTRIBUTION}
        else:
            experience = dict(MOCK_EXPERIENCE_DISTRIBUTION)

        demographics = {
            "gender_balance": MOCK_GENDER_BALANCE,
            "experience_distribution": experience,
        }
        fairness = [dict(q) for q in QUESTION_FAIRNESS]
        return {
            "scoring_consistency": consistency,
            "sample_size": len(scores),
            "demographic_distribution": demographics,
            "question_fairness": fairness,
            "recommendations": self._bias_recommendations(consistency, demographics, fairness),
        }

    @staticmethod
    def _bias_recommendations(
        consistency: float, demographics: Dict[str, Any], fairness: List[Dict[str, Any]]
    ) -> List[str]:
        recommendations = []
        if consistency < 0.7:
            recommendations.append("Consider standardizing scoring rubrics to improve consistency")
        if not 0.4 <= demographics["gender_balance"] <= 0.6:
            recommendations.append("Review recruitment channels to improve gender balance")
        if any(q["potential_bias"] for q in fairness):
            recommendations.append("Review and rephrase questions with high score variation")
        if not recommendations:
            recommendations.append("Bias analysis shows good consistency and fairness")
        return recommendations

    async def get_time_based_analytics(
        self, db: AsyncSession, filters: Optional[AnalyticsFilters] = None
    ) -> Dict[str, Any]:
        """平均每题用时（秒），缺失时按 120 计"""
        rows = await self._load_rows(db, filters, scored_only=True)
        times = []
        for row in rows:
            value = (row.score.analysis_details or {}).get("time_management")
            times.append(float(value) if isinstance(value, (int, float)) else 120.0)
        return {
            "avg_time_per_question": _avg(times) if times else 120.0,
            "total_interviews": len(rows),
        }

    async def export_candidates_csv(
        self, db: AsyncSession, *, job_id: Optional[str] = None, limit: int = EXPORT_LIMIT
    ) -> str:
        """按排名导出前 limit 名候选人，超出部分截断并记录警告"""
        candidates = await self.get_candidate_comparison(db, job_id=job_id, limit=limit + 1)
        if len(candidates) > limit:
            logger.warning("候选人导出超过上限 {} 条，已截断", limit)
            candidates = candidates[:limit]
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_HEADER)
        for c in candidates:
            writer.writerow([
                c["name"],
                c["email"],
                c["job_title"],
                c["scores"]["technical"],
                c["scores"]["communication"],
                c["scores"]["confidence"],
                c["scores"]["overall"],
                c["metrics"]["speech_pace"],
                c["metrics"]["eye_contact"],
                c["metrics"]["enthusiasm"],
                c["ranking"],
            ])
        logger.info("导出候选人分析: {} 条", len(candidates))
        return buffer.getvalue()


# 全局单例
analytics_service = AnalyticsService()
