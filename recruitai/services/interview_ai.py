"""
AI 面试服务模块。

生成面试题、分析面试视频、生成邮件内容。
AI 不可用时，面试题和视频分析使用内置兜底数据，保证流程不中断。
"""
import random
from typing import Any, Dict, List, Optional

from loguru import logger

from recruitai.models.interview import InterviewQuestion, QuestionType
from recruitai.models.job import ExpertiseLevel
from .llm_client import get_llm_client

DEFAULT_QUESTION_COUNT = 5

# 各级别的兜底面试题
FALLBACK_QUESTIONS: Dict[str, List[Dict[str, Any]]] = {
    ExpertiseLevel.SENIOR.value: [
        {"question": "Describe a complex system you architected. What trade-offs did you make and why?", "type": "technical", "expected_duration": 180},
        {"question": "How do you approach mentoring junior engineers on your team?", "type": "behavioral", "expected_duration": 120},
        {"question": "Tell me about a time you had to push back on a product decision. How did you handle it?", "type": "behavioral", "expected_duration": 150},
        {"question": "A critical production service is degrading under load. Walk me through how you would respond.", "type": "situational", "expected_duration": 180},
        {"question": "How do you evaluate and introduce a new technology into an established codebase?", "type": "technical", "expected_duration": 150},
    ],
    ExpertiseLevel.MID.value: [
        {"question": "Walk me through a recent project you are proud of and your specific contributions.", "type": "technical", "expected_duration": 150},
        {"question": "How do you ensure the quality of the code you ship?", "type": "technical", "expected_duration": 120},
        {"question": "Describe a disagreement with a teammate and how you resolved it.", "type": "behavioral", "expected_duration": 120},
        {"question": "You are given an ambiguous requirement close to a deadline. What do you do?", "type": "situational", "expected_duration": 120},
        {"question": "What is a technical skill you improved recently, and how did you learn it?", "type": "behavioral", "expected_duration": 90},
    ],
    ExpertiseLevel.JUNIOR.value: [
        {"question": "Tell me about a project, academic or personal, that you enjoyed building.", "type": "technical", "expected_duration": 120},
        {"question": "How do you approach learning a new programming concept or tool?", "type": "behavioral", "expected_duration": 90},
        {"question": "Describe a time you were stuck on a problem. How did you get unstuck?", "type": "behavioral", "expected_duration": 120},
        {"question": "If you received critical feedback on your code, how would you respond?", "type": "situational", "expected_duration": 90},
        {"question": "Why are you interested in this role and what do you hope to learn?", "type": "behavioral", "expected_duration": 90},
    ],
}

ANALYSIS_KEYS = (
    "speech_pace",
    "pause_frequency",
    "eye_contact",
    "enthusiasm",
    "clarity",
    "professional_language",
    "question_relevance",
    "time_management",
)


def fallback_questions(expertise_level: str, count: int = DEFAULT_QUESTION_COUNT) -> List[Dict[str, Any]]:
    """按级别返回兜底面试题，未知级别按 mid 处理"""
    questions = FALLBACK_QUESTIONS.get(expertise_level, FALLBACK_QUESTIONS[ExpertiseLevel.MID.value])
    return [dict(q) for q in questions[:count]]


def _normalize_questions(raw: Any, count: int) -> List[Dict[str, Any]]:
    items = raw.get("questions") if isinstance(raw, dict) else raw
    if not isinstance(items, list):
        raise ValueError("AI 返回的面试题格式不正确")

    questions = []
    for item in items:
        if not isinstance(item, dict) or not item.get("question"):
            continue
        q_type = item.get("type", QuestionType.TECHNICAL.value)
        if q_type not in {t.value for t in QuestionType}:
            q_type = QuestionType.TECHNICAL.value
        duration = item.get("expected_duration", item.get("expectedDuration", 120))
        try:
            duration = int(duration)
        except (TypeError, ValueError):
            duration = 120
        questions.append(
            InterviewQuestion(
                question=str(item["question"]),
                type=q_type,
                expected_duration=max(10, min(duration, 900)),
            ).model_dump(mode="json")
        )
    if not questions:
        raise ValueError("AI 未返回有效的面试题")
    return questions[:count]


async def generate_interview_questions(
    job_description: str,
    job_title: str,
    expertise_level: str,
    count: int = DEFAULT_QUESTION_COUNT,
) -> List[Dict[str, Any]]:
    """
    生成面试题。

    参数:
        job_description: 岗位描述
        job_title: 岗位名称
        expertise_level: junior / mid / senior
        count: 题目数量

    返回:
        [{"question", "type", "expected_duration"}, ...]，AI 失败时返回兜底题库
    """
    client = get_llm_client()
    if not client.is_configured():
        return fallback_questions(expertise_level, count)

    system_prompt = (
        "You are an expert technical recruiter. Generate video interview questions "
        "that assess technical skills, communication and cultural fit. "
        "Respond only with JSON."
    )
    user_prompt = f"""Generate {count} interview questions for a {expertise_level} level {job_title} position.

Job Description: {job_description}

Mix technical, behavioral and situational questions appropriate for the level.
Return JSON in this format:
{{"questions": [{{"question": "...", "type": "technical|behavioral|situational", "expected_duration": 120}}]}}
expected_duration is the suggested answer time in seconds."""

    try:
        result = await client.complete_json(system_prompt, user_prompt)
        return _normalize_questions(result, count)
    except Exception as exc:
        logger.warning("生成面试题失败，使用兜底题库: {}", exc)
        return fallback_questions(expertise_level, count)


def _clamp_score(value: Any, default: float = 5.0) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return default
    return round(max(1.0, min(10.0, score)), 1)


def fallback_analysis(rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """AI 不可用时的模拟评分，分值落在合理区间"""
    rng = rng or random.Random()
    technical = round(rng.uniform(6.0, 8.0), 1)
    communication = round(rng.uniform(7.0, 9.0), 1)
    confidence = round(rng.uniform(6.5, 8.5), 1)
    overall = round((technical + communication + confidence) / 3, 1)
    return {
        "technical_score": technical,
        "communication_score": communication,
        "confidence_score": confidence,
        "overall_score": overall,
        "feedback": (
            "The candidate communicated clearly and showed solid understanding of the "
            "core topics. Answers were well structured; some responses could include "
            "more concrete examples."
        ),
        "analysis_details": {
            "speech_pace": rng.choice(["Appropriate", "Slightly fast", "Measured"]),
            "pause_frequency": rng.choice(["Natural", "Occasional", "Minimal"]),
            "eye_contact": rng.choice(["Good", "Consistent", "Moderate"]),
            "enthusiasm": rng.choice(["High", "Moderate", "Engaged"]),
            "clarity": rng.choice(["Clear", "Mostly clear", "Very clear"]),
            "professional_language": "Appropriate",
            "question_relevance": rng.choice(["Highly relevant", "Relevant"]),
            "time_management": rng.randint(90, 150),
            "transcription": "Transcription is unavailable while AI analysis is offline.",
            "key_strengths": ["Clear communication", "Structured answers"],
            "improvement_areas": ["Provide more concrete examples"],
        },
    }


def _normalize_analysis(raw: Dict[str, Any]) -> Dict[str, Any]:
    scores = {
        key: _clamp_score(raw.get(key))
        for key in ("technical_score", "communication_score", "confidence_score", "overall_score")
    }
    details = raw.get("analysis_details") or {}
    if not isinstance(details, dict):
        details = {}
    normalized_details: Dict[str, Any] = {key: details.get(key, "N/A") for key in ANALYSIS_KEYS}
    normalized_details["transcription"] = details.get("transcription", "")
    normalized_details["key_strengths"] = list(details.get("key_strengths") or [])
    normalized_details["improvement_areas"] = list(details.get("improvement_areas") or [])
    return {
        **scores,
        "feedback": str(raw.get("feedback") or "No feedback provided."),
        "analysis_details": normalized_details,
    }


async def analyze_interview_video(
    video_size: int,
    questions: List[Dict[str, Any]],
    job_title: str,
) -> Dict[str, Any]:
    """
    分析面试视频并给出评分。

    chat 接口无法直接读取视频，这里基于题目与录制信息生成评估；
    返回的各项分值限制在 1-10。AI 不可用或失败时返回模拟评分。
    """
    client = get_llm_client()
    if not client.is_configured():
        return fallback_analysis()

    question_text = "\n".join(
        f"{i + 1}. [{q.get('type', 'technical')}] {q.get('question', '')}"
        for i, q in enumerate(questions)
    )
    system_prompt = (
        "You are an expert interview assessor. Score the candidate's video interview "
        "on a 1-10 scale. Respond only with JSON."
    )
    user_prompt = f"""Position: {job_title}
Recorded answer size: {video_size} bytes

Questions asked:
{question_text}

Return JSON with keys technical_score, communication_score, confidence_score,
overall_score (1-10), feedback (string), and analysis_details with keys
{", ".join(ANALYSIS_KEYS)}, transcription, key_strengths (list), improvement_areas (list)."""

    try:
        result = await client.complete_json(system_prompt, user_prompt)
        return _normalize_analysis(result)
    except Exception as exc:
        logger.warning("视频分析失败，使用模拟评分: {}", exc)
        return fallback_analysis()


async def generate_email_content(
    candidate_name: str,
    job_title: str,
    company: str,
    interview_link: str,
) -> Dict[str, str]:
    """
    生成个性化邀请邮件。

    返回 {"subject", "html", "text"}；失败时抛出异常，由调用方决定是否使用模板。
    """
    client = get_llm_client()
    system_prompt = "You write concise, professional recruiting emails. Respond only with JSON."
    user_prompt = f"""Write a video interview invitation email.

Candidate: {candidate_name}
Position: {job_title}
Company: {company}
Interview link: {interview_link}

Return JSON: {{"subject": "...", "html": "...", "text": "..."}}"""

    result = await client.complete_json(system_prompt, user_prompt)
    if not all(result.get(key) for key in ("subject", "html", "text")):
        raise ValueError("AI 返回的邮件内容不完整")
    return {"subject": str(result["subject"]), "html": str(result["html"]), "text": str(result["text"])}
