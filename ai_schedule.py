"""
AI schedule generation with rule-based fallback.

Asks Gemini for a 7-day plan as JSON, validates the reply into a Schedule,
and substitutes the rule-based planner whenever there is no key, the call
fails, or the reply does not conform. The substitution is returned as a
``Fallback`` outcome carrying the reason, never raised.
"""

from __future__ import annotations

import json
import logging
import random
from datetime import date, datetime, timedelta
from typing import Optional

from ai_resilience import resilient_llm_call
from models import (
    AiGenerated,
    Fallback,
    Schedule,
    ScheduleOutcome,
    SOURCE_AI,
    UserProfile,
    ValidationError,
)
from scheduler import DAYS_IN_PLAN, generate_rule_based_schedule

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"

REASON_NO_API_KEY = "no_api_key"
REASON_AI_ERROR = "ai_error"
REASON_MALFORMED = "malformed_response"

_STYLE_DESCRIPTIONS = {
    "pomodoro": "25 min sessions, 5 min breaks",
    "deep": "90 min deep focus blocks",
    "mixed": "50 min sessions, 10 min breaks",
}

STUDY_TIPS = [
    "Use active recall: close your notes and try to write down everything you remember. "
    "This is 3x more effective than re-reading.",
    "Study in 25-minute focused blocks with 5-minute breaks. Your brain consolidates memory during rest.",
    "Teach what you just learned to an imaginary student. If you can explain it simply, you understand it deeply.",
    "Start your session with the hardest topic when your energy is highest. Save easier reviews for later.",
    "Space your reviews: revisit yesterday's material for 5 minutes before starting today's new content.",
    "Write practice questions as you study. Testing yourself is twice as effective as highlighting.",
]


class MalformedAIResponse(ValueError):
    """The AI reply could not be turned into a valid schedule."""


def build_schedule_prompt(profile: UserProfile, today: date | None = None) -> str:
    today = today or date.today()
    style = _STYLE_DESCRIPTIONS.get(profile.study_style, _STYLE_DESCRIPTIONS["mixed"])
    exams = ", ".join(f"{e.subject} on {e.date}" for e in profile.exams) or "None specified"
    return f"""You are a professional study planner. Create a personalized 7-day study schedule starting {today.isoformat()}.

Student Profile:
- Subjects: {', '.join(profile.subjects)}
- Daily study goal: {profile.daily_goal} hours
- Study style: {profile.study_style} ({style})
- Upcoming exams: {exams}

Instructions:
- Prioritize subjects with closer exam dates
- For each day, include 2-4 slots that fit within the {profile.daily_goal} hour limit.
- Only use the subjects listed above.
- Vary the topics to prevent burnout.

Return ONLY valid JSON in this exact structure:
{{
  "week": [
    {{
      "day": "Monday",
      "date": "{today.isoformat()}",
      "slots": [
        {{
          "id": "unique_id_1",
          "time": "09:00 - 10:00",
          "subject": "{profile.subjects[0] if profile.subjects else 'Math'}",
          "topic": "Algebra",
          "duration": 60,
          "type": "study"
        }}
      ]
    }}
  ]
}}"""


def _clean_json_text(text: str) -> str:
    """Strip markdown fences and keep the outermost {...} block."""
    cleaned = text.replace("```json", "").replace("```", "").strip()
    first = cleaned.find("{")
    last = cleaned.rfind("}")
    if first != -1 and last > first:
        cleaned = cleaned[first:last + 1]
    return cleaned


def parse_ai_schedule(
    text: str,
    profile: UserProfile,
    now: datetime | None = None,
) -> Schedule:
    """Validate an AI reply into a Schedule or raise MalformedAIResponse."""
    now = now or datetime.now()
    if not isinstance(text, str) or not text.strip():
        raise MalformedAIResponse("empty response")
    try:
        data = json.loads(_clean_json_text(text))
    except json.JSONDecodeError as exc:
        raise MalformedAIResponse(f"invalid JSON: {exc}") from exc

    try:
        schedule = Schedule.from_dict(data, source=SOURCE_AI, renumber=True)
    except ValidationError as exc:
        raise MalformedAIResponse(str(exc)) from exc

    if len(schedule.week) != DAYS_IN_PLAN:
        raise MalformedAIResponse(f"expected {DAYS_IN_PLAN} days, got {len(schedule.week)}")

    # Week is re-anchored at today regardless of the dates in the reply.
    today = now.date()
    allowed = set(profile.subjects)
    for day_index, day in enumerate(schedule.week):
        day_date = today + timedelta(days=day_index)
        day.date = day_date.isoformat()
        day.day = day_date.strftime("%A")
        for slot in day.slots:
            if slot.subject not in allowed:
                raise MalformedAIResponse(f"unknown subject {slot.subject!r}")
            slot.completed = False

    schedule.generated_at = now.isoformat()
    return schedule


def _fallback(profile: UserProfile, reason: str, today: date, now: datetime) -> Fallback:
    return Fallback(generate_rule_based_schedule(profile, today=today, now=now), reason)


def generate_schedule(
    profile: UserProfile,
    api_key: str = "",
    model: str = DEFAULT_MODEL,
    now: datetime | None = None,
) -> Optional[ScheduleOutcome]:
    """Produce a schedule for ``profile``: AI when possible, rule-based otherwise.

    Returns None when the profile has no subjects.
    """
    if not profile.subjects:
        return None

    now = now or datetime.now()
    today = now.date()

    if not api_key:
        return _fallback(profile, REASON_NO_API_KEY, today, now)

    try:
        text, _ = resilient_llm_call(
            build_schedule_prompt(profile, today), api_key=api_key, model=model, json_output=True,
        )
    except Exception as exc:
        logger.warning("AI schedule call failed, using rule-based planner: %s", exc)
        return _fallback(profile, REASON_AI_ERROR, today, now)

    try:
        schedule = parse_ai_schedule(text, profile, now=now)
    except MalformedAIResponse as exc:
        logger.warning("AI schedule response rejected, using rule-based planner: %s", exc)
        return _fallback(profile, REASON_MALFORMED, today, now)

    return AiGenerated(schedule)


def random_tip() -> str:
    return random.choice(STUDY_TIPS)


def daily_tip(subjects: list[str], api_key: str = "", model: str = DEFAULT_MODEL) -> str:
    """One short study tip from Gemini, or a canned tip if that is not possible."""
    if not api_key:
        return random_tip()
    prompt = (
        "Give one short, specific, actionable study tip for a student studying "
        f"{', '.join(subjects[:3]) or 'several subjects'}. Maximum 2 sentences. No preamble."
    )
    try:
        text, _ = resilient_llm_call(prompt, api_key=api_key, model=model)
    except Exception as exc:
        logger.warning("Daily tip call failed: %s", exc)
        return random_tip()
    text = text.strip() if isinstance(text, str) else ""
    return text or random_tip()
