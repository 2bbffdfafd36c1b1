"""
Rule-based weekly scheduler.

Builds a 7-day plan of time-boxed study slots from a profile snapshot without
calling any external service. Used directly when no AI key is configured and
as the fallback when the AI schedule is unavailable or malformed.

Subjects are ordered by nearest exam, then assigned round-robin from 09:00
each day until the daily goal is reached. A session is only placed if it
fits entirely inside the remaining goal minutes.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from models import DaySchedule, Schedule, ScheduleSlot, SOURCE_RULE_BASED, UserProfile

START_HOUR = 9
DAYS_IN_PLAN = 7

# study style -> (session minutes, break minutes)
STUDY_STYLES: dict[str, tuple[int, int]] = {
    "pomodoro": (25, 5),
    "deep": (90, 15),
    "mixed": (50, 10),
}
DEFAULT_STYLE = "mixed"


def session_lengths(study_style: str) -> tuple[int, int]:
    return STUDY_STYLES.get(study_style, STUDY_STYLES[DEFAULT_STYLE])


def sort_subjects_by_exam(profile: UserProfile) -> list[str]:
    """Subjects with the soonest exam first; subjects without an exam last.

    ``sorted`` is stable, so ties and exam-less subjects keep insertion order.
    """
    def key(subject: str) -> tuple[int, str]:
        exam_date = profile.exam_date_for(subject)
        return (0, exam_date) if exam_date else (1, "")

    return sorted(profile.subjects, key=key)


def _fmt(minute_of_day: int) -> str:
    return f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"


def build_day(
    day_index: int,
    day_date: date,
    subjects: list[str],
    goal_minutes: int,
    session_minutes: int,
    break_minutes: int,
) -> DaySchedule:
    slots: list[ScheduleSlot] = []
    clock = START_HOUR * 60
    used = 0

    while used + session_minutes <= goal_minutes:
        subject = subjects[len(slots) % len(subjects)]
        slots.append(ScheduleSlot(
            id=f"{day_index}-{len(slots)}",
            time=f"{_fmt(clock)} - {_fmt(clock + session_minutes)}",
            subject=subject,
            topic=f"{subject} — Session {len(slots) + 1}",
            duration=session_minutes,
            type="study",
            completed=False,
        ))
        clock += session_minutes + break_minutes
        used += session_minutes

    return DaySchedule(day=day_date.strftime("%A"), date=day_date.isoformat(), slots=slots)


def generate_rule_based_schedule(
    profile: UserProfile,
    today: date | None = None,
    now: datetime | None = None,
) -> Optional[Schedule]:
    """Return a 7-day schedule anchored at ``today``, or None without subjects."""
    if not profile.subjects:
        return None

    now = now or datetime.now()
    today = today or now.date()
    subjects = sort_subjects_by_exam(profile)
    session_minutes, break_minutes = session_lengths(profile.study_style)
    goal_minutes = max(profile.daily_goal, 0) * 60

    week = [
        build_day(d, today + timedelta(days=d), subjects, goal_minutes, session_minutes, break_minutes)
        for d in range(DAYS_IN_PLAN)
    ]
    return Schedule(generated_at=now.isoformat(), source=SOURCE_RULE_BASED, week=week)
