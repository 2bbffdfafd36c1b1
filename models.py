"""
Domain records for the study planner.

Plain dataclasses with validated construction. Anything that arrives from a
request body or from the AI schedule service goes through ``from_dict`` so
malformed shapes are rejected at the boundary instead of deep in a view.
Dates are kept as ISO strings ("2026-02-16"); lexical order is chronological.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from typing import Any, Optional, Union

STUDY_STYLES = ("pomodoro", "deep", "mixed")
SOURCE_AI = "ai"
SOURCE_RULE_BASED = "rule-based"
SOURCES = (SOURCE_AI, SOURCE_RULE_BASED)
MAX_DAILY_GOAL = 12     # hours; a full goal still ends before midnight

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ValidationError(ValueError):
    """Raised when a record cannot be built from untrusted data."""


def parse_iso_date(value: Any, field_name: str = "date") -> str:
    """Return ``value`` as a canonical ISO date string or raise ValidationError."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    message = f"{field_name} must be an ISO date (YYYY-MM-DD)."
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)
    value = value.strip()
    try:
        if _DATE_RE.match(value):
            return date.fromisoformat(value).isoformat()
        return datetime.fromisoformat(value).date().isoformat()
    except ValueError:
        raise ValidationError(message) from None


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{field_name} must be true or false.")
    return value


def _positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ValidationError(f"{field_name} must be a positive integer.")
    if number <= 0:
        raise ValidationError(f"{field_name} must be a positive integer.")
    return number


def _required_str(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required.")
    return value.strip()


# ── Sessions & streaks ───────────────────────────────────────────────


@dataclass
class StudySession:
    subject: str
    duration: int           # minutes, > 0
    date: str               # "2026-02-16"
    completed: bool = False
    topic: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, default_date: str | None = None) -> "StudySession":
        if not isinstance(data, dict):
            raise ValidationError("Session must be an object.")
        raw_date = data.get("date") or default_date
        topic = data.get("topic")
        return cls(
            subject=_required_str(data, "subject"),
            duration=_positive_int(data.get("duration"), "duration"),
            date=parse_iso_date(raw_date),
            completed=_bool(data.get("completed", False), "completed"),
            topic=topic.strip() if isinstance(topic, str) and topic.strip() else None,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class StreakState:
    current: int = 0
    longest: int = 0

    def to_dict(self) -> dict:
        return {"current": self.current, "longest": self.longest}


# ── Schedules ────────────────────────────────────────────────────────


@dataclass
class ScheduleSlot:
    id: str
    time: str               # "09:00 - 09:25" or "Custom"
    subject: str
    topic: str
    duration: int
    type: str = "study"
    completed: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "ScheduleSlot":
        if not isinstance(data, dict):
            raise ValidationError("Slot must be an object.")
        topic = data.get("topic")
        return cls(
            id=str(data.get("id") or ""),
            time=str(data.get("time") or ""),
            subject=_required_str(data, "subject"),
            topic=topic.strip() if isinstance(topic, str) else "",
            duration=_positive_int(data.get("duration"), "duration"),
            type=str(data.get("type") or "study"),
            completed=_bool(data.get("completed", False), "completed"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DaySchedule:
    day: str                # "Monday"
    date: str
    slots: list[ScheduleSlot] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "DaySchedule":
        if not isinstance(data, dict):
            raise ValidationError("Day must be an object.")
        slots = data.get("slots", [])
        if not isinstance(slots, list):
            raise ValidationError("slots must be a list.")
        day_date = parse_iso_date(data.get("date"))
        return cls(
            day=str(data.get("day") or date.fromisoformat(day_date).strftime("%A")),
            date=day_date,
            slots=[ScheduleSlot.from_dict(s) for s in slots],
        )

    @property
    def session_minutes(self) -> int:
        return sum(s.duration for s in self.slots)

    def to_dict(self) -> dict:
        return {"day": self.day, "date": self.date, "slots": [s.to_dict() for s in self.slots]}


@dataclass
class Schedule:
    generated_at: str
    source: str             # SOURCE_AI | SOURCE_RULE_BASED
    week: list[DaySchedule] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict, source: str | None = None, renumber: bool = False) -> "Schedule":
        """Build a schedule from untrusted data.

        Slot ids must be unique across the week. With ``renumber`` every slot
        is given a fresh ``"{day}-{slot}"`` id instead.
        """
        if not isinstance(data, dict):
            raise ValidationError("Schedule must be an object.")
        week = data.get("week")
        if not isinstance(week, list) or not week:
            raise ValidationError("Schedule must contain a non-empty 'week' list.")
        source = source or data.get("source") or SOURCE_RULE_BASED
        if source not in SOURCES:
            raise ValidationError(f"source must be one of: {', '.join(SOURCES)}.")
        days = [DaySchedule.from_dict(d) for d in week]

        seen = set()
        for day_index, day in enumerate(days):
            for slot_index, slot in enumerate(day.slots):
                if renumber:
                    slot.id = f"{day_index}-{slot_index}"
                elif slot.id in seen:
                    raise ValidationError(f"Duplicate slot id {slot.id!r}.")
                if slot.id:
                    seen.add(slot.id)

        return cls(
            generated_at=str(data.get("generatedAt") or datetime.now().isoformat()),
            source=source,
            week=days,
        )

    def day_for(self, day_date: str) -> Optional[DaySchedule]:
        for day in self.week:
            if day.date == day_date:
                return day
        return None

    def to_dict(self) -> dict:
        return {
            "generatedAt": self.generated_at,
            "source": self.source,
            "week": [d.to_dict() for d in self.week],
        }


@dataclass
class AiGenerated:
    """Schedule produced by the AI service."""
    schedule: Schedule

    @property
    def reason(self) -> None:
        return None


@dataclass
class Fallback:
    """Rule-based schedule substituted for an AI schedule, with the reason."""
    schedule: Schedule
    reason: str             # "no_api_key" | "ai_error" | "malformed_response"


ScheduleOutcome = Union[AiGenerated, Fallback]


# ── Profile ──────────────────────────────────────────────────────────


@dataclass
class Exam:
    subject: str
    date: str

    @classmethod
    def from_dict(cls, data: dict) -> "Exam":
        if not isinstance(data, dict):
            raise ValidationError("Exam must be an object.")
        return cls(subject=_required_str(data, "subject"), date=parse_iso_date(data.get("date")))


def _daily_goal(value: Any) -> int:
    hours = _positive_int(value, "dailyGoal")
    if hours > MAX_DAILY_GOAL:
        raise ValidationError(f"dailyGoal must be between 1 and {MAX_DAILY_GOAL} hours.")
    return hours


@dataclass
class UserProfile:
    name: str = ""
    subjects: list[str] = field(default_factory=list)
    daily_goal: int = 4     # hours
    study_style: str = "pomodoro"
    exams: list[Exam] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        if not isinstance(data, dict):
            raise ValidationError("Profile must be an object.")
        style = data.get("studyStyle", data.get("study_style", "pomodoro"))
        if style not in STUDY_STYLES:
            raise ValidationError(f"studyStyle must be one of: {', '.join(STUDY_STYLES)}.")
        subjects = data.get("subjects", [])
        exams = data.get("exams", [])
        if not isinstance(subjects, list) or not isinstance(exams, list):
            raise ValidationError("subjects and exams must be lists.")
        profile = cls(
            name=str(data.get("name") or "").strip(),
            daily_goal=_daily_goal(data.get("dailyGoal", data.get("daily_goal", 4))),
            study_style=style,
            exams=[Exam.from_dict(e) for e in exams],
        )
        for s in subjects:
            if not isinstance(s, str):
                raise ValidationError("subjects must be strings.")
            profile.add_subject(s)
        return profile

    def add_subject(self, name: str) -> bool:
        """Append ``name`` unless blank or already present. Returns True if added."""
        name = name.strip()
        if not name or name in self.subjects:
            return False
        self.subjects.append(name)
        return True

    def remove_subject(self, name: str) -> bool:
        if name not in self.subjects:
            return False
        self.subjects.remove(name)
        return True

    def exam_date_for(self, subject: str) -> Optional[str]:
        """Earliest exam date for ``subject``, or None."""
        dates = [e.date for e in self.exams if e.subject == subject]
        return min(dates) if dates else None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "subjects": list(self.subjects),
            "dailyGoal": self.daily_goal,
            "studyStyle": self.study_style,
            "exams": [asdict(e) for e in self.exams],
        }


# ── Reminders ────────────────────────────────────────────────────────


@dataclass
class Reminder:
    time: str               # "HH:MM"
    label: str
    enabled: bool = True
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_dict(cls, data: dict) -> "Reminder":
        if not isinstance(data, dict):
            raise ValidationError("Reminder must be an object.")
        time_str = str(data.get("time") or "08:00")
        if not _TIME_RE.match(time_str):
            raise ValidationError("time must be HH:MM.")
        return cls(time=time_str, label=_required_str(data, "label"),
                   enabled=_bool(data.get("enabled", True), "enabled"))

    def to_dict(self) -> dict:
        return asdict(self)
