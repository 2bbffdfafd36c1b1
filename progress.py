"""
Progress aggregation — today's goal completion, weekly view, heatmap.

All functions take an explicit list of sessions. Rounding is half-up
(2.5 -> 3) rather than Python's banker's rounding so the numbers match
what the dashboard shows for the same data.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, asdict
from datetime import date, timedelta

from models import StudySession

DEFAULT_DAILY_GOAL = 4  # hours
DEFAULT_HEATMAP_DAYS = 91
WEEKDAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

# Upper bounds (exclusive, minutes) for heatmap levels 1..3; anything above is 4.
HEATMAP_THRESHOLDS = (60, 120, 180)


def round_half_up(value: float, ndigits: int = 0) -> float:
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


@dataclass
class TodayProgress:
    completed_minutes: int
    goal_minutes: int
    percent: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class WeeklyBucket:
    name: str
    planned: float          # hours
    completed: float        # hours

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class HeatmapDay:
    date: str
    minutes: int
    level: int

    def to_dict(self) -> dict:
        return asdict(self)


def today_progress(
    sessions: Iterable[StudySession],
    daily_goal: int | None,
    today: date | None = None,
) -> TodayProgress:
    today_str = (today or date.today()).isoformat()
    goal_hours = daily_goal if daily_goal and daily_goal > 0 else DEFAULT_DAILY_GOAL
    goal_minutes = goal_hours * 60
    completed = sum(s.duration for s in sessions if s.completed and s.date == today_str)
    percent = min(100, int(round_half_up(completed / goal_minutes * 100)))
    return TodayProgress(completed_minutes=completed, goal_minutes=goal_minutes, percent=percent)


def weekly_view(sessions: Iterable[StudySession]) -> list[WeeklyBucket]:
    """Planned vs completed hours bucketed by day of week (0=Sunday).

    Buckets by absolute weekday over the whole history, not a trailing window.
    """
    planned = [0] * 7
    completed = [0] * 7
    for s in sessions:
        # date.weekday() is Monday=0; shift so Sunday=0
        idx = (date.fromisoformat(s.date).weekday() + 1) % 7
        planned[idx] += s.duration
        if s.completed:
            completed[idx] += s.duration
    return [
        WeeklyBucket(
            name=WEEKDAY_NAMES[i],
            planned=round_half_up(planned[i] / 60, 1),
            completed=round_half_up(completed[i] / 60, 1),
        )
        for i in range(7)
    ]


def heatmap_level(minutes: int) -> int:
    if minutes <= 0:
        return 0
    for level, bound in enumerate(HEATMAP_THRESHOLDS, start=1):
        if minutes < bound:
            return level
    return 4


def heatmap(
    sessions: Iterable[StudySession],
    days: int = DEFAULT_HEATMAP_DAYS,
    today: date | None = None,
) -> list[HeatmapDay]:
    """Completed minutes per day for the trailing ``days`` window, oldest first."""
    today = today or date.today()
    minutes_by_date: dict[str, int] = defaultdict(int)
    for s in sessions:
        if s.completed:
            minutes_by_date[s.date] += s.duration

    result = []
    for i in range(days - 1, -1, -1):
        key = (today - timedelta(days=i)).isoformat()
        minutes = minutes_by_date.get(key, 0)
        result.append(HeatmapDay(date=key, minutes=minutes, level=heatmap_level(minutes)))
    return result
