"""
Streak calculation over completed study dates.

Pure functions: callers pass the session snapshot and, optionally, the
evaluation date. Nothing here touches the database.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from models import StreakState, StudySession


def completed_dates(sessions: Iterable[StudySession]) -> list[str]:
    """Distinct dates with at least one completed session, ascending."""
    return sorted({s.date for s in sessions if s.completed})


def calculate_streaks(dates: list[str], today: date | None = None) -> StreakState:
    """Current and longest run of consecutive days in ``dates``.

    ``dates`` must be distinct ISO dates sorted ascending. The current streak
    only counts when the latest date is today or yesterday.
    """
    if not dates:
        return StreakState(0, 0)

    today = today or date.today()
    days = [date.fromisoformat(d) for d in dates]

    longest = 1
    run = 1
    for prev, curr in zip(days, days[1:]):
        if (curr - prev).days == 1:
            run += 1
            longest = max(longest, run)
        else:
            run = 1

    current = 0
    if days[-1] in (today, today - timedelta(days=1)):
        current = 1
        for i in range(len(days) - 1, 0, -1):
            if (days[i] - days[i - 1]).days != 1:
                break
            current += 1

    return StreakState(current=current, longest=max(longest, current))


def streaks_for_sessions(sessions: Iterable[StudySession], today: date | None = None) -> StreakState:
    return calculate_streaks(completed_dates(sessions), today)
