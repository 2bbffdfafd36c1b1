"""Tests for scheduler.py — the rule-based weekly planner."""

from datetime import date, datetime, timedelta

import pytest

from models import Exam, SOURCE_RULE_BASED, UserProfile
from scheduler import (
    DAYS_IN_PLAN,
    build_day,
    generate_rule_based_schedule,
    session_lengths,
    sort_subjects_by_exam,
)

TODAY = date(2026, 3, 10)
NOW = datetime(2026, 3, 10, 8, 30)


def _profile(**kwargs):
    defaults = {"subjects": ["Math", "Physics"], "daily_goal": 2, "study_style": "pomodoro"}
    defaults.update(kwargs)
    return UserProfile(**defaults)


class TestSessionLengths:
    @pytest.mark.parametrize("style, expected", [
        ("pomodoro", (25, 5)),
        ("deep", (90, 15)),
        ("mixed", (50, 10)),
        ("unknown", (50, 10)),
    ])
    def test_styles(self, style, expected):
        assert session_lengths(style) == expected


class TestSortSubjectsByExam:
    def test_soonest_exam_first(self):
        profile = _profile(
            subjects=["Math", "Physics", "Chemistry"],
            exams=[Exam("Chemistry", "2026-05-01"), Exam("Physics", "2026-03-13")],
        )
        assert sort_subjects_by_exam(profile) == ["Physics", "Chemistry", "Math"]

    def test_no_exams_keeps_order(self):
        profile = _profile(subjects=["Biology", "Art", "Math"])
        assert sort_subjects_by_exam(profile) == ["Biology", "Art", "Math"]

    def test_uses_earliest_of_multiple_exams(self):
        profile = _profile(exams=[
            Exam("Math", "2026-06-01"), Exam("Physics", "2026-04-01"), Exam("Math", "2026-03-20"),
        ])
        assert sort_subjects_by_exam(profile) == ["Math", "Physics"]


class TestGenerateRuleBasedSchedule:
    def test_no_subjects_returns_none(self):
        assert generate_rule_based_schedule(_profile(subjects=[]), TODAY, NOW) is None

    def test_seven_days_from_today(self):
        schedule = generate_rule_based_schedule(_profile(), TODAY, NOW)
        assert schedule.source == SOURCE_RULE_BASED
        assert schedule.generated_at == NOW.isoformat()
        assert len(schedule.week) == DAYS_IN_PLAN
        assert [d.date for d in schedule.week] == [
            (TODAY + timedelta(days=i)).isoformat() for i in range(7)
        ]
        assert schedule.week[0].day == "Tuesday"

    def test_physics_exam_pomodoro_example(self):
        profile = _profile(exams=[Exam("Physics", (TODAY + timedelta(days=3)).isoformat())])
        day = generate_rule_based_schedule(profile, TODAY, NOW).week[0]

        assert [s.subject for s in day.slots] == ["Physics", "Math", "Physics", "Math"]
        assert [s.time for s in day.slots] == [
            "09:00 - 09:25", "09:30 - 09:55", "10:00 - 10:25", "10:30 - 10:55",
        ]
        assert day.session_minutes == 100

    def test_slot_ids_and_topics(self):
        day = generate_rule_based_schedule(_profile(), TODAY, NOW).week[2]
        assert [s.id for s in day.slots] == ["2-0", "2-1", "2-2", "2-3"]
        assert day.slots[0].topic == "Math — Session 1"
        assert day.slots[3].topic == "Physics — Session 4"
        assert all(s.type == "study" and not s.completed for s in day.slots)

    @pytest.mark.parametrize("style", ["pomodoro", "deep", "mixed"])
    @pytest.mark.parametrize("goal", [1, 2, 3, 4, 5, 8])
    def test_never_exceeds_goal(self, style, goal):
        schedule = generate_rule_based_schedule(_profile(daily_goal=goal, study_style=style), TODAY, NOW)
        session, _ = session_lengths(style)
        for day in schedule.week:
            assert day.session_minutes <= goal * 60
            assert day.session_minutes + session > goal * 60

    @pytest.mark.parametrize("style, last", [
        ("pomodoro", "22:30 - 22:55"),
        ("deep", "21:15 - 22:45"),
        ("mixed", "22:00 - 22:50"),
    ])
    def test_max_goal_ends_before_midnight(self, style, last):
        profile = UserProfile.from_dict({"subjects": ["Math"], "dailyGoal": 12, "studyStyle": style})
        for day in generate_rule_based_schedule(profile, TODAY, NOW).week:
            assert day.slots[-1].time == last
            start, end = day.slots[-1].time.split(" - ")
            assert start < end < "24:00"

    def test_session_longer_than_goal_is_omitted(self):
        schedule = generate_rule_based_schedule(_profile(daily_goal=1, study_style="deep"), TODAY, NOW)
        assert all(day.slots == [] for day in schedule.week)

    def test_deep_blocks(self):
        day = generate_rule_based_schedule(_profile(daily_goal=4, study_style="deep"), TODAY, NOW).week[0]
        assert [s.time for s in day.slots] == ["09:00 - 10:30", "10:45 - 12:15"]

    def test_mixed_blocks(self):
        day = generate_rule_based_schedule(_profile(daily_goal=2, study_style="mixed"), TODAY, NOW).week[0]
        assert [s.time for s in day.slots] == ["09:00 - 09:50", "10:00 - 10:50"]

    def test_deterministic(self):
        a = generate_rule_based_schedule(_profile(), TODAY, NOW)
        b = generate_rule_based_schedule(_profile(), TODAY, NOW)
        assert a.to_dict() == b.to_dict()


class TestBuildDay:
    def test_round_robin_restarts_each_day(self):
        day = build_day(0, TODAY, ["A", "B", "C"], 100, 25, 5)
        assert [s.subject for s in day.slots] == ["A", "B", "C", "A"]
