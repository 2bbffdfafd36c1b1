"""Tests for ai_schedule.py — AI schedule parsing and rule-based fallback."""

import json
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from ai_schedule import (
    REASON_AI_ERROR,
    REASON_MALFORMED,
    REASON_NO_API_KEY,
    STUDY_TIPS,
    MalformedAIResponse,
    build_schedule_prompt,
    daily_tip,
    generate_schedule,
    parse_ai_schedule,
)
from models import AiGenerated, Exam, Fallback, SOURCE_AI, SOURCE_RULE_BASED, UserProfile

NOW = datetime(2026, 3, 10, 8, 0)


def _profile(**kwargs):
    defaults = {"subjects": ["Math", "Physics"], "daily_goal": 2, "study_style": "pomodoro"}
    defaults.update(kwargs)
    return UserProfile(**defaults)


def _ai_week(days=7, subject="Math"):
    return {
        "week": [
            {
                "day": "Monday",
                "date": f"2030-01-{i + 1:02d}",
                "slots": [
                    {"id": "x", "time": "09:00 - 10:00", "subject": subject,
                     "topic": "Algebra", "duration": 60, "type": "study", "completed": True},
                ],
            }
            for i in range(days)
        ]
    }


class TestBuildPrompt:
    def test_includes_profile(self):
        profile = _profile(exams=[Exam("Physics", "2026-03-20")])
        prompt = build_schedule_prompt(profile, NOW.date())
        assert "Math, Physics" in prompt
        assert "Physics on 2026-03-20" in prompt
        assert "2 hours" in prompt
        assert "pomodoro" in prompt

    def test_no_exams(self):
        assert "None specified" in build_schedule_prompt(_profile(), NOW.date())


class TestParseAISchedule:
    def test_valid_reply_is_reanchored(self):
        schedule = parse_ai_schedule(json.dumps(_ai_week()), _profile(), now=NOW)
        assert schedule.source == SOURCE_AI
        assert schedule.generated_at == NOW.isoformat()
        assert schedule.week[0].date == "2026-03-10"
        assert schedule.week[0].day == "Tuesday"
        assert schedule.week[6].date == (NOW.date() + timedelta(days=6)).isoformat()
        slot = schedule.week[1].slots[0]
        assert slot.id == "1-0"
        assert slot.completed is False

    def test_markdown_fences_stripped(self):
        text = "Here you go:\n```json\n" + json.dumps(_ai_week()) + "\n```"
        schedule = parse_ai_schedule(text, _profile(), now=NOW)
        assert len(schedule.week) == 7

    @pytest.mark.parametrize("text", [
        "",
        "not json at all",
        "{\"week\": []}",
        "{\"days\": []}",
        json.dumps({"week": [{"date": "2026-03-10", "slots": [{"subject": "Math"}]}]}),
    ])
    def test_malformed(self, text):
        with pytest.raises(MalformedAIResponse):
            parse_ai_schedule(text, _profile(), now=NOW)

    def test_wrong_day_count(self):
        with pytest.raises(MalformedAIResponse, match="expected 7 days"):
            parse_ai_schedule(json.dumps(_ai_week(days=5)), _profile(), now=NOW)

    def test_unknown_subject(self):
        with pytest.raises(MalformedAIResponse, match="unknown subject"):
            parse_ai_schedule(json.dumps(_ai_week(subject="History")), _profile(), now=NOW)


class TestGenerateSchedule:
    def test_no_subjects(self):
        assert generate_schedule(_profile(subjects=[]), api_key="k", now=NOW) is None

    @patch("ai_schedule.resilient_llm_call")
    def test_no_api_key_falls_back(self, mock_call):
        outcome = generate_schedule(_profile(), api_key="", now=NOW)
        assert isinstance(outcome, Fallback)
        assert outcome.reason == REASON_NO_API_KEY
        assert outcome.schedule.source == SOURCE_RULE_BASED
        mock_call.assert_not_called()

    @patch("ai_schedule.resilient_llm_call")
    def test_ai_success(self, mock_call):
        mock_call.return_value = (json.dumps(_ai_week()), {"provider": "gemini"})
        outcome = generate_schedule(_profile(), api_key="k", now=NOW)
        assert isinstance(outcome, AiGenerated)
        assert outcome.reason is None
        assert outcome.schedule.source == SOURCE_AI
        assert mock_call.call_args.kwargs["json_output"] is True

    @patch("ai_schedule.resilient_llm_call")
    def test_ai_error_falls_back(self, mock_call):
        mock_call.side_effect = RuntimeError("boom")
        outcome = generate_schedule(_profile(), api_key="k", now=NOW)
        assert isinstance(outcome, Fallback)
        assert outcome.reason == REASON_AI_ERROR
        assert len(outcome.schedule.week) == 7

    @patch("ai_schedule.resilient_llm_call")
    def test_malformed_falls_back(self, mock_call):
        mock_call.return_value = ("{\"week\": \"nope\"}", {})
        outcome = generate_schedule(_profile(), api_key="k", now=NOW)
        assert isinstance(outcome, Fallback)
        assert outcome.reason == REASON_MALFORMED
        assert outcome.schedule.week[0].slots[0].time == "09:00 - 09:25"


class TestDailyTip:
    def test_no_key_uses_canned_tip(self):
        assert daily_tip(["Math"]) in STUDY_TIPS

    @patch("ai_schedule.resilient_llm_call")
    def test_ai_tip(self, mock_call):
        mock_call.return_value = ("  Review formulas before bed.  ", {})
        assert daily_tip(["Math"], api_key="k") == "Review formulas before bed."

    @patch("ai_schedule.resilient_llm_call")
    def test_ai_failure_uses_canned_tip(self, mock_call):
        mock_call.side_effect = ConnectionError("down")
        assert daily_tip(["Math"], api_key="k") in STUDY_TIPS
