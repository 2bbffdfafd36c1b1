"""Weekly schedule routes — generate, save, toggle and extend slots."""

from __future__ import annotations

import logging
from datetime import date

from flask import Blueprint, current_app, jsonify
from flask_login import login_required

from ai_schedule import generate_schedule
from db_stores import ProfileStoreDB, ScheduleStoreDB, SessionStoreDB
from helpers import current_user_id, error_response, gemini_api_key, json_body
from models import Fallback, Schedule, ScheduleSlot, StudySession, UserProfile, ValidationError, parse_iso_date

logger = logging.getLogger(__name__)

bp = Blueprint("schedules", __name__)

_PROFILE_KEYS = ("subjects", "dailyGoal", "studyStyle", "exams")


def _schedule_payload(schedule: Schedule, fallback_reason: str = "") -> dict:
    return {**schedule.to_dict(), "fallback_reason": fallback_reason or None}


@bp.route("/api/schedules")
@login_required
def api_schedule_get():
    store = ScheduleStoreDB(current_user_id())
    schedule = store.load()
    if not schedule:
        return jsonify({"week": []})
    return jsonify(_schedule_payload(schedule, store.fallback_reason()))


@bp.route("/api/schedules", methods=["POST"])
@login_required
def api_schedule_save():
    """Replace the stored schedule with a client-edited one."""
    data = json_body()
    try:
        schedule = Schedule.from_dict(data)
    except ValidationError as exc:
        return error_response(str(exc))
    ScheduleStoreDB(current_user_id()).save(schedule)
    return jsonify({"message": "Schedule saved successfully"})


@bp.route("/api/schedules/generate", methods=["POST"])
@login_required
def api_schedule_generate():
    uid = current_user_id()
    data = json_body()
    stored = ProfileStoreDB(uid).load() or UserProfile()

    # Body fields override the stored profile for this generation only
    if any(k in data for k in _PROFILE_KEYS):
        merged = {**stored.to_dict(), **{k: data[k] for k in _PROFILE_KEYS if k in data}}
        try:
            profile = UserProfile.from_dict(merged)
        except ValidationError as exc:
            return error_response(str(exc))
    else:
        profile = stored

    outcome = generate_schedule(
        profile,
        api_key=gemini_api_key(uid),
        model=current_app.config.get("GEMINI_MODEL", "gemini-1.5-flash"),
    )
    if outcome is None:
        return error_response("Add at least one subject before generating a schedule.")

    reason = outcome.reason if isinstance(outcome, Fallback) else ""
    ScheduleStoreDB(uid).save(outcome.schedule, reason)
    logger.info("schedule generated user_id=%s source=%s reason=%s",
                uid, outcome.schedule.source, reason or "-")
    return jsonify({"success": True, "schedule": _schedule_payload(outcome.schedule, reason)})


@bp.route("/api/schedules/slots/toggle", methods=["POST"])
@login_required
def api_slot_toggle():
    """Toggle a slot; completing it logs a completed session for today."""
    data = json_body()
    slot_id = str(data.get("slot_id", ""))
    try:
        day_date = parse_iso_date(data.get("date") or date.today().isoformat())
    except ValidationError as exc:
        return error_response(str(exc))

    uid = current_user_id()
    slot = ScheduleStoreDB(uid).toggle_slot(day_date, slot_id)
    if slot is None:
        return error_response("Slot not found or no schedule generated yet.", 404)

    if slot.completed:
        SessionStoreDB(uid).append(StudySession(
            subject=slot.subject,
            topic=slot.topic or None,
            duration=slot.duration,
            completed=True,
            date=date.today().isoformat(),
        ))

    return jsonify({"completed": slot.completed, "slot": slot.to_dict(), "session_logged": slot.completed})


@bp.route("/api/schedules/slots", methods=["POST"])
@login_required
def api_slot_add():
    data = json_body()
    try:
        day_date = parse_iso_date(data.get("date") or date.today().isoformat())
        candidate = ScheduleSlot.from_dict({
            "subject": data.get("subject"),
            "topic": data.get("topic", ""),
            "duration": data.get("duration", 60),
        })
    except ValidationError as exc:
        return error_response(str(exc))

    slot = ScheduleStoreDB(current_user_id()).add_custom_slot(
        day_date, candidate.subject, candidate.topic, candidate.duration,
    )
    if slot is None:
        return error_response("No schedule for that day.", 404)
    return jsonify({"slot": slot.to_dict()}), 201
