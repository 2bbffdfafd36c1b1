"""Core routes — dashboard summary, daily tip, health checks."""

from __future__ import annotations

import logging
import sqlite3
import time
from datetime import date

from flask import Blueprint, current_app, jsonify
from flask_login import login_required

from ai_resilience import PROVIDER, get_circuit_breaker
from ai_schedule import daily_tip
from db_stores import ProfileStoreDB, ScheduleStoreDB, SessionStoreDB
from helpers import current_user_id, gemini_api_key
from progress import today_progress
from streaks import streaks_for_sessions

logger = logging.getLogger(__name__)

bp = Blueprint("core", __name__)


@bp.route("/api/dashboard")
@login_required
def api_dashboard():
    uid = current_user_id()
    profile = ProfileStoreDB(uid).load()
    sessions = SessionStoreDB(uid).list()
    schedule = ScheduleStoreDB(uid).load()
    today = date.today()

    today_plan = schedule.day_for(today.isoformat()) if schedule else None
    return jsonify({
        "name": profile.name if profile else "",
        "subjects": profile.subjects if profile else [],
        "streaks": streaks_for_sessions(sessions, today).to_dict(),
        "today": today_progress(sessions, profile.daily_goal if profile else None, today).to_dict(),
        "today_slots": [s.to_dict() for s in today_plan.slots] if today_plan else [],
        "schedule_source": schedule.source if schedule else None,
    })


@bp.route("/api/tip")
@login_required
def api_tip():
    uid = current_user_id()
    profile = ProfileStoreDB(uid).load()
    subjects = profile.subjects if profile else []
    tip = daily_tip(subjects, gemini_api_key(uid), current_app.config.get("GEMINI_MODEL", "gemini-1.5-flash"))
    return jsonify({"tip": tip})


# ── Health checks ─────────────────────────────────────────

_start_time = time.time()


@bp.route("/health")
def health():
    uptime = int(time.time() - _start_time)
    return jsonify({"status": "ok", "uptime_seconds": uptime})


@bp.route("/ready")
def ready():
    # An open AI circuit degrades schedules to rule-based but does not make us unready
    ai_state = get_circuit_breaker().states().get(PROVIDER, "closed")
    try:
        from database import get_db
        get_db().execute("SELECT 1").fetchone()
        return jsonify({"status": "ready", "ai_circuit": ai_state}), 200
    except sqlite3.Error as exc:
        logger.error("Readiness check failed: %s", exc, exc_info=True)
        return jsonify({"status": "not_ready", "ai_circuit": ai_state}), 503


@bp.route("/live")
def live():
    return jsonify({"status": "alive"}), 200
