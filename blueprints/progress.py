"""Progress routes — streaks, today's goal, weekly view, heatmap."""

from __future__ import annotations

from datetime import date

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from db_stores import ProfileStoreDB, SessionStoreDB
from helpers import current_user_id
from progress import heatmap, today_progress, weekly_view
from streaks import streaks_for_sessions

bp = Blueprint("progress", __name__)

MAX_HEATMAP_DAYS = 366


def _heatmap_days() -> int:
    default = current_app.config.get("HEATMAP_DAYS", 91)
    try:
        days = int(request.args.get("days", default))
    except (ValueError, TypeError):
        days = default
    return max(1, min(MAX_HEATMAP_DAYS, days))


def _daily_goal(uid: int) -> int:
    profile = ProfileStoreDB(uid).load()
    if profile and profile.daily_goal > 0:
        return profile.daily_goal
    return current_app.config.get("DEFAULT_DAILY_GOAL", 4)


@bp.route("/api/progress")
@login_required
def api_progress():
    uid = current_user_id()
    sessions = SessionStoreDB(uid).list()
    today = date.today()
    return jsonify({
        "streaks": streaks_for_sessions(sessions, today).to_dict(),
        "today": today_progress(sessions, _daily_goal(uid), today).to_dict(),
        "weekly": [b.to_dict() for b in weekly_view(sessions)],
        "heatmap": [d.to_dict() for d in heatmap(sessions, _heatmap_days(), today)],
        "total_sessions": len(sessions),
        "completed_sessions": sum(1 for s in sessions if s.completed),
    })


@bp.route("/api/progress/streaks")
@login_required
def api_progress_streaks():
    sessions = SessionStoreDB(current_user_id()).list()
    return jsonify(streaks_for_sessions(sessions).to_dict())


@bp.route("/api/progress/today")
@login_required
def api_progress_today():
    uid = current_user_id()
    sessions = SessionStoreDB(uid).for_date(date.today().isoformat())
    return jsonify(today_progress(sessions, _daily_goal(uid)).to_dict())


@bp.route("/api/progress/weekly")
@login_required
def api_progress_weekly():
    sessions = SessionStoreDB(current_user_id()).list()
    return jsonify([b.to_dict() for b in weekly_view(sessions)])


@bp.route("/api/progress/heatmap")
@login_required
def api_progress_heatmap():
    sessions = SessionStoreDB(current_user_id()).list()
    return jsonify([d.to_dict() for d in heatmap(sessions, _heatmap_days())])
