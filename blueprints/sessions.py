"""Study session logging routes."""

from __future__ import annotations

import logging
from datetime import date

from flask import Blueprint, jsonify
from flask_login import login_required

from db_stores import SessionStoreDB
from helpers import current_user_id, error_response, json_body, paginate_args, paginated_response
from models import StudySession, ValidationError

logger = logging.getLogger(__name__)

bp = Blueprint("sessions", __name__)


@bp.route("/api/sessions")
@login_required
def api_sessions():
    page, limit = paginate_args(default_limit=50, max_limit=500)
    items, total = SessionStoreDB(current_user_id()).page(page, limit)
    return jsonify(paginated_response(items, total, page, limit))


@bp.route("/api/sessions/today")
@login_required
def api_sessions_today():
    sessions = SessionStoreDB(current_user_id()).for_date(date.today().isoformat())
    return jsonify([s.to_dict() for s in sessions])


@bp.route("/api/sessions/log", methods=["POST"])
@login_required
def api_sessions_log():
    uid = current_user_id()
    try:
        session = StudySession.from_dict(json_body(), default_date=date.today().isoformat())
    except ValidationError as exc:
        return error_response(str(exc))

    session_id = SessionStoreDB(uid).append(session)
    logger.info("session logged user_id=%s subject=%s minutes=%d completed=%s",
                uid, session.subject, session.duration, session.completed)
    return jsonify({"message": "Session logged", "id": session_id, "session": session.to_dict()}), 201
