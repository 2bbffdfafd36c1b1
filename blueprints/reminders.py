"""Study reminder routes."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from db_stores import ReminderStoreDB
from helpers import current_user_id, error_response, json_body
from models import Reminder, ValidationError

bp = Blueprint("reminders", __name__)


@bp.route("/api/reminders")
@login_required
def api_reminders():
    reminders = ReminderStoreDB(current_user_id()).list()
    return jsonify({"reminders": [r.to_dict() for r in reminders]})


@bp.route("/api/reminders", methods=["POST"])
@login_required
def api_reminder_add():
    try:
        reminder = Reminder.from_dict(json_body())
    except ValidationError as exc:
        return error_response(str(exc))
    ReminderStoreDB(current_user_id()).add(reminder)
    return jsonify({"reminder": reminder.to_dict()}), 201


@bp.route("/api/reminders/<reminder_id>/toggle", methods=["POST"])
@login_required
def api_reminder_toggle(reminder_id):
    enabled = ReminderStoreDB(current_user_id()).toggle(reminder_id)
    if enabled is None:
        return error_response("Reminder not found.", 404)
    return jsonify({"id": reminder_id, "enabled": enabled})


@bp.route("/api/reminders/<reminder_id>", methods=["DELETE"])
@login_required
def api_reminder_delete(reminder_id):
    if not ReminderStoreDB(current_user_id()).delete(reminder_id):
        return error_response("Reminder not found.", 404)
    return jsonify({"success": True})
