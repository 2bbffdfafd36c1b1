"""Profile and settings routes — subjects, exams, daily goal, study style, Gemini key."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from db_stores import ProfileStoreDB, SettingsStoreDB
from helpers import current_user_id, error_response, json_body
from models import Exam, UserProfile, ValidationError, parse_iso_date

bp = Blueprint("profile", __name__)


def _mask_key(key: str) -> str:
    if not key:
        return ""
    return "•" * 8 + key[-4:]


def _settings_payload(settings: dict) -> dict:
    return {
        "dark_mode": settings["dark_mode"],
        "notifications": settings["notifications"],
        "gemini_key": _mask_key(settings["gemini_key"]),
        "has_gemini_key": bool(settings["gemini_key"]),
    }


@bp.route("/api/profile")
@login_required
def api_profile_get():
    profile = ProfileStoreDB(current_user_id()).load() or UserProfile()
    return jsonify(profile.to_dict())


@bp.route("/api/profile", methods=["PUT"])
@login_required
def api_profile_put():
    try:
        profile = UserProfile.from_dict(json_body())
    except ValidationError as exc:
        return error_response(str(exc))
    ProfileStoreDB(current_user_id()).save(profile)
    return jsonify(profile.to_dict())


@bp.route("/api/profile/subjects", methods=["POST"])
@login_required
def api_subject_add():
    name = str(json_body().get("name", "")).strip()
    if not name:
        return error_response("Subject name is required.")
    store = ProfileStoreDB(current_user_id())
    added = store.add_subject(name)
    return jsonify({"added": added, "subjects": store.load().subjects}), (201 if added else 200)


@bp.route("/api/profile/subjects", methods=["DELETE"])
@login_required
def api_subject_remove():
    name = str(json_body().get("name", "")).strip()
    store = ProfileStoreDB(current_user_id())
    if not store.remove_subject(name):
        return error_response("Subject not found.", 404)
    return jsonify({"subjects": store.load().subjects})


@bp.route("/api/profile/exams", methods=["POST"])
@login_required
def api_exam_add():
    try:
        exam = Exam.from_dict(json_body())
    except ValidationError as exc:
        return error_response(str(exc))
    store = ProfileStoreDB(current_user_id())
    store.add_exam(exam)
    return jsonify({"exams": store.load().to_dict()["exams"]}), 201


@bp.route("/api/profile/exams", methods=["DELETE"])
@login_required
def api_exam_remove():
    data = json_body()
    try:
        exam_date = parse_iso_date(data.get("date"))
    except ValidationError as exc:
        return error_response(str(exc))
    store = ProfileStoreDB(current_user_id())
    if not store.remove_exam(str(data.get("subject", "")), exam_date):
        return error_response("Exam not found.", 404)
    return jsonify({"exams": store.load().to_dict()["exams"]})


@bp.route("/api/settings")
@login_required
def api_settings_get():
    return jsonify(_settings_payload(SettingsStoreDB(current_user_id()).load()))


@bp.route("/api/settings", methods=["PUT"])
@login_required
def api_settings_put():
    data = json_body()
    gemini_key = data.get("gemini_key")
    if gemini_key is not None and not isinstance(gemini_key, str):
        return error_response("gemini_key must be a string.")
    settings = SettingsStoreDB(current_user_id()).update(
        dark_mode=bool(data["dark_mode"]) if "dark_mode" in data else None,
        notifications=bool(data["notifications"]) if "notifications" in data else None,
        gemini_key=gemini_key,
    )
    return jsonify(_settings_payload(settings))
