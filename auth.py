"""
User Authentication — Flask-Login blueprint.

JSON register/login/logout routes plus account export and deletion.
Uses werkzeug.security for password hashing. Every other API route relies on
``login_required`` and scopes its queries to ``current_user.id``.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from flask import Blueprint, jsonify
from flask_login import LoginManager, UserMixin, login_required, login_user, logout_user, current_user
from flask_wtf.csrf import generate_csrf
from werkzeug.security import generate_password_hash, check_password_hash

from audit import log_event
from database import get_db
from db_stores import (
    ProfileStoreDB,
    ReminderStoreDB,
    ScheduleStoreDB,
    SessionStoreDB,
    SettingsStoreDB,
)
from extensions import limiter
from helpers import error_response, json_body

LOCKOUT_THRESHOLD = 5
LOCKOUT_MINUTES = 15

auth_bp = Blueprint("auth", __name__)
login_manager = LoginManager()


class User(UserMixin):
    """Wraps a DB user row for Flask-Login."""

    def __init__(self, id: int, name: str, email: str, role: str = "user"):
        self.id = id
        self.name = name
        self.email = email
        self.role = role

    @property
    def is_admin(self):
        return self.role == "admin"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}

    @staticmethod
    def get(user_id: int):
        db = get_db()
        row = db.execute("SELECT id, name, email, role FROM users WHERE id = ?", (user_id,)).fetchone()
        if row:
            return User(row["id"], row["name"], row["email"], row["role"])
        return None

    @staticmethod
    def get_by_email(email: str):
        db = get_db()
        return db.execute(
            "SELECT id, name, email, password_hash, role, daily_goal, login_attempts, locked_until "
            "FROM users WHERE email = ?", (email,),
        ).fetchone()


@login_manager.user_loader
def load_user(user_id):
    return User.get(int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return error_response("Authentication required.", 401)


def _validate_password(password: str) -> str | None:
    """Return an error message if password is too weak, else None."""
    if len(password) < 8:
        return "Password must be at least 8 characters."
    if not any(c.isupper() for c in password):
        return "Password must contain at least one uppercase letter."
    if not any(c.islower() for c in password):
        return "Password must contain at least one lowercase letter."
    if not any(c.isdigit() for c in password):
        return "Password must contain at least one digit."
    return None


@auth_bp.route("/api/auth/csrf")
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})


@auth_bp.route("/api/auth/register", methods=["POST"])
@limiter.limit("3 per hour")
def register():
    data = json_body()
    name = str(data.get("name", "")).strip()
    email = str(data.get("email", "")).strip().lower()
    password = str(data.get("password", ""))

    if not email or not password:
        return error_response("Email and password are required.")

    pw_error = _validate_password(password)
    if pw_error:
        return error_response(pw_error)

    if User.get_by_email(email):
        return error_response("An account with this email already exists.", 409)

    db = get_db()
    cur = db.execute(
        "INSERT INTO users (name, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
        (name, email, generate_password_hash(password), datetime.now().isoformat()),
    )
    user_id = cur.lastrowid
    db.execute("INSERT OR IGNORE INTO settings (user_id) VALUES (?)", (user_id,))
    db.commit()

    log_event("register", user_id, f"email={email}")
    user = User(user_id, name, email)
    login_user(user, remember=True)
    return jsonify({"message": "User registered successfully", "user": user.to_dict()}), 201


@auth_bp.route("/api/auth/login", methods=["POST"])
@limiter.limit("5 per 15 minutes")
def login():
    data = json_body()
    email = str(data.get("email", "")).strip().lower()
    password = str(data.get("password", ""))

    if not email or not password:
        return error_response("Email and password are required.")

    row = User.get_by_email(email)
    if not row:
        return error_response("Invalid credentials.", 401)

    db = get_db()
    attempts = row["login_attempts"]
    locked_until = row["locked_until"]
    if locked_until:
        try:
            remaining = (datetime.fromisoformat(locked_until) - datetime.now()).total_seconds()
        except ValueError:
            remaining = 0
        if remaining > 0:
            mins = math.ceil(remaining / 60)
            log_event("login_locked", row["id"], f"email={email}")
            return error_response(f"Account temporarily locked. Try again in {mins} minute(s).", 423)
        # Lock expired: start a fresh count
        attempts = 0
        db.execute("UPDATE users SET login_attempts=0, locked_until='' WHERE id=?", (row["id"],))
        db.commit()

    if not check_password_hash(row["password_hash"], password):
        attempts += 1
        if attempts >= LOCKOUT_THRESHOLD:
            db.execute(
                "UPDATE users SET login_attempts=?, locked_until=? WHERE id=?",
                (attempts, (datetime.now() + timedelta(minutes=LOCKOUT_MINUTES)).isoformat(), row["id"]),
            )
        else:
            db.execute("UPDATE users SET login_attempts=? WHERE id=?", (attempts, row["id"]))
        db.commit()
        log_event("login_failed", row["id"], f"email={email} attempts={attempts}")
        return error_response("Invalid credentials.", 401)

    db.execute("UPDATE users SET login_attempts=0, locked_until='' WHERE id=?", (row["id"],))
    db.commit()

    user = User(row["id"], row["name"], row["email"], row["role"])
    login_user(user, remember=True)
    log_event("login_success", row["id"])
    return jsonify({"user": {**user.to_dict(), "dailyGoal": row["daily_goal"]}})


@auth_bp.route("/api/auth/logout", methods=["POST"])
def logout():
    uid = current_user.id if current_user.is_authenticated else None
    log_event("logout", uid)
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/api/auth/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})


@auth_bp.route("/api/account/export")
@login_required
def account_export():
    """Export all of the user's data as JSON."""
    uid = current_user.id
    profile = ProfileStoreDB(uid).load()
    schedule = ScheduleStoreDB(uid).load()
    settings = SettingsStoreDB(uid).load()
    settings.pop("gemini_key", None)

    data = {
        "user": current_user.to_dict(),
        "profile": profile.to_dict() if profile else {},
        "schedule": schedule.to_dict() if schedule else None,
        "sessions": [s.to_dict() for s in SessionStoreDB(uid).list()],
        "reminders": [r.to_dict() for r in ReminderStoreDB(uid).list()],
        "settings": settings,
        "exported_at": datetime.now().isoformat(),
    }
    log_event("data_export", uid, "type=account_export")
    return jsonify(data)


@auth_bp.route("/api/account/clear", methods=["POST"])
@login_required
def account_clear():
    """Wipe sessions, schedule and reminders but keep the account."""
    uid = current_user.id
    SessionStoreDB(uid).clear()
    ScheduleStoreDB(uid).clear()
    ReminderStoreDB(uid).clear()
    log_event("data_clear", uid)
    return jsonify({"success": True})


@auth_bp.route("/api/account/delete", methods=["POST"])
@login_required
def account_delete():
    """Delete the account after password confirmation."""
    uid = current_user.id
    password = str(json_body().get("password", ""))
    if not password:
        return error_response("Password is required to confirm account deletion.")

    db = get_db()
    row = db.execute("SELECT password_hash FROM users WHERE id=?", (uid,)).fetchone()
    if not row or not check_password_hash(row["password_hash"], password):
        return error_response("Incorrect password.", 403)

    log_event("account_delete", uid)
    db.execute("DELETE FROM users WHERE id=?", (uid,))
    db.commit()
    logout_user()
    return jsonify({"success": True, "message": "Account deleted."})
