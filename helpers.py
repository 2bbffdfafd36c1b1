"""
Shared helpers used across blueprints.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, current_app, jsonify, request
from flask_login import current_user


def current_user_id() -> int:
    """Return the current authenticated user's ID.

    Only called from ``login_required`` views, so an anonymous user here is
    a wiring bug.
    """
    if not current_user.is_authenticated:
        abort(401)
    return current_user.id


def admin_required(f: Callable) -> Callable:
    """Decorator that requires an authenticated user with the admin role."""
    @wraps(f)
    def decorated(*args: Any, **kwargs: Any) -> Any:
        if not current_user.is_authenticated:
            return jsonify({"error": "Authentication required."}), 401
        if getattr(current_user, "role", "user") != "admin":
            return jsonify({"error": "Admin access required."}), 403
        return f(*args, **kwargs)
    return decorated


def json_body() -> dict:
    """Request JSON as a dict; a missing or non-object body becomes {}."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def error_response(message: str, status: int = 400):
    return jsonify({"error": message}), status


# ── Pagination ──────────────────────────────────────────────

def paginate_args(default_limit: int = 20, max_limit: int = 100) -> tuple[int, int]:
    """Extract page/limit from request.args. Returns (page, limit)."""
    try:
        page = max(1, int(request.args.get("page", 1)))
    except (ValueError, TypeError):
        page = 1
    try:
        limit = min(max_limit, max(1, int(request.args.get("limit", default_limit))))
    except (ValueError, TypeError):
        limit = default_limit
    return page, limit


def paginated_response(items: list, total: int, page: int, limit: int) -> dict:
    """Standard pagination envelope."""
    return {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": max(1, (total + limit - 1) // limit),
        },
    }


# ── AI keys ─────────────────────────────────────────────────

def gemini_api_key(user_id: int) -> str:
    """The user's own Gemini key if set, else the server-wide key."""
    from db_stores import SettingsStoreDB
    return SettingsStoreDB(user_id).gemini_key or current_app.config.get("GOOGLE_API_KEY", "")
