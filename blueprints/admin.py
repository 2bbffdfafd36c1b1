"""Admin routes — platform-wide stats and the user list."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import login_required

from db_stores import admin_stats, list_users
from helpers import admin_required, paginate_args, paginated_response

bp = Blueprint("admin", __name__)


@bp.route("/api/admin/stats")
@login_required
@admin_required
def api_admin_stats():
    return jsonify(admin_stats())


@bp.route("/api/admin/users")
@login_required
@admin_required
def api_admin_users():
    page, limit = paginate_args()
    items, total = list_users(page, limit)
    return jsonify(paginated_response(items, total, page, limit))
