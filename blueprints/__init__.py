"""
Blueprint registration for the study planner API.

All blueprints are registered without URL prefixes; each route spells out
its full /api/... path.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.core import bp as core_bp
    from blueprints.sessions import bp as sessions_bp
    from blueprints.schedules import bp as schedules_bp
    from blueprints.progress import bp as progress_bp
    from blueprints.profile import bp as profile_bp
    from blueprints.reminders import bp as reminders_bp
    from blueprints.admin import bp as admin_bp

    app.register_blueprint(core_bp)
    app.register_blueprint(sessions_bp)
    app.register_blueprint(schedules_bp)
    app.register_blueprint(progress_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(reminders_bp)
    app.register_blueprint(admin_bp)
