"""Tests for database.py — schema creation, migrations, foreign keys, admin seeding."""

from database import MIGRATIONS, get_db, init_db, run_migrations, seed_admin


class TestSchema:
    """Verify all tables are created correctly."""

    def test_tables_exist(self, app):
        with app.app_context():
            db = get_db()
            tables = [r["name"] for r in db.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ).fetchall()]
            expected = [
                "audit_log", "exams", "reminders", "schedules", "schema_version",
                "settings", "study_sessions", "user_subjects", "users",
            ]
            for t in expected:
                assert t in tables, f"Table {t} not found"

    def test_wal_mode(self, app):
        with app.app_context():
            mode = get_db().execute("PRAGMA journal_mode").fetchone()[0]
            assert mode == "wal"

    def test_foreign_keys_enabled(self, app):
        with app.app_context():
            assert get_db().execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_seed_user_exists(self, db):
        row = db.execute("SELECT * FROM users WHERE id=1").fetchone()
        assert row is not None
        assert row["name"] == "Test Student"
        assert row["role"] == "user"

    def test_foreign_key_cascade(self, app):
        """Deleting a user should cascade to related tables."""
        with app.app_context():
            db = get_db()
            db.execute(
                "INSERT INTO study_sessions (user_id, subject, duration, completed, date) "
                "VALUES (1, 'Math', 30, 1, '2026-03-10')"
            )
            db.execute("INSERT INTO schedules (user_id, week_json) VALUES (1, '[]')")
            db.commit()
            db.execute("DELETE FROM users WHERE id=1")
            db.commit()
            for table in ("study_sessions", "schedules", "user_subjects", "settings"):
                count = db.execute(f"SELECT COUNT(*) FROM {table} WHERE user_id=1").fetchone()[0]
                assert count == 0, f"{table} rows not cascaded"


class TestMigrations:
    def test_all_versions_recorded(self, app):
        with app.app_context():
            versions = {r["version"] for r in get_db().execute("SELECT version FROM schema_version")}
            assert versions == {1} | {v for v, _ in MIGRATIONS}

    def test_idempotent(self, app):
        with app.app_context():
            init_db()
            run_migrations()
            rows = get_db().execute("SELECT version FROM schema_version").fetchall()
            assert len(rows) == 1 + len(MIGRATIONS)

    def test_fallback_reason_column(self, app):
        with app.app_context():
            cols = [r["name"] for r in get_db().execute("PRAGMA table_info(schedules)").fetchall()]
            assert "fallback_reason" in cols


class TestSeedAdmin:
    def test_skipped_without_password(self, app):
        with app.app_context():
            seed_admin()
            assert get_db().execute("SELECT 1 FROM users WHERE role='admin'").fetchone() is None

    def test_creates_admin_once(self, app):
        app.config["ADMIN_PASSWORD"] = "AdminPass1"
        with app.app_context():
            seed_admin()
            seed_admin()
            rows = get_db().execute("SELECT email FROM users WHERE role='admin'").fetchall()
            assert [r["email"] for r in rows] == ["admin@studyai.com"]
