"""
Test fixtures for the study planner.

Provides app, client, auth_client, admin_client and db fixtures with
file-based SQLite. Gemini is mocked globally to avoid API calls during tests.
"""

from __future__ import annotations

import pytest
from unittest.mock import patch, MagicMock
from datetime import datetime

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture(scope="session", autouse=True)
def mock_gemini():
    """Mock Google Generative AI globally to prevent API calls."""
    mock_genai = MagicMock()
    with patch.dict("sys.modules", {
        "google.generativeai": mock_genai,
    }):
        yield mock_genai


@pytest.fixture(autouse=True)
def reset_circuit_breaker():
    from ai_resilience import get_circuit_breaker
    get_circuit_breaker().reset()
    yield
    get_circuit_breaker().reset()


@pytest.fixture
def app(tmp_path):
    """Create app with file-based SQLite for testing."""
    from app import create_app

    db_file = str(tmp_path / "test.db")
    app = create_app({
        "TESTING": True,
        "DATABASE": db_file,
        "SECRET_KEY": "test-secret-key",
        "WTF_CSRF_ENABLED": False,
        "GOOGLE_API_KEY": "",
    })

    with app.app_context():
        from database import init_db, run_migrations, get_db

        init_db()
        run_migrations()

        # Seed test user
        db = get_db()
        db.execute(
            "INSERT INTO users (id, name, email, password_hash, daily_goal, study_style, created_at) "
            "VALUES (1, 'Test Student', 'test@example.com', ?, 2, 'pomodoro', ?)",
            ("pbkdf2:sha256:600000$test$hash", datetime.now().isoformat()),
        )
        db.execute("INSERT INTO user_subjects (user_id, name, position) VALUES (1, 'Math', 0)")
        db.execute("INSERT INTO user_subjects (user_id, name, position) VALUES (1, 'Physics', 1)")
        db.execute("INSERT OR IGNORE INTO settings (user_id) VALUES (1)")
        db.commit()

        yield app


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def auth_client(app):
    """Authenticated test client (logged in as test user)."""
    from werkzeug.security import generate_password_hash
    from database import get_db

    with app.app_context():
        db = get_db()
        db.execute(
            "UPDATE users SET password_hash = ? WHERE id = 1",
            (generate_password_hash("Testpass123"),),
        )
        db.commit()

    client = app.test_client()
    with client:
        client.post("/api/auth/login", json={
            "email": "test@example.com",
            "password": "Testpass123",
        })
        yield client


@pytest.fixture
def admin_client(app):
    """Authenticated test client logged in as an admin."""
    from werkzeug.security import generate_password_hash
    from database import get_db

    with app.app_context():
        db = get_db()
        db.execute(
            "INSERT INTO users (id, name, email, password_hash, role, created_at) "
            "VALUES (2, 'Admin', 'admin@test.com', ?, 'admin', '2026-01-01')",
            (generate_password_hash("AdminPass1"),),
        )
        db.commit()

    client = app.test_client()
    with client:
        client.post("/api/auth/login", json={
            "email": "admin@test.com",
            "password": "AdminPass1",
        })
        yield client


@pytest.fixture
def db(app):
    """Direct database access for store tests."""
    with app.app_context():
        from database import get_db
        yield get_db()
