"""
Application configuration — environment-aware settings.

All environment variables are documented here. A local ``.env`` file is
loaded on import for development.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent

load_dotenv(BASE_DIR / ".env")


class BaseConfig:
    # Core Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    DATABASE = os.environ.get("DATABASE_URL", str(BASE_DIR / "study_planner.db"))
    WTF_CSRF_ENABLED = True

    # Session security
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = 86400
    REMEMBER_COOKIE_DURATION = 86400

    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1 MB of JSON is plenty

    # AI schedule service (a per-user key in settings overrides this one)
    GOOGLE_API_KEY = os.environ.get("GOOGLE_API_KEY", "")
    GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-1.5-flash")
    AI_FAILURE_THRESHOLD = int(os.environ.get("AI_FAILURE_THRESHOLD", "3"))
    AI_RECOVERY_SECONDS = int(os.environ.get("AI_RECOVERY_SECONDS", "60"))

    # Planner defaults
    DEFAULT_DAILY_GOAL = int(os.environ.get("DEFAULT_DAILY_GOAL", "4"))
    HEATMAP_DAYS = int(os.environ.get("HEATMAP_DAYS", "91"))

    # Seeded admin account (skipped when ADMIN_PASSWORD is empty)
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@studyai.com")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "")

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Response compression
    COMPRESS_MIMETYPES = ["application/json"]
    COMPRESS_MIN_SIZE = 500

    # Rate limiting (in-memory per process unless a shared storage URI is given)
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin123")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.SECRET_KEY in ("dev-key-change-in-production", ""):
            errors.append("SECRET_KEY must be set to a secure value in production.")

        if cls.ADMIN_PASSWORD in ("admin123",):
            errors.append("ADMIN_PASSWORD must not use the development default.")

        if not cls.GOOGLE_API_KEY:
            warnings.warn("GOOGLE_API_KEY is not set — schedules fall back to the rule-based planner.")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    ADMIN_PASSWORD = ""


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
