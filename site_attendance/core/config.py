"""
Centralised application settings loaded from environment / .env file.

Uses pydantic-settings so every value can be overridden via env vars
or the .env file at the project root.
"""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Project ──────────────────────────────────────────────────────
    PROJECT_NAME: str = "Site Attendance"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # ── Database (aiosqlite by default, asyncpg for PostgreSQL) ──────
    DATABASE_URL: str = "sqlite+aiosqlite:///./site_attendance.db"

    # ── JWT ──────────────────────────────────────────────────────────
    SECRET_KEY: str = "CHANGE-ME-TO-A-RANDOM-64-CHAR-HEX-STRING-IN-PRODUCTION"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 12 * 60

    # ── Rate limiting ────────────────────────────────────────────────
    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: str = "5/minute"

    # ── CORS ─────────────────────────────────────────────────────────
    CORS_ORIGINS: list[str] = [
        "http://localhost",
        "http://localhost:8080",
        "http://127.0.0.1",
        "http://127.0.0.1:8080",
    ]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v: object) -> list[str]:
        if isinstance(v, str) and not v.lstrip().startswith("["):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v  # type: ignore[return-value]

    # ── Logging ──────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    # ── Attendance listings ─────────────────────────────────────────
    APPROVED_PAGE_SIZE: int = 20
    RECENT_PAGE_SIZE: int = 10

    # ── Accounts ─────────────────────────────────────────────────────
    MIN_PASSWORD_LENGTH: int = 4

    # ── Seeding (first startup) ─────────────────────────────────────
    FIRST_ADMIN_USERNAME: str = "admin"
    FIRST_ADMIN_PASSWORD: str = "changeme123"
    FIRST_ADMIN_NAME: str = "System Administrator"
    SEED_DEMO_DATA: bool = False
    DEMO_PASSWORD: str = "demo123"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()

if settings.SECRET_KEY == "CHANGE-ME-TO-A-RANDOM-64-CHAR-HEX-STRING-IN-PRODUCTION":
    import logging

    logging.getLogger("site_attendance.core.config").warning(
        "WARNING: You are running with the default INSECURE Secret Key! "
        "Update the SECRET_KEY in your .env file immediately."
    )
