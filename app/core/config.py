# app/core/config.py
# All application settings loaded from environment variables / .env file
# In production: values are injected into the container environment
# In development: loaded from .env file
#
# Required (startup fails fast when missing): DATABASE_URL, JWT_SECRET_KEY, GEMINI_API_KEY

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single source of truth for all AI Grader configuration.
    pydantic-settings automatically reads from environment variables.
    Variable names are case-insensitive.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_env: str = "development"
    app_name: str = "AI Grader"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # Database
    database_url: str
    auto_migrate_on_startup: bool = False

    # JWT
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 30

    # Gemini
    gemini_api_key: str
    gemini_model: str = "gemini-2.5-flash"
    gemini_temperature: float = 0.1

    # Storage (GCS when a bucket is set, local directory otherwise)
    gcs_exam_bucket: str = ""
    gcs_logo_bucket: str = ""
    storage_local_dir: str = "./storage"
    max_upload_bytes: int = 25 * 1024 * 1024

    # Email (Resend)
    resend_api_key: str = ""
    email_from: str = "AI Grader <onboarding@resend.dev>"

    # Credits
    default_monthly_credit_limit: int = 500
    refund_credits_on_failure: bool = True

    # Seeding
    superadmin_email: str = "superadmin@aigrader.app"
    superadmin_password: str = "ChangeMe@123"
    superadmin_name: str = "AI Grader Superadmin"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def cors_origins(self) -> List[str]:
        """Parse comma-separated ALLOWED_ORIGINS into a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Returns a cached Settings instance.
    Use as a FastAPI dependency: settings = Depends(get_settings)
    Or import directly:         from app.core.config import settings
    """
    return Settings()


# Module-level singleton -- import this directly in most places
settings = get_settings()
