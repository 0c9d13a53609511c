"""
Application configuration loaded from environment variables / .env file.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # ── App ──
    APP_NAME: str = "DocInsight API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Database ──
    DATABASE_URL: str = "sqlite:///./docinsight.db"
    AUTO_CREATE_TABLES: bool = True  # local dev only; use alembic elsewhere

    # ── Supabase Storage ──
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""
    SUPABASE_BUCKET: str = "documents"

    # ── JWT / Auth (tokens are minted by the auth service) ──
    SECRET_KEY: str = "docinsight-secret-key-change-in-production"
    ALGORITHM: str = "HS256"

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # ── Analyzer ──
    ANALYZER_URL: str = "http://localhost:8100"
    ANALYZER_API_KEY: str = ""
    ANALYZER_CALLBACK_URL: str = "http://localhost:8000/api/analysis/callback"
    ANALYZER_CALLBACK_TOKEN: str = ""
    ANALYZER_TIMEOUT_SECONDS: float = 10.0
    ANALYSIS_TIMEOUT_SECONDS: int = 15 * 60
    TIMEOUT_SWEEP_INTERVAL_SECONDS: int = 60
    MAX_ANALYSIS_RETRIES: int = 3

    # ── Billing ──
    BILLING_WEBHOOK_SECRET: str = ""
    DEFAULT_PLAN: str = "free"

    # ── Insights ──
    INSIGHTS_ACTIVITY_DAYS: int = 30

    # ── Rate Limiting ──
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_UPLOAD: str = "20/minute"
    RATE_LIMIT_RETRY: str = "10/minute"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"          # ignore unknown vars in .env


settings = Settings()

# ── Security: reject the default placeholder secret in production ──
_DEFAULT_SECRET = "docinsight-secret-key-change-in-production"
if settings.SECRET_KEY == _DEFAULT_SECRET and not settings.DEBUG:
    import warnings
    warnings.warn(
        "\n⚠  SECRET_KEY is set to the insecure default!\n"
        "   Set the SECRET_KEY shared with the auth service in your .env file.\n",
        stacklevel=1,
    )
