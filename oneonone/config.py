"""
Configuration management for the One-on-One meeting service
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "One-on-One Meetings"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    APP_BASE_URL: str = "http://localhost:3000"

    # Database
    DATABASE_URL: str = "sqlite:///./oneonone.db"

    # Security
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # First administrator, created at startup when both are set
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""
    ADMIN_NAME: str = "Administrator"

    # Cron / in-process scheduler
    CRON_SECRET: str = ""
    SCHEDULER_ENABLED: bool = False
    SCHEDULER_INTERVAL_MIN: int = 60

    # Scheduling rules
    DEFAULT_TIMEZONE: str = "UTC"
    CONFLICT_WINDOW_MINUTES: int = 29
    MEETING_DURATION_MINUTES: int = 30
    ENABLE_EMAIL_REMINDERS: bool = True

    # Email (SMTP)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    EMAIL_FROM_ADDRESS: str = ""

    # Calendar (Google Calendar API)
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""

    # Claude API (transcript analysis)
    ANTHROPIC_API_KEY: str = ""
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"
    CLAUDE_MAX_TOKENS: int = 4096

    # OpenAI Whisper (transcription)
    OPENAI_API_KEY: str = ""
    WHISPER_MODEL: str = "whisper-1"

    # Recordings
    RECORDINGS_DIR: str = "uploads/recordings"
    MAX_RECORDING_SIZE_MB: int = 200

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
