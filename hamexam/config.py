"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str

    # Gemini API
    GEMINI_API_KEY: str
    GEMINI_MODEL: str = "gemini-2.0-flash"

    # Redis (empty string disables caching)
    REDIS_URL: str = "redis://redis:6379/0"

    # Application
    APP_NAME: str = "Ham Radio Exam Practice"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Auth
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    ADMIN_EMAILS: List[str] = []

    # Rate Limiting (fixed window)
    RATE_LIMIT_REQUESTS: int = 120
    RATE_LIMIT_WINDOW_MS: int = 60_000
    AI_RATE_LIMIT_REQUESTS: int = 10  # per window, per user
    TRUST_PROXY_HEADERS: bool = False  # key on X-Forwarded-For

    # Practice & gamification
    DEFAULT_DAILY_PRACTICE_TARGET: int = 10
    DEFAULT_AI_QUOTA_LIMIT: Optional[int] = None
    GRADER_STRICT_MAPPING: bool = False
    DEFAULT_EXAM_PASS_SCORE: int = 60
    LEADERBOARD_CACHE_TTL: int = 60  # seconds

    # Question library archive
    LIBRARY_FILE_DIR: str = "/tmp/hamexam-libraries"

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
