"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "sqlite:///./learning_engine.db"
    LOG_SQL: bool = False

    # Redis (shared rate limit store)
    REDIS_URL: str = "redis://redis:6379/0"

    # Application
    APP_NAME: str = "Learning Progress Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Auth
    JWT_SECRET: str = "change-me-in-production"
    JWT_EXPIRE_MINUTES: int = 60 * 24 * 7

    # Rate Limiting
    RATE_LIMIT_BACKEND: str = "memory"  # memory | redis
    RATE_LIMIT_PER_MINUTE: int = 120
    LOGIN_RATE_LIMIT: int = 5
    LOGIN_RATE_WINDOW_MINUTES: int = 15
    REGISTER_RATE_LIMIT: int = 3
    REGISTER_RATE_WINDOW_MINUTES: int = 60

    # Account lockout
    LOCKOUT_MAX_ATTEMPTS: int = 5
    LOCKOUT_WINDOW_MINUTES: int = 30
    LOCKOUT_DURATION_MINUTES: int = 30

    # Quiz Settings
    QUIZ_MAX_ATTEMPTS: int = 3
    DEFAULT_PASSING_SCORE: int = 60

    # Progress tracking
    VIDEO_COMPLETION_RATIO: float = 0.95
    MAX_EFFECTIVE_TIME_DELTA: int = 600  # seconds per report

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
