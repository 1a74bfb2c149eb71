from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Base
    APP_ENV: str = "dev"  # dev | staging | prod | test
    APP_NAME: str = "PIXEL QUIZ API"
    APP_VERSION: str = "0.1.0"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Security (panneau admin protégé par un PIN statique)
    ADMIN_PIN: str = "2045"

    # Storage
    DATABASE_URL: str = "sqlite:///./quiz.db"

    # Sessions de quiz
    FEEDBACK_DELAY_SECONDS: float = 1.5
    REVIEW_ACK_DELAY_SECONDS: float = 0.5
    SESSION_TTL_SECONDS: int = 60 * 60  # 1h
    SWEEP_INTERVAL_SECONDS: float = 1.0

    # Leaderboard distant (optionnel)
    LEADERBOARD_WEBHOOK_URL: Optional[str] = None
    LEADERBOARD_TIMEOUT_SECONDS: float = 5.0

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
