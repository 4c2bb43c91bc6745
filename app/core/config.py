from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from the environment (and .env when present).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Waitlist Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    DATABASE_URL: str = "sqlite:///./waitlist.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    JWT_SECRET_KEY: str = Field(
        default="change-me-in-production-INSECURE",
        description="Signing key for principal bearer tokens - MUST be set in production"
    )
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    PUBLIC_BASE_URL: str = "https://velvet.app"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Ranking
    DEFAULT_PRIORITY_BOOST: int = 30
    LEADERBOARD_DEFAULT_LIMIT: int = 10
    LEADERBOARD_MAX_LIMIT: int = 100
    SIGNUP_LIST_MAX_LIMIT: int = 500

    # Outbound notifications
    WEBHOOK_TIMEOUT_SECONDS: float = 30.0
    AUTOMATION_CONNECT_TIMEOUT_SECONDS: float = 30.0
    AUTOMATION_READ_TIMEOUT_SECONDS: float = 90.0
    NOTIFY_MAX_WORKERS: int = 8

    # Public join rate limit, 0 disables it
    RATE_LIMIT_SIGNUPS_PER_MINUTE: int = 10
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None


settings = Settings()
