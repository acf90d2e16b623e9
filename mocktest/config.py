"""
Application configuration settings.
"""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Mock Test Learning Platform"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = False

    # API
    API_PREFIX: str = "/api"

    # Database
    DATABASE_URL: str = "sqlite:///./mocktest.db"
    DATABASE_ECHO: bool = False

    # Sessions (cookie signed by SessionMiddleware)
    SECRET_KEY: str = Field(
        default="CHANGE_ME_TO_A_RANDOM_SECRET",
        description="Signing key for the session cookie",
    )
    SESSION_COOKIE: str = "mocktest_session"
    SESSION_MAX_AGE: int = 14 * 24 * 60 * 60  # seconds

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["text", "json"] = "text"

    # Seed a few courses/tests on startup when the database is empty
    SEED_SAMPLE_DATA: bool = True

    # Strip correctOption/explanation from the question payload served
    # before an attempt exists. Scores are then computed by the server.
    HIDE_ANSWER_KEY: bool = False

    # Content validation
    MIN_OPTIONS: int = 2
    MAX_OPTIONS: int = 6
    TEXT_MAX_LENGTH: int = 5000
    TITLE_MAX_LENGTH: int = 200

    # Quiz session client defaults
    QUIZ_TICK_SECONDS: float = 1.0
    QUIZ_MAX_SUBMIT_ATTEMPTS: int = 3
    QUIZ_HTTP_TIMEOUT: float = 10.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_option_bounds(self) -> "Settings":
        if self.MIN_OPTIONS < 2 or self.MAX_OPTIONS < self.MIN_OPTIONS:
            raise ValueError(
                f"Invalid option bounds: MIN_OPTIONS={self.MIN_OPTIONS}, "
                f"MAX_OPTIONS={self.MAX_OPTIONS}"
            )
        if self.QUIZ_MAX_SUBMIT_ATTEMPTS < 1:
            raise ValueError("QUIZ_MAX_SUBMIT_ATTEMPTS must be at least 1")
        return self


settings = Settings()
