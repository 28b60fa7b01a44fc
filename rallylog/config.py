"""
RallyLog configuration — environment-driven settings for all modules.
"""

from enum import Enum
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for RallyLog."""

    # ── App ──────────────────────────────────────────────
    APP_NAME: str = "RallyLog"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    DEBUG: bool = True

    # ── API ──────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_PREFIX: str = "/api/v1"
    CORS_ORIGINS: list[str] = ["*"]

    # A completed match rejects new points with 409 when strict; otherwise the
    # request is logged and the unchanged scoreboard is returned.
    STRICT_PRECONDITIONS: bool = True

    # ── Database ─────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./rallylog.db"
    DATABASE_ECHO: bool = False

    # ── Logging ──────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

    # ── Match Defaults ───────────────────────────────────
    DEFAULT_NUMBER_OF_SETS: int = 3
    DEFAULT_GAMES_PER_SET: int = 6
    DEFAULT_AD_SCORING: bool = True
    DEFAULT_TIE_BREAK_TARGET: int = 7
    DEFAULT_SUPER_TIE_BREAK_TARGET: int = 10

    # ── Validation Harness ───────────────────────────────
    SIMULATION_MAX_POINTS: int = 2000
    SIMULATION_SEED: int = 42

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
