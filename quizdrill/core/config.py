"""
Application configuration management with environment-based settings.
"""
from functools import lru_cache
from typing import Annotated, List

from pydantic import Field, validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Main application settings."""

    # ============= Application Settings =============
    APP_NAME: str = "quizdrill"
    APP_VERSION: str = "v0.3.0"
    ENVIRONMENT: str = Field(default="development")
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["*"]  # comma-separated in env

    # ============= Storage Settings =============
    DATABASE_URL: str = Field(default="sqlite:///./quizdrill.db")
    QUESTIONS_SHEET: str = "Questions"
    RESPONSES_SHEET: str = "Responses"

    # ============= Cache / Lock Settings =============
    CACHE_BACKEND: str = "memory"  # memory or redis
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    LOCK_NAME: str = "quizdrill:responses:append"
    LOCK_WAIT_MS: int = 5000
    LOCK_TIMEOUT_MS: int = 30000  # redis lock auto-release

    # ============= Dedup Settings =============
    DEDUP_WINDOW_MS: int = 5000
    DEDUP_SCAN_ROWS: int = 200
    DEDUP_CACHE_TTL_MS: int = 2000

    # ============= Delivery Settings =============
    USER_ALLOW_LIST: str = ""  # newline-delimited; empty allows everyone
    TIME_ZONE: str = "Asia/Tokyo"
    DEFAULT_LIMIT: int = 5
    MAX_LIMIT: int = 50
    OVERLAY_COLS: int = 16
    OVERLAY_ROWS: int = 15

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @validator("CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
