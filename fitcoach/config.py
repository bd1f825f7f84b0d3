"""
Runtime configuration loaded from the environment (.env supported).
"""
import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


class Settings:
    """Explicit settings object handed to the services that need it."""

    def __init__(
        self,
        gemini_api_key: Optional[str] = None,
        gemini_model: str = "gemini-2.5-flash",
        generation_timeout_seconds: float = 20.0,
        generation_temperature: float = 0.7,
        database_url: str = "sqlite:///./fitcoach.db",
        cors_origins: Optional[List[str]] = None,
        log_level: str = "INFO",
        max_nutrition_days: int = 30,
    ):
        self.gemini_api_key = gemini_api_key
        self.gemini_model = gemini_model
        self.generation_timeout_seconds = generation_timeout_seconds
        self.generation_temperature = generation_temperature
        self.database_url = database_url
        self.cors_origins = cors_origins or ["*"]
        self.log_level = log_level
        self.max_nutrition_days = max_nutrition_days

    @property
    def generation_configured(self) -> bool:
        return bool(self.gemini_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, reading .env first."""
        load_dotenv()

        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            generation_timeout_seconds=float(os.getenv("GENERATION_TIMEOUT_SECONDS", "20")),
            generation_temperature=float(os.getenv("GENERATION_TEMPERATURE", "0.7")),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./fitcoach.db"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            max_nutrition_days=int(os.getenv("MAX_NUTRITION_DAYS", "30")),
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
