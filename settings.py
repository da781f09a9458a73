# settings.py
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    # model & credentials
    MODEL_NAME: str = os.getenv("GEMINI_MODEL_NAME", "gemini-1.5-flash-001")
    API_KEY: Optional[str] = os.getenv("GOOGLE_GENAI_API_KEY") or None
    PROJECT_ID: Optional[str] = os.getenv("GOOGLE_CLOUD_PROJECT") or None
    REGION: Optional[str] = os.getenv("GOOGLE_CLOUD_REGION") or None
    # server
    PORT: int = int(os.getenv("PORT") or "8080")
    CORS_ALLOW_ORIGINS: str = os.getenv("CORS_ALLOW_ORIGINS", "*")
    STATIC_DIR: str = os.getenv("STATIC_DIR", "web/static")
    # logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info")
    DO_DEBUG: bool = bool(os.getenv("DO_DEBUG"))

    @property
    def cors_origins(self) -> list:
        return [o.strip() for o in self.CORS_ALLOW_ORIGINS.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
