# backend/config.py

"""Runtime configuration resolved from environment variables."""

from __future__ import annotations

import os
from typing import List

from pydantic import BaseModel, Field

DEFAULT_MODEL = "gpt-5.2-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_ORIGINS = "http://localhost:5173"


class Settings(BaseModel):
    openai_api_key: str = Field(default="")
    openai_model: str = Field(default=DEFAULT_MODEL)
    openai_base_url: str = Field(default=DEFAULT_BASE_URL)
    openai_timeout: float = Field(default=30.0, gt=0)
    frontend_url: str = Field(default="")
    allowed_origins: List[str] = Field(default_factory=lambda: [DEFAULT_ORIGINS])
    sentry_dsn: str = Field(default="")
    log_level: str = Field(default="INFO")

    @property
    def configured(self) -> bool:
        return bool(self.openai_api_key.strip())

    @property
    def cors_origins(self) -> List[str]:
        origins = list(self.allowed_origins)
        if self.frontend_url:
            base = self.frontend_url.rstrip("/")
            for origin in (base, base.replace("www.", "")):
                if origin not in origins:
                    origins.append(origin)
        return origins

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the process environment."""
        origins = os.getenv("ALLOWED_ORIGINS", DEFAULT_ORIGINS)
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_model=os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
            openai_base_url=os.getenv("OPENAI_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            openai_timeout=float(os.getenv("OPENAI_TIMEOUT_SECONDS", "30")),
            frontend_url=os.getenv("FRONTEND_URL", ""),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
            sentry_dsn=os.getenv("SENTRY_DSN", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, reading the environment on first access."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
