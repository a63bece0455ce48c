"""Runtime configuration for the Oracle service."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "anthropic/claude-3.5-sonnet"
DEFAULT_DB_PATH = str(Path(__file__).resolve().parent / "data" / "oracle.sqlite")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ConfigurationError(RuntimeError):
    """Required configuration (e.g. the API credential) is missing or invalid."""


class OracleConfig(BaseModel):
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(1000, ge=1)
    quick_max_tokens: int = Field(200, ge=1)
    timeout: float = Field(30.0, gt=0)
    app_url: Optional[str] = None
    app_title: Optional[str] = None
    db_path: str = DEFAULT_DB_PATH
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "OracleConfig":
        """Build a config from the process environment (after loading .env)."""
        load_dotenv(env_file or os.path.join(os.path.dirname(__file__), "..", ".env"))

        values = {
            "api_key": _env("OPENROUTER_API_KEY"),
            "base_url": _env("ORACLE_BASE_URL"),
            "model": _env("ORACLE_MODEL"),
            "temperature": _env("ORACLE_TEMPERATURE"),
            "max_tokens": _env("ORACLE_MAX_TOKENS"),
            "quick_max_tokens": _env("ORACLE_QUICK_MAX_TOKENS"),
            "timeout": _env("ORACLE_TIMEOUT"),
            "app_url": _env("ORACLE_APP_URL"),
            "app_title": _env("ORACLE_APP_TITLE"),
            "db_path": _env("ORACLE_DB_PATH"),
            "log_level": _env("ORACLE_LOG_LEVEL"),
        }
        # unset keys fall back to the field defaults
        return cls(**{k: v for k, v in values.items() if v is not None})

    def require_api_key(self) -> str:
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError(
                "OPENROUTER_API_KEY is not set. Provide the completion API key via the environment or OracleConfig."
            )
        return self.api_key.strip()


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
