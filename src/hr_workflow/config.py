"""Configuration management for the workflow engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    host: str
    port: int
    debug: bool
    log_level: str
    create_schema: bool
    invitation_ttl_days: int
    min_password_length: int
    allow_backdated_leave: bool

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv(
                "DATABASE_URL",
                "sqlite+aiosqlite:///./hr_workflow.db",
            ),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=_env_bool("DEBUG", "false"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            create_schema=_env_bool("CREATE_SCHEMA", "true"),
            invitation_ttl_days=int(os.getenv("INVITATION_TTL_DAYS", "7")),
            min_password_length=int(os.getenv("MIN_PASSWORD_LENGTH", "8")),
            allow_backdated_leave=_env_bool("ALLOW_BACKDATED_LEAVE", "false"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
