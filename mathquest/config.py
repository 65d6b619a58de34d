"""Runtime configuration read from the environment or a ``.env`` file."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from mathquest.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from mathquest.constants.quiz_constants import SESSION_TTL_SECONDS, SWEEP_INTERVAL_SECONDS


class Settings(BaseSettings):
    """Server settings; every field maps to a ``MATHQUEST_*`` variable."""

    model_config = SettingsConfigDict(env_prefix="MATHQUEST_", env_file=".env", extra="ignore")

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    session_ttl_seconds: float = SESSION_TTL_SECONDS
    sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS
    # Unset keeps score records in memory only.
    data_dir: Path | None = None
    parent_username: str | None = None
    parent_password: str | None = None


def load_settings() -> Settings:
    return Settings()
