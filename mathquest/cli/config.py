"""Settings for the admin CLI, read from the environment or a ``.env`` file."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from mathquest.constants.network_constants import DEFAULT_API_URL


class CliConfig(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    api_url: str = DEFAULT_API_URL
    admin_username: str | None = None
    admin_password: str | None = None
    admin_token: str | None = None
    verbose: bool = False
    dry_run: bool = False

    def with_overrides(self, **overrides: object) -> "CliConfig":
        """Return a copy where every non-``None`` override replaces the configured value."""
        updates = {key: value for key, value in overrides.items() if value is not None}
        return self.model_copy(update=updates)
