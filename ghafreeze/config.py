"""Runtime configuration — env-driven.

Centralized config using pydantic-settings. Reads from a .env file and
GHA_FREEZE_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class FreezeConfig(BaseSettings):
    """gha-freeze configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export GHA_FREEZE_WORKFLOW_DIR=ci/workflows
        export GHA_FREEZE_LOG_LEVEL=DEBUG
        export GHA_FREEZE_API_URL=https://github.example.com/api/v3
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GHA_FREEZE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "WARNING"

    # Workflow layout
    workflow_dir: Path = Path(".github/workflows")
    backup_prefix: str = ".backup-"
    workflow_extensions: tuple[str, ...] = (".yml", ".yaml")

    # GitHub API
    api_url: str = "https://api.github.com"
    request_timeout: float = 30.0
    user_agent: str = "gha-freeze"

    # Persisted credential
    token_path: Path = Path("~/.config/gha-freeze/token")

    @property
    def resolved_token_path(self) -> Path:
        """Token file path with ``~`` expanded."""
        return self.token_path.expanduser()


# Module-level singleton: import as `from ghafreeze.config import config`
config = FreezeConfig()
