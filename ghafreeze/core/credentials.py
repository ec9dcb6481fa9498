"""GitHub token lookup and persistence.

Precedence is a pure function of its inputs: explicit value, then the
``GITHUB_TOKEN`` and ``GHA_FREEZE_TOKEN`` environment variables, then the
persisted token file. Nothing in the pipeline reads the environment
directly; it receives a CredentialSource instead.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from ghafreeze.errors import FileIOError

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS: tuple[str, ...] = ("GITHUB_TOKEN", "GHA_FREEZE_TOKEN")


def select_token(
    explicit: str | None,
    environ: Mapping[str, str],
    stored: str | None,
) -> str | None:
    """Return the first non-empty token by precedence, or None."""
    if explicit and explicit.strip():
        return explicit.strip()
    for name in TOKEN_ENV_VARS:
        value = environ.get(name, "").strip()
        if value:
            return value
    if stored and stored.strip():
        return stored.strip()
    return None


def load_token(token_path: Path) -> str | None:
    """Read the persisted token, or None if no token has been saved."""
    try:
        return token_path.read_text(encoding="utf-8").strip() or None
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise FileIOError(f"failed to read token file {token_path}: {exc}") from exc


def save_token(token_path: Path, token: str) -> Path:
    """Persist ``token`` with owner-only permissions."""
    try:
        token_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        token_path.write_text(token.strip(), encoding="utf-8")
        os.chmod(token_path, 0o600)
    except OSError as exc:
        raise FileIOError(f"failed to save token to {token_path}: {exc}") from exc
    logger.info("Saved token to %s", token_path)
    return token_path


class CredentialSource(BaseModel):
    """Everything needed to decide which token a session starts with."""

    model_config = ConfigDict(frozen=True)

    explicit: str | None = None
    environ: dict[str, str] = {}
    token_path: Path | None = None

    @classmethod
    def from_environment(
        cls, explicit: str | None = None, token_path: Path | None = None
    ) -> CredentialSource:
        env = {name: os.environ[name] for name in TOKEN_ENV_VARS if name in os.environ}
        return cls(explicit=explicit, environ=env, token_path=token_path)

    def token(self) -> str | None:
        stored = load_token(self.token_path) if self.token_path else None
        return select_token(self.explicit, self.environ, stored)
