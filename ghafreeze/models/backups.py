"""Backup snapshot model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BackupSnapshot(BaseModel):
    """A ``.backup-<timestamp>`` directory holding pre-mutation workflow copies."""

    model_config = ConfigDict(frozen=True)

    path: str
    timestamp: str
    file_count: int
