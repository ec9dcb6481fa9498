"""Backup snapshots of workflow files.

Layout: {workflow_dir}/.backup-YYYYMMDD-HHMMSS[-N]/{basename}

A snapshot is created right before any workflow file is rewritten.
Files are copied flatly by base name. A snapshot is valid only if it
holds at least one workflow-extension file; invalid snapshots are left
out of listings and refused by restore.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path

from ghafreeze.core.scanner import (
    DEFAULT_BACKUP_PREFIX,
    DEFAULT_EXTENSIONS,
    has_workflow_extension,
)
from ghafreeze.errors import FileIOError, NotFoundError, ValidationError
from ghafreeze.models.backups import BackupSnapshot

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


class BackupManager:
    """Creates, lists, validates, restores and deletes workflow snapshots.

    Parameters
    ----------
    workflow_dir:
        The live workflow directory. Snapshots are created inside it.
    clock:
        Returns the current local time. Injected for deterministic tests.
    """

    def __init__(
        self,
        workflow_dir: Path | str,
        *,
        prefix: str = DEFAULT_BACKUP_PREFIX,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._workflow_dir = Path(workflow_dir)
        self._prefix = prefix
        self._extensions = tuple(extensions)
        self._clock = clock

    @property
    def workflow_dir(self) -> Path:
        return self._workflow_dir

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _new_snapshot_dir(self) -> Path:
        """Pick an unused snapshot directory name for the current time."""
        stamp = self._clock().strftime(TIMESTAMP_FORMAT)
        candidate = self._workflow_dir / f"{self._prefix}{stamp}"
        counter = 1
        while candidate.exists():
            counter += 1
            candidate = self._workflow_dir / f"{self._prefix}{stamp}-{counter}"
        return candidate

    def create_backup(self, files: Iterable[Path | str]) -> Path:
        """Copy ``files`` into a new snapshot directory and return its path.

        Raises FileIOError on any copy failure. Files copied before the
        failure are not removed.
        """
        backup_dir = self._new_snapshot_dir()
        try:
            backup_dir.mkdir(parents=True)
        except OSError as exc:
            raise FileIOError(f"failed to create backup directory {backup_dir}: {exc}") from exc

        copied = 0
        for file in files:
            src = Path(file)
            try:
                shutil.copy2(src, backup_dir / src.name)
            except OSError as exc:
                raise FileIOError(f"failed to backup {src}: {exc}") from exc
            copied += 1

        logger.info("Backed up %d file(s) to %s", copied, backup_dir)
        return backup_dir

    # ------------------------------------------------------------------
    # Inspect
    # ------------------------------------------------------------------

    def _snapshot_files(self, backup_dir: Path) -> list[Path]:
        return sorted(
            entry
            for entry in backup_dir.iterdir()
            if entry.is_file() and has_workflow_extension(entry.name, self._extensions)
        )

    def validate_backup(self, backup_path: Path | str) -> BackupSnapshot:
        """Return snapshot metadata, or raise if ``backup_path`` is not a valid snapshot."""
        if not backup_path:
            raise ValidationError("no backup path provided")

        backup_dir = Path(backup_path)
        if not backup_dir.is_dir():
            raise NotFoundError(f"backup not found: {backup_dir}")
        if not backup_dir.name.startswith(self._prefix):
            raise ValidationError(f"not a backup snapshot: {backup_dir}")

        try:
            files = self._snapshot_files(backup_dir)
        except OSError as exc:
            raise FileIOError(f"failed to read backup directory {backup_dir}: {exc}") from exc

        if not files:
            raise ValidationError(f"no workflow files found in backup {backup_dir}")

        return BackupSnapshot(
            path=str(backup_dir),
            timestamp=backup_dir.name[len(self._prefix):],
            file_count=len(files),
        )

    def list_backups(self) -> list[BackupSnapshot]:
        """Return all valid snapshots, newest first. Invalid ones are skipped."""
        try:
            entries = list(self._workflow_dir.iterdir())
        except FileNotFoundError as exc:
            raise NotFoundError(f"workflows directory not found: {self._workflow_dir}") from exc
        except OSError as exc:
            raise FileIOError(f"failed to read workflows directory: {exc}") from exc

        snapshots: list[BackupSnapshot] = []
        for entry in sorted(entries, key=lambda p: p.name, reverse=True):
            if not (entry.is_dir() and entry.name.startswith(self._prefix)):
                continue
            try:
                snapshots.append(self.validate_backup(entry))
            except (ValidationError, NotFoundError, FileIOError) as exc:
                logger.debug("Skipping invalid backup %s: %s", entry, exc)
        return snapshots

    # ------------------------------------------------------------------
    # Restore and delete
    # ------------------------------------------------------------------

    def restore_backup(self, backup_path: Path | str) -> list[Path]:
        """Copy every workflow file in the snapshot back into the workflow directory.

        Existing files with the same base name are overwritten. Returns the
        restored destination paths.
        """
        try:
            self.validate_backup(backup_path)
        except ValidationError as exc:
            raise ValidationError(f"invalid backup: {exc}") from exc

        restored: list[Path] = []
        for src in self._snapshot_files(Path(backup_path)):
            dst = self._workflow_dir / src.name
            try:
                shutil.copy2(src, dst)
            except OSError as exc:
                raise FileIOError(f"failed to restore {src.name}: {exc}") from exc
            restored.append(dst)

        logger.info("Restored %d file(s) from %s", len(restored), backup_path)
        return restored

    def delete_backup(self, backup_path: Path | str) -> None:
        """Remove a snapshot directory tree."""
        if not backup_path:
            raise ValidationError("no backup path provided")

        backup_dir = Path(backup_path)
        if not backup_dir.is_dir():
            raise NotFoundError(f"backup not found: {backup_dir}")
        if not backup_dir.name.startswith(self._prefix):
            raise ValidationError(f"refusing to delete non-backup directory: {backup_dir}")

        try:
            shutil.rmtree(backup_dir)
        except OSError as exc:
            raise FileIOError(f"failed to delete backup directory {backup_dir}: {exc}") from exc

        logger.info("Deleted backup %s", backup_dir)
