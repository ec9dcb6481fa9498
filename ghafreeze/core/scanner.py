"""Workflow discovery — finds workflow definitions under the workflow directory.

Snapshot directories (``.backup-*``) live alongside the live workflows and
are pruned from the walk so that backups are never pinned themselves.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from ghafreeze.errors import FileIOError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = (".yml", ".yaml")
DEFAULT_BACKUP_PREFIX = ".backup-"


def has_workflow_extension(
    name: str, extensions: Iterable[str] = DEFAULT_EXTENSIONS
) -> bool:
    """Return True if ``name`` ends with one of the workflow extensions."""
    return os.path.splitext(name)[1] in tuple(extensions)


def find_workflow_files(
    workflow_dir: Path | str,
    *,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    backup_prefix: str = DEFAULT_BACKUP_PREFIX,
) -> list[str]:
    """Return every workflow file under ``workflow_dir``, sorted.

    Subdirectories are walked, except those whose name starts with
    ``backup_prefix``. Raises NotFoundError if the directory is missing.
    """
    root = Path(workflow_dir)
    if not root.is_dir():
        raise NotFoundError(f"workflows directory not found: {root}")

    extensions = tuple(extensions)
    found: list[str] = []

    def _on_error(exc: OSError) -> None:
        raise FileIOError(f"failed to scan workflows directory: {exc}") from exc

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        # Prune in place so os.walk does not descend into snapshots
        dirnames[:] = sorted(d for d in dirnames if not d.startswith(backup_prefix))
        for name in sorted(filenames):
            if has_workflow_extension(name, extensions):
                found.append(str(Path(dirpath) / name))

    logger.debug("Found %d workflow file(s) under %s", len(found), root)
    return sorted(found)
