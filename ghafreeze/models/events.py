"""Session events and background tasks exchanged with the orchestrator.

Two kinds of events drive a session:

- *intents* come from the user (select files, confirm, supply a token ...)
- *outcomes* are produced by exactly one background task each

A ``Task`` names a unit of side-effecting work the orchestrator wants
run. The caller runs it (``PinningOrchestrator.run_task``) and feeds the
resulting outcome event back in.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from ghafreeze.models.actions import ActionReference, Replacement, ResolutionFailure
from ghafreeze.models.backups import BackupSnapshot


class TaskKind(str, Enum):
    SCAN_DIRECTORY = "scan_directory"
    PARSE_FILES = "parse_files"
    RESOLVE_ACTIONS = "resolve_actions"
    APPLY_REPLACEMENTS = "apply_replacements"
    LIST_BACKUPS = "list_backups"
    RESTORE_BACKUP = "restore_backup"
    DELETE_BACKUP = "delete_backup"


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: TaskKind
    target: str | None = None  # backup path for restore/delete


class SessionEvent(BaseModel):
    """Base for all events. Outcomes carry ``error`` on failure."""

    model_config = ConfigDict(frozen=True)

    error: str | None = None
    error_type: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


# ---------------------------------------------------------------------------
# User intents
# ---------------------------------------------------------------------------


class Start(SessionEvent):
    pass


class SelectFiles(SessionEvent):
    files: list[str] = []  # empty means "all files"


class Confirm(SessionEvent):
    pass


class SupplyToken(SessionEvent):
    token: str


class RequestBackups(SessionEvent):
    pass


class ChooseBackup(SessionEvent):
    path: str


class CloseBackups(SessionEvent):
    pass


class DeleteSessionBackup(SessionEvent):
    pass


# ---------------------------------------------------------------------------
# Task outcomes
# ---------------------------------------------------------------------------


class ScanComplete(SessionEvent):
    files: list[str] = []


class FilesParsed(SessionEvent):
    actions: list[ActionReference] = []


class ResolutionComplete(SessionEvent):
    replacements: list[Replacement] = []
    failures: list[ResolutionFailure] = []


class RateLimited(SessionEvent):
    pass


class WriteComplete(SessionEvent):
    backup_path: str | None = None
    files_written: int = 0


class BackupListComplete(SessionEvent):
    backups: list[BackupSnapshot] = []


class RestoreComplete(SessionEvent):
    path: str | None = None


class BackupDeleted(SessionEvent):
    path: str | None = None
