"""Pinning session state machine models — phases and allowed transitions."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ghafreeze.models.actions import ActionReference, Replacement, ResolutionFailure
from ghafreeze.models.backups import BackupSnapshot


class Phase(str, Enum):
    """Every stage an interactive pinning session can be in."""

    LOADING = "loading"
    FILE_SELECTION = "file_selection"
    SCANNING = "scanning"
    ACTION_REVIEW = "action_review"
    RESOLVING = "resolving"
    CONFIRMING = "confirming"
    PROCESSING = "processing"
    COMPLETE = "complete"
    BACKUP_LIST = "backup_list"
    RESTORING = "restoring"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"


# Valid phase transitions, enforced by PinningOrchestrator.
# A linear pipeline, one re-entry (RATE_LIMITED -> ACTION_REVIEW) and one
# maintenance loop (COMPLETE -> BACKUP_LIST -> RESTORING -> COMPLETE).
# ERROR is terminal.
VALID_TRANSITIONS: dict[Phase, set[Phase]] = {
    Phase.LOADING: {Phase.FILE_SELECTION, Phase.ERROR},
    Phase.FILE_SELECTION: {Phase.SCANNING, Phase.ERROR},
    Phase.SCANNING: {Phase.ACTION_REVIEW, Phase.ERROR},
    Phase.ACTION_REVIEW: {Phase.RESOLVING, Phase.COMPLETE, Phase.ERROR},
    Phase.RESOLVING: {Phase.CONFIRMING, Phase.RATE_LIMITED, Phase.ERROR},
    Phase.RATE_LIMITED: {Phase.ACTION_REVIEW, Phase.ERROR},
    Phase.CONFIRMING: {Phase.PROCESSING, Phase.ERROR},
    Phase.PROCESSING: {Phase.COMPLETE, Phase.ERROR},
    Phase.COMPLETE: {Phase.BACKUP_LIST, Phase.ERROR},
    Phase.BACKUP_LIST: {Phase.RESTORING, Phase.COMPLETE, Phase.ERROR},
    Phase.RESTORING: {Phase.COMPLETE, Phase.ERROR},
    Phase.ERROR: set(),  # terminal
}


class PinningSession(BaseModel):
    """Everything the orchestrator knows about one interactive run.

    Immutable: each event handled by the orchestrator produces a new
    session via ``model_copy(update=...)``.
    """

    model_config = ConfigDict(frozen=True)

    phase: Phase = Phase.LOADING
    workflow_files: list[str] = []
    selected_files: list[str] = []
    actions: list[ActionReference] = []  # unpinned only
    replacements: list[Replacement] = []
    failures: list[ResolutionFailure] = []
    backups: list[BackupSnapshot] = []
    error: str | None = None
    error_type: str | None = None
    token: str | None = Field(default=None, repr=False)
    message: str | None = None
    backup_path: str | None = None
    dry_run: bool = False
    no_backup: bool = False

    @property
    def replacement_count(self) -> int:
        return len(self.replacements)

    @property
    def is_terminal(self) -> bool:
        return self.phase == Phase.ERROR
