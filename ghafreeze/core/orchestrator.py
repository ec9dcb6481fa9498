"""Pinning orchestrator — the state machine that drives a session.

The orchestrator wires the scanner, parser, VersionResolver, BackupManager
and replacer into one interactive pipeline::

    LOADING -> FILE_SELECTION -> SCANNING -> ACTION_REVIEW -> RESOLVING
            -> CONFIRMING -> PROCESSING -> COMPLETE

with one re-entry (RESOLVING -> RATE_LIMITED -> ACTION_REVIEW once a token
is supplied) and one maintenance loop (COMPLETE -> BACKUP_LIST ->
RESTORING -> COMPLETE). Any unrecoverable fault lands in ERROR.

Work is split in two halves:

- ``handle(session, event)`` is pure. It validates the transition and
  returns the next session plus, optionally, a Task to run.
- ``run_task(session, task)`` performs the side effect and returns
  exactly one outcome event, which is also sent to registered listeners.

Tasks run one at a time; ``drive`` chains the two until no task is left.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from ghafreeze.config import FreezeConfig
from ghafreeze.core.backup import BackupManager
from ghafreeze.core.credentials import CredentialSource
from ghafreeze.core.parser import parse_workflow_file
from ghafreeze.core.replacer import apply_replacements
from ghafreeze.core.resolver import ResolutionCapability, VersionResolver
from ghafreeze.core.scanner import find_workflow_files
from ghafreeze.errors import FreezeError, InvalidTransitionError, RateLimitError
from ghafreeze.github.client import GitHubClient
from ghafreeze.models.actions import ActionReference
from ghafreeze.models.events import (
    BackupDeleted,
    BackupListComplete,
    ChooseBackup,
    CloseBackups,
    Confirm,
    DeleteSessionBackup,
    FilesParsed,
    RateLimited,
    RequestBackups,
    ResolutionComplete,
    RestoreComplete,
    ScanComplete,
    SelectFiles,
    SessionEvent,
    Start,
    SupplyToken,
    Task,
    TaskKind,
    WriteComplete,
)
from ghafreeze.models.ratelimit import RateLimitStatus
from ghafreeze.models.session import VALID_TRANSITIONS, Phase, PinningSession

logger = logging.getLogger(__name__)

CapabilityFactory = Callable[[str | None], ResolutionCapability]


class Step(BaseModel):
    """Result of handling one event: the next session and the task to run."""

    model_config = ConfigDict(frozen=True)

    session: PinningSession
    task: Task | None = None


def can_quit(session: PinningSession) -> bool:
    """Quitting is refused while backups and writes are in flight."""
    return session.phase != Phase.PROCESSING


def _transition(session: PinningSession, target: Phase, **update: object) -> PinningSession:
    allowed = VALID_TRANSITIONS.get(session.phase, set())
    if target not in allowed:
        raise InvalidTransitionError(
            f"Cannot transition from {session.phase.value} to {target.value}. "
            f"Allowed: {sorted(p.value for p in allowed)}"
        )
    logger.debug("Session %s -> %s", session.phase.value, target.value)
    return session.model_copy(update={"phase": target, **update})


def _fail(session: PinningSession, error: str, error_type: str | None) -> PinningSession:
    return _transition(session, Phase.ERROR, error=error, error_type=error_type)


def _require(session: PinningSession, event: SessionEvent, *phases: Phase) -> None:
    if session.phase not in phases:
        raise InvalidTransitionError(
            f"{type(event).__name__} is not accepted in phase {session.phase.value}"
        )


class PinningOrchestrator:
    """Coordinates one pinning session.

    Parameters
    ----------
    config:
        Runtime configuration. Uses defaults (and the environment) if not provided.
    credentials:
        Where the initial token comes from.
    capability_factory:
        Builds a resolution capability for a token. Defaults to GitHubClient.
    backup_manager:
        Defaults to a BackupManager over ``config.workflow_dir``.
    dry_run:
        Resolve and report, but neither back up nor write.
    no_backup:
        Write without creating a snapshot first.
    """

    def __init__(
        self,
        config: FreezeConfig | None = None,
        *,
        credentials: CredentialSource | None = None,
        capability_factory: CapabilityFactory | None = None,
        backup_manager: BackupManager | None = None,
        dry_run: bool = False,
        no_backup: bool = False,
    ) -> None:
        self.config = config or FreezeConfig()
        self._credentials = credentials or CredentialSource()
        self._capability_factory = capability_factory or self._github_capability
        self.backup_manager = backup_manager or BackupManager(
            self.config.workflow_dir,
            prefix=self.config.backup_prefix,
            extensions=self.config.workflow_extensions,
        )
        self._dry_run = dry_run
        self._no_backup = no_backup
        self._listeners: list[Callable[[SessionEvent], None]] = []
        self._client: GitHubClient | None = None

        self.session = self.new_session()
        self.history: list[PinningSession] = [self.session]

        self._handlers: dict[type[SessionEvent], Callable[[PinningSession, SessionEvent], Step]] = {
            Start: self._on_start,
            ScanComplete: self._on_scan_complete,
            SelectFiles: self._on_select_files,
            FilesParsed: self._on_files_parsed,
            Confirm: self._on_confirm,
            ResolutionComplete: self._on_resolution_complete,
            RateLimited: self._on_rate_limited,
            SupplyToken: self._on_supply_token,
            WriteComplete: self._on_write_complete,
            RequestBackups: self._on_request_backups,
            BackupListComplete: self._on_backup_list,
            ChooseBackup: self._on_choose_backup,
            CloseBackups: self._on_close_backups,
            RestoreComplete: self._on_restore_complete,
            DeleteSessionBackup: self._on_delete_backup,
            BackupDeleted: self._on_backup_deleted,
        }

    def _github_capability(self, token: str | None) -> ResolutionCapability:
        # One HTTP session per orchestrator; a new token only swaps the credential.
        if self._client is None:
            self._client = GitHubClient(
                token,
                api_url=self.config.api_url,
                timeout=self.config.request_timeout,
                user_agent=self.config.user_agent,
            )
        elif self._client.token != (token or None):
            self._client = self._client.with_token(token)
        return self._client

    def new_session(self) -> PinningSession:
        return PinningSession(
            token=self._credentials.token(),
            dry_run=self._dry_run,
            no_backup=self._no_backup,
        )

    def add_listener(self, listener: Callable[[SessionEvent], None]) -> None:
        """Register a sink that receives every task outcome event."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Pure transition logic
    # ------------------------------------------------------------------

    def handle(self, session: PinningSession, event: SessionEvent) -> Step:
        """Return the session that follows ``event`` and the task it requires."""
        if session.phase == Phase.ERROR:
            raise InvalidTransitionError("Session is in the terminal error state")
        handler = self._handlers.get(type(event))
        if handler is None:
            raise InvalidTransitionError(f"Unknown event {type(event).__name__}")
        return handler(session, event)

    def _on_start(self, session: PinningSession, event: SessionEvent) -> Step:
        _require(session, event, Phase.LOADING)
        return Step(session=session, task=Task(kind=TaskKind.SCAN_DIRECTORY))

    def _on_scan_complete(self, session: PinningSession, event: ScanComplete) -> Step:
        _require(session, event, Phase.LOADING)
        if event.failed:
            return Step(session=_fail(session, event.error, event.error_type))
        if not event.files:
            return Step(session=_fail(
                session,
                f"no workflow files found in {self.config.workflow_dir}",
                "NotFoundError",
            ))
        return Step(session=_transition(
            session,
            Phase.FILE_SELECTION,
            workflow_files=list(event.files),
            selected_files=list(event.files),
        ))

    def _on_select_files(self, session: PinningSession, event: SelectFiles) -> Step:
        _require(session, event, Phase.FILE_SELECTION)
        selected = list(event.files) or list(session.workflow_files)
        unknown = [f for f in selected if f not in session.workflow_files]
        if unknown:
            return Step(session=_fail(
                session, f"unknown workflow file(s): {', '.join(unknown)}", "ValidationError"
            ))
        return Step(
            session=_transition(session, Phase.SCANNING, selected_files=selected),
            task=Task(kind=TaskKind.PARSE_FILES),
        )

    def _on_files_parsed(self, session: PinningSession, event: FilesParsed) -> Step:
        _require(session, event, Phase.SCANNING)
        if event.failed:
            return Step(session=_fail(session, event.error, event.error_type))
        unpinned = [a for a in event.actions if not a.is_pinned]
        logger.info(
            "Found %d action reference(s), %d unpinned", len(event.actions), len(unpinned)
        )
        return Step(session=_transition(session, Phase.ACTION_REVIEW, actions=unpinned))

    def _on_confirm(self, session: PinningSession, event: Confirm) -> Step:
        _require(
            session, event, Phase.FILE_SELECTION, Phase.ACTION_REVIEW, Phase.CONFIRMING
        )
        if session.phase == Phase.FILE_SELECTION:
            return self._on_select_files(session, SelectFiles(files=session.selected_files))

        if session.phase == Phase.ACTION_REVIEW:
            if not session.actions:
                return Step(session=_transition(
                    session, Phase.COMPLETE, message="No actions to pin"
                ))
            return self._start_resolution(session)

        return Step(
            session=_transition(session, Phase.PROCESSING),
            task=Task(kind=TaskKind.APPLY_REPLACEMENTS),
        )

    def _start_resolution(self, session: PinningSession) -> Step:
        return Step(
            session=_transition(
                session, Phase.RESOLVING, replacements=[], failures=[], error=None, error_type=None
            ),
            task=Task(kind=TaskKind.RESOLVE_ACTIONS),
        )

    def _on_resolution_complete(
        self, session: PinningSession, event: ResolutionComplete
    ) -> Step:
        _require(session, event, Phase.RESOLVING)
        if event.failed:
            return Step(session=_fail(session, event.error, event.error_type))
        if event.replacements:
            return Step(session=_transition(
                session,
                Phase.CONFIRMING,
                replacements=list(event.replacements),
                failures=list(event.failures),
            ))
        if event.failures:
            last = event.failures[-1]
            return Step(session=_fail(
                session.model_copy(update={"failures": list(event.failures)}),
                last.message,
                "ResolutionError",
            ))
        return Step(session=_fail(session, "no actions were resolved", "ResolutionError"))

    def _on_rate_limited(self, session: PinningSession, event: RateLimited) -> Step:
        _require(session, event, Phase.RESOLVING)
        return Step(session=_transition(
            session,
            Phase.RATE_LIMITED,
            replacements=[],
            failures=[],
            error=event.error or "GitHub API rate limit exceeded",
            error_type=event.error_type or "RateLimitError",
        ))

    def _on_supply_token(self, session: PinningSession, event: SupplyToken) -> Step:
        _require(session, event, Phase.RATE_LIMITED)
        token = event.token.strip()
        if not token:
            return Step(session=session.model_copy(update={"message": "Token must not be empty"}))
        reviewed = _transition(
            session, Phase.ACTION_REVIEW, token=token, error=None, error_type=None, message=None
        )
        # Retry the whole unpinned set, not just what was left.
        return self._start_resolution(reviewed)

    def _on_write_complete(self, session: PinningSession, event: WriteComplete) -> Step:
        _require(session, event, Phase.PROCESSING)
        if event.failed:
            return Step(session=_fail(session, event.error, event.error_type))
        if session.dry_run:
            message = f"Dry run: {session.replacement_count} action(s) would be pinned"
        else:
            message = (
                f"Pinned {session.replacement_count} action(s) "
                f"in {event.files_written} file(s)"
            )
        return Step(session=_transition(
            session, Phase.COMPLETE, backup_path=event.backup_path, message=message
        ))

    def _on_request_backups(self, session: PinningSession, event: RequestBackups) -> Step:
        _require(session, event, Phase.COMPLETE)
        return Step(session=session, task=Task(kind=TaskKind.LIST_BACKUPS))

    def _on_backup_list(self, session: PinningSession, event: BackupListComplete) -> Step:
        _require(session, event, Phase.COMPLETE)
        if event.failed:
            return Step(session=_fail(session, event.error, event.error_type))
        if not event.backups:
            return Step(session=session.model_copy(
                update={"message": "No backups found", "backups": []}
            ))
        return Step(session=_transition(
            session, Phase.BACKUP_LIST, backups=list(event.backups), message=None
        ))

    def _on_choose_backup(self, session: PinningSession, event: ChooseBackup) -> Step:
        _require(session, event, Phase.BACKUP_LIST)
        if event.path not in {b.path for b in session.backups}:
            return Step(session=_fail(
                session, f"not a listed backup: {event.path}", "ValidationError"
            ))
        return Step(
            session=_transition(session, Phase.RESTORING),
            task=Task(kind=TaskKind.RESTORE_BACKUP, target=event.path),
        )

    def _on_close_backups(self, session: PinningSession, event: CloseBackups) -> Step:
        _require(session, event, Phase.BACKUP_LIST)
        return Step(session=_transition(session, Phase.COMPLETE))

    def _on_restore_complete(self, session: PinningSession, event: RestoreComplete) -> Step:
        _require(session, event, Phase.RESTORING)
        if event.failed:
            return Step(session=_fail(session, event.error, event.error_type))
        return Step(session=_transition(
            session, Phase.COMPLETE, message="Backup restored successfully!"
        ))

    def _on_delete_backup(self, session: PinningSession, event: DeleteSessionBackup) -> Step:
        _require(session, event, Phase.COMPLETE)
        if not session.backup_path:
            return Step(session=session.model_copy(update={"message": "No backup to delete"}))
        return Step(
            session=session,
            task=Task(kind=TaskKind.DELETE_BACKUP, target=session.backup_path),
        )

    def _on_backup_deleted(self, session: PinningSession, event: BackupDeleted) -> Step:
        _require(session, event, Phase.COMPLETE)
        if event.failed:
            return Step(session=session.model_copy(
                update={"message": f"Failed to delete backup: {event.error}"}
            ))
        return Step(session=session.model_copy(
            update={"backup_path": None, "message": f"Deleted backup: {event.path}"}
        ))

    # ------------------------------------------------------------------
    # Side-effecting tasks
    # ------------------------------------------------------------------

    def run_task(self, session: PinningSession, task: Task) -> SessionEvent:
        """Run ``task`` for ``session`` and return its single outcome event."""
        logger.debug("Running task %s", task.kind.value)
        runners: dict[TaskKind, Callable[[PinningSession, Task], SessionEvent]] = {
            TaskKind.SCAN_DIRECTORY: self._scan_directory,
            TaskKind.PARSE_FILES: self._parse_files,
            TaskKind.RESOLVE_ACTIONS: self._resolve_actions,
            TaskKind.APPLY_REPLACEMENTS: self._apply_replacements,
            TaskKind.LIST_BACKUPS: self._list_backups,
            TaskKind.RESTORE_BACKUP: self._restore_backup,
            TaskKind.DELETE_BACKUP: self._delete_backup,
        }
        outcome = runners[task.kind](session, task)
        for listener in self._listeners:
            listener(outcome)
        return outcome

    @staticmethod
    def _error_fields(exc: FreezeError) -> dict[str, str]:
        return {"error": str(exc), "error_type": type(exc).__name__}

    def _scan_directory(self, session: PinningSession, task: Task) -> SessionEvent:
        try:
            files = find_workflow_files(
                self.config.workflow_dir,
                extensions=self.config.workflow_extensions,
                backup_prefix=self.config.backup_prefix,
            )
        except FreezeError as exc:
            return ScanComplete(**self._error_fields(exc))
        return ScanComplete(files=files)

    def _parse_files(self, session: PinningSession, task: Task) -> SessionEvent:
        actions: list[ActionReference] = []
        try:
            for file_path in session.selected_files:
                actions.extend(parse_workflow_file(file_path))
        except FreezeError as exc:
            return FilesParsed(**self._error_fields(exc))
        return FilesParsed(actions=actions)

    def _resolve_actions(self, session: PinningSession, task: Task) -> SessionEvent:
        resolver = VersionResolver(self._capability_factory(session.token))
        try:
            replacements, failures = resolver.resolve_all(session.actions)
        except RateLimitError as exc:
            return RateLimited(**self._error_fields(exc))
        except FreezeError as exc:
            return ResolutionComplete(**self._error_fields(exc))
        return ResolutionComplete(replacements=replacements, failures=failures)

    def _apply_replacements(self, session: PinningSession, task: Task) -> SessionEvent:
        backup_path: str | None = None
        written = 0
        try:
            if not session.no_backup and not session.dry_run:
                backup_path = str(self.backup_manager.create_backup(session.selected_files))
            if not session.dry_run:
                results = apply_replacements(session.replacements)
                written = sum(1 for count in results.values() if count)
        except FreezeError as exc:
            return WriteComplete(backup_path=backup_path, **self._error_fields(exc))
        return WriteComplete(backup_path=backup_path, files_written=written)

    def _list_backups(self, session: PinningSession, task: Task) -> SessionEvent:
        try:
            backups = self.backup_manager.list_backups()
        except FreezeError as exc:
            return BackupListComplete(**self._error_fields(exc))
        return BackupListComplete(backups=backups)

    def _restore_backup(self, session: PinningSession, task: Task) -> SessionEvent:
        try:
            self.backup_manager.restore_backup(task.target or "")
        except FreezeError as exc:
            return RestoreComplete(path=task.target, **self._error_fields(exc))
        return RestoreComplete(path=task.target)

    def _delete_backup(self, session: PinningSession, task: Task) -> SessionEvent:
        try:
            self.backup_manager.delete_backup(task.target or "")
        except FreezeError as exc:
            return BackupDeleted(path=task.target, **self._error_fields(exc))
        return BackupDeleted(path=task.target)

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def dispatch(self, event: SessionEvent) -> Task | None:
        """Apply ``event`` to the current session. Returns the task to run next."""
        step = self.handle(self.session, event)
        self.session = step.session
        self.history.append(step.session)
        return step.task

    def drive(self, event: SessionEvent) -> PinningSession:
        """Apply ``event`` and run every resulting task until the session settles."""
        task = self.dispatch(event)
        while task is not None:
            task = self.dispatch(self.run_task(self.session, task))
        return self.session

    def check_rate_limit(self) -> RateLimitStatus:
        """Ask the remote for the current API budget using the session token."""
        return VersionResolver(self._capability_factory(self.session.token)).check_rate_limit()
