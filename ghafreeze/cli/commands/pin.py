"""``gha-freeze`` — interactive pinning session.

Drives a PinningOrchestrator from the terminal: each phase is rendered,
the user answers a prompt, and background tasks run under a spinner.
Ctrl+C is ignored while backups and writes are being applied.
"""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.prompt import Confirm as ConfirmPrompt
from rich.prompt import Prompt

from ghafreeze.cli.renderer import SessionRenderer, spinner_text
from ghafreeze.config import FreezeConfig
from ghafreeze.core.credentials import CredentialSource
from ghafreeze.core.orchestrator import PinningOrchestrator, can_quit
from ghafreeze.models.events import (
    ChooseBackup,
    CloseBackups,
    Confirm,
    DeleteSessionBackup,
    RequestBackups,
    SelectFiles,
    SessionEvent,
    Start,
    SupplyToken,
)
from ghafreeze.models.session import Phase, PinningSession

console = Console()


@contextmanager
def _interrupts_ignored(enabled: bool) -> Iterator[None]:
    """Ignore SIGINT for the duration of the block (main thread only)."""
    if not enabled or threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _parse_selection(answer: str, files: list[str]) -> list[str] | None:
    """Turn "1,3" into file paths. Empty means all; None means invalid input."""
    answer = answer.strip()
    if not answer or answer.lower() == "all":
        return []
    selected: list[str] = []
    for part in answer.replace(" ", ",").split(","):
        if not part:
            continue
        if not part.isdigit() or not 1 <= int(part) <= len(files):
            return None
        path = files[int(part) - 1]
        if path not in selected:
            selected.append(path)
    return selected


def _ask_files(session: PinningSession) -> SessionEvent | None:
    while True:
        answer = Prompt.ask(
            "Files to pin (numbers separated by commas, Enter for all, q to quit)",
            default="",
            show_default=False,
            console=console,
        )
        if answer.strip().lower() == "q":
            return None
        selected = _parse_selection(answer, session.workflow_files)
        if selected is not None:
            return SelectFiles(files=selected)
        console.print("[red]Invalid selection.[/red]")


def _ask_backup(session: PinningSession) -> SessionEvent:
    while True:
        answer = Prompt.ask(
            "Backup to restore (number, or b to go back)",
            default="b",
            console=console,
        ).strip().lower()
        if answer in ("b", "q"):
            return CloseBackups()
        if answer.isdigit() and 1 <= int(answer) <= len(session.backups):
            return ChooseBackup(path=session.backups[int(answer) - 1].path)
        console.print("[red]Invalid selection.[/red]")


def prompt_for_event(session: PinningSession) -> SessionEvent | None:
    """Ask the user what to do next. Returns None to end the session."""
    phase = session.phase

    if phase == Phase.FILE_SELECTION:
        return _ask_files(session)

    if phase == Phase.ACTION_REVIEW:
        if not session.actions:
            return Confirm()
        if ConfirmPrompt.ask(
            f"Resolve {len(session.actions)} action(s) to commit SHAs?",
            default=True,
            console=console,
        ):
            return Confirm()
        return None

    if phase == Phase.CONFIRMING:
        question = "Finish dry run?" if session.dry_run else "Apply these changes?"
        if ConfirmPrompt.ask(question, default=True, console=console):
            return Confirm()
        return None

    if phase == Phase.RATE_LIMITED:
        token = Prompt.ask(
            "GitHub token (leave empty to quit)",
            password=True,
            default="",
            show_default=False,
            console=console,
        )
        return SupplyToken(token=token) if token.strip() else None

    if phase == Phase.COMPLETE:
        choices = ["r", "q"]
        hint = "[r] restore a backup"
        if session.backup_path:
            choices.insert(1, "d")
            hint += ", [d] delete this run's backup"
        answer = Prompt.ask(f"{hint}, [q] quit", choices=choices, default="q", console=console)
        if answer == "r":
            return RequestBackups()
        if answer == "d":
            return DeleteSessionBackup()
        return None

    if phase == Phase.BACKUP_LIST:
        return _ask_backup(session)

    return None


def run_session(orchestrator: PinningOrchestrator, renderer: SessionRenderer) -> PinningSession:
    """Run the interactive loop until the user quits or an error occurs."""
    task = orchestrator.dispatch(Start())
    while True:
        while task is not None:
            session = orchestrator.session
            with _interrupts_ignored(not can_quit(session)):
                with renderer.console.status(spinner_text(session.phase), spinner="dots"):
                    outcome = orchestrator.run_task(session, task)
            task = orchestrator.dispatch(outcome)

        session = orchestrator.session
        renderer.print_session(session)
        if session.phase == Phase.ERROR:
            return session

        event = prompt_for_event(session)
        if event is None:
            return session
        task = orchestrator.dispatch(event)


def run_pin(
    token: str | None = None,
    dry_run: bool = False,
    no_backup: bool = False,
    workflow_dir: Path | None = None,
) -> None:
    """Pin GitHub Actions in your workflows to commit SHAs.

    1. Find all workflow files in the workflow directory
    2. Parse them for action references
    3. Resolve versions to commit SHAs via the GitHub API
    4. Create a backup before modifying files
    5. Replace action references with SHA + version comments
    """
    overrides = {"workflow_dir": workflow_dir} if workflow_dir else {}
    config = FreezeConfig(**overrides)

    if not Path(".git").exists():
        console.print(
            "[bold red]Not a git repository.[/bold red] "
            "Run this command from the root of a git repository."
        )
        raise typer.Exit(code=1)

    if not config.workflow_dir.is_dir():
        console.print(f"[bold red]{config.workflow_dir} directory not found.[/bold red]")
        raise typer.Exit(code=1)

    credentials = CredentialSource.from_environment(
        explicit=token, token_path=config.resolved_token_path
    )
    orchestrator = PinningOrchestrator(
        config,
        credentials=credentials,
        dry_run=dry_run,
        no_backup=no_backup,
    )

    try:
        session = run_session(orchestrator, SessionRenderer(console))
    except KeyboardInterrupt:
        console.print("\n[dim]Aborted.[/dim]")
        raise typer.Exit(code=130)

    if session.phase in (Phase.ERROR, Phase.RATE_LIMITED):
        raise typer.Exit(code=1)
