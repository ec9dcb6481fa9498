"""Rich terminal renderer for pinning sessions.

Turns a ``PinningSession`` into Rich renderables, one view per phase.

Color scheme
------------
- green   : pinned / success
- yellow  : pending, dry run, rate limited
- red     : errors and unresolved actions
- dim     : paths and hints
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ghafreeze.models.backups import BackupSnapshot
from ghafreeze.models.ratelimit import RateLimitStatus
from ghafreeze.models.session import Phase, PinningSession

_PHASE_TITLES: dict[Phase, str] = {
    Phase.LOADING: "Loading workflows",
    Phase.FILE_SELECTION: "Select workflow files",
    Phase.SCANNING: "Scanning workflows",
    Phase.ACTION_REVIEW: "Unpinned actions",
    Phase.RESOLVING: "Resolving versions",
    Phase.CONFIRMING: "Confirm changes",
    Phase.PROCESSING: "Applying changes",
    Phase.COMPLETE: "Complete",
    Phase.BACKUP_LIST: "Backups",
    Phase.RESTORING: "Restoring backup",
    Phase.RATE_LIMITED: "Rate limited",
    Phase.ERROR: "Error",
}

_SPINNER_TEXT: dict[Phase, str] = {
    Phase.LOADING: "Loading workflow files...",
    Phase.SCANNING: "Scanning workflows for actions...",
    Phase.RESOLVING: "Resolving action versions via GitHub API...",
    Phase.PROCESSING: "Creating backup and applying changes...",
    Phase.RESTORING: "Restoring backup...",
    Phase.COMPLETE: "Working...",
}

TOKEN_HELP_URL = (
    "https://github.com/settings/tokens/new?description=gha-freeze&scopes=public_repo"
)


def spinner_text(phase: Phase) -> str:
    return _SPINNER_TEXT.get(phase, "Working...")


class SessionRenderer:
    """Renders ``PinningSession`` phases as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def file_table(self, session: PinningSession) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=False)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Workflow file")
        for index, path in enumerate(session.workflow_files, start=1):
            table.add_row(str(index), path)
        return table

    def action_table(self, session: PinningSession) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=False)
        table.add_column("Action")
        table.add_column("Ref", style="yellow")
        table.add_column("Location", style="dim")
        for action in session.actions:
            table.add_row(action.uses_slug, action.ref, action.location)
        return table

    def replacement_table(self, session: PinningSession) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=False)
        table.add_column("Action")
        table.add_column("From", style="yellow")
        table.add_column("To", style="green")
        table.add_column("Location", style="dim")
        for repl in session.replacements:
            table.add_row(
                repl.action.uses_slug,
                repl.original_ref,
                repl.sha,
                repl.action.location,
            )
        return table

    def backup_table(self, backups: list[BackupSnapshot]) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=False)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Timestamp", no_wrap=True)
        table.add_column("Files", justify="right")
        table.add_column("Path", style="dim", overflow="fold")
        for index, snapshot in enumerate(backups, start=1):
            table.add_row(str(index), snapshot.timestamp, str(snapshot.file_count), snapshot.path)
        return table

    # ------------------------------------------------------------------
    # Phase views
    # ------------------------------------------------------------------

    def render(self, session: PinningSession) -> Panel:
        """Render the view for the session's current phase."""
        phase = session.phase
        body: list = []

        if phase == Phase.FILE_SELECTION:
            body.append(self.file_table(session))
        elif phase == Phase.ACTION_REVIEW:
            if session.actions:
                body.append(Text(f"Found {len(session.actions)} unpinned action(s):"))
                body.append(self.action_table(session))
            else:
                body.append(Text("All actions are already pinned.", style="green"))
        elif phase == Phase.CONFIRMING:
            body.append(Text(f"{session.replacement_count} action(s) will be pinned:"))
            body.append(self.replacement_table(session))
            if session.failures:
                body.append(Text(""))
                body.append(Text(f"{len(session.failures)} action(s) could not be resolved:", style="red"))
                for failure in session.failures:
                    body.append(Text(
                        f"  {failure.action.uses_slug}@{failure.action.ref}: {failure.message}",
                        style="red",
                    ))
            if session.dry_run:
                body.append(Text("Dry run: no files will be modified.", style="yellow"))
            elif session.no_backup:
                body.append(Text("Backups are disabled for this run.", style="yellow"))
        elif phase == Phase.COMPLETE:
            if session.message:
                body.append(Text(session.message, style="bold green"))
            if session.backup_path:
                body.append(Text(f"Backup: {session.backup_path}", style="dim"))
        elif phase == Phase.BACKUP_LIST:
            body.append(self.backup_table(session.backups))
        elif phase == Phase.RATE_LIMITED:
            body.append(Text("GitHub API rate limit reached.", style="bold yellow"))
            if session.error:
                body.append(Text(session.error, style="dim"))
            body.append(Text("Create a token to get higher rate limits:"))
            body.append(Text(TOKEN_HELP_URL, style="cyan"))
        elif phase == Phase.ERROR:
            label = session.error_type or "Error"
            body.append(Text(f"{label}: {session.error}", style="bold red"))
        else:
            body.append(Text(spinner_text(phase)))

        if session.message and phase != Phase.COMPLETE:
            body.append(Text(session.message, style="yellow"))

        border = "red" if phase == Phase.ERROR else "blue"
        return Panel(
            Group(*body),
            title=f"[bold]gha-freeze[/bold] · {_PHASE_TITLES[phase]}",
            border_style=border,
            padding=(1, 2),
        )

    def print_session(self, session: PinningSession) -> None:
        self.console.print(self.render(session))

    def print_rate_limit(self, status: RateLimitStatus) -> None:
        reset = status.reset.strftime("%Y-%m-%d %H:%M:%S UTC") if status.reset else "unknown"
        style = "red" if status.exhausted else "green"
        self.console.print(
            Panel(
                "\n".join([
                    f"[bold]Limit:[/bold]     {status.limit}",
                    f"[bold]Remaining:[/bold] [{style}]{status.remaining}[/{style}]",
                    f"[bold]Resets:[/bold]    {reset}",
                ]),
                title="[bold]GitHub API rate limit[/bold]",
                border_style=style,
                padding=(1, 2),
            )
        )
