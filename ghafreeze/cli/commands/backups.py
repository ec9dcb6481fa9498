"""``gha-freeze backups`` — list, restore and delete workflow snapshots."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from ghafreeze.cli.renderer import SessionRenderer
from ghafreeze.config import FreezeConfig
from ghafreeze.core.backup import BackupManager
from ghafreeze.errors import FreezeError

console = Console()

backups_app = typer.Typer(
    name="backups",
    help="Inspect and restore workflow backups.",
    no_args_is_help=True,
)


def _manager(workflow_dir: Path | None) -> BackupManager:
    config = FreezeConfig(**({"workflow_dir": workflow_dir} if workflow_dir else {}))
    return BackupManager(
        config.workflow_dir,
        prefix=config.backup_prefix,
        extensions=config.workflow_extensions,
    )


_WORKFLOW_DIR_OPTION = typer.Option(
    None, "--workflow-dir", help="Workflow directory (default: .github/workflows)."
)


@backups_app.command(name="list", help="List valid backups, newest first.")
def list_cmd(workflow_dir: Path = _WORKFLOW_DIR_OPTION) -> None:
    try:
        snapshots = _manager(workflow_dir).list_backups()
    except FreezeError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)

    if not snapshots:
        console.print("[dim]No backups found.[/dim]")
        return
    console.print(SessionRenderer(console).backup_table(snapshots))


@backups_app.command(name="restore", help="Restore workflow files from a backup.")
def restore_cmd(
    path: Path = typer.Argument(..., help="Backup directory to restore."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    workflow_dir: Path = _WORKFLOW_DIR_OPTION,
) -> None:
    manager = _manager(workflow_dir)
    if not yes and not typer.confirm(f"Overwrite workflows in {manager.workflow_dir} from {path}?"):
        raise typer.Exit(code=1)
    try:
        restored = manager.restore_backup(path)
    except FreezeError as exc:
        console.print(f"[bold red]Restore failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(f"[green]Restored {len(restored)} file(s) from {path}[/green]")


@backups_app.command(name="delete", help="Delete a backup directory.")
def delete_cmd(
    path: Path = typer.Argument(..., help="Backup directory to delete."),
    workflow_dir: Path = _WORKFLOW_DIR_OPTION,
) -> None:
    try:
        _manager(workflow_dir).delete_backup(path)
    except FreezeError as exc:
        console.print(f"[bold red]Delete failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(f"[green]Deleted backup: {path}[/green]")
