"""``gha-freeze auth TOKEN`` — save a GitHub token for future runs."""

from __future__ import annotations

import typer
from rich.console import Console

from ghafreeze.config import FreezeConfig
from ghafreeze.core.credentials import save_token
from ghafreeze.errors import FileIOError

console = Console()


def auth_cmd(
    token: str = typer.Argument(..., help="GitHub personal access token."),
) -> None:
    """Save a GitHub Personal Access Token for automatic use in future commands.

    The token is stored in ~/.config/gha-freeze/token with 0600 permissions.
    Alternatively, set the GITHUB_TOKEN or GHA_FREEZE_TOKEN environment variable.
    """
    if not token.strip():
        console.print("[bold red]Token must not be empty.[/bold red]")
        raise typer.Exit(code=1)

    config = FreezeConfig()
    try:
        path = save_token(config.resolved_token_path, token)
    except FileIOError as exc:
        console.print(f"[bold red]Failed to save token:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print(f"[green]Token saved to {path}[/green]")
    console.print("The token will be used automatically for future commands.")
