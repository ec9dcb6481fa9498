"""``gha-freeze rate-limit`` — show the remaining GitHub API budget."""

from __future__ import annotations

import typer
from rich.console import Console

from ghafreeze.cli.renderer import SessionRenderer
from ghafreeze.config import FreezeConfig
from ghafreeze.core.credentials import CredentialSource
from ghafreeze.core.orchestrator import PinningOrchestrator
from ghafreeze.errors import FreezeError

console = Console()


def rate_limit_cmd(
    token: str = typer.Option(None, "--token", help="GitHub token to check."),
) -> None:
    """Show the GitHub API rate limit for the configured token."""
    config = FreezeConfig()
    orchestrator = PinningOrchestrator(
        config,
        credentials=CredentialSource.from_environment(
            explicit=token, token_path=config.resolved_token_path
        ),
    )
    try:
        status = orchestrator.check_rate_limit()
    except FreezeError as exc:
        console.print(f"[bold red]Rate limit check failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    SessionRenderer(console).print_rate_limit(status)
    if not orchestrator.session.token:
        console.print("[dim]Unauthenticated. Run 'gha-freeze auth TOKEN' for a higher limit.[/dim]")
