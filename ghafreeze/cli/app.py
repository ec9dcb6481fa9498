"""Main Typer application — imports and registers all CLI commands.

Entry point: ``gha-freeze`` (configured via pyproject.toml scripts).

Commands: (default) interactive pinning, auth, version, rate-limit, backups.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.logging import RichHandler

from ghafreeze import __version__
from ghafreeze.cli.commands.auth import auth_cmd
from ghafreeze.cli.commands.backups import backups_app
from ghafreeze.cli.commands.pin import run_pin
from ghafreeze.cli.commands.rate_limit import rate_limit_cmd
from ghafreeze.config import config

app = typer.Typer(
    name="gha-freeze",
    help="Pin GitHub Actions in your workflows to specific commit SHAs.",
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="auth", help="Save GitHub token for future use.")(auth_cmd)
app.command(name="rate-limit", help="Show the GitHub API rate limit.")(rate_limit_cmd)
app.add_typer(backups_app, name="backups")


@app.command(name="version", help="Print version information.")
def version_cmd() -> None:
    typer.echo(f"gha-freeze version {__version__}")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else config.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    token: str = typer.Option(
        None,
        "--token",
        help="GitHub token (create at: https://github.com/settings/tokens/new?description=gha-freeze&scopes=public_repo)",
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Preview changes without modifying files."
    ),
    no_backup: bool = typer.Option(
        False, "--no-backup", help="Skip creating backup files."
    ),
    workflow_dir: Path = typer.Option(
        None, "--workflow-dir", help="Workflow directory (default: .github/workflows)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Pin GitHub Actions in your workflows to commit SHAs with version comments.

    It will find workflow files, parse them for action references, resolve
    versions to commit SHAs via the GitHub API, back up the files, and
    replace each reference with [bold]owner/repo@<sha> # <version>[/bold].
    """
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        run_pin(token=token, dry_run=dry_run, no_backup=no_backup, workflow_dir=workflow_dir)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
