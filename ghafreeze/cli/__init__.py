"""gha-freeze CLI — Typer-based command-line interface.

Running ``gha-freeze`` with no subcommand starts an interactive pinning
session. Subcommands save a token, check the API budget, and manage
backups.

All output uses Rich for formatted terminal display.
"""
