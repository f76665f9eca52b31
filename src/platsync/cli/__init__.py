"""
platsync CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging

import typer
from rich.console import Console

from platsync import __version__
from platsync.cli import platform
from platsync.core.config.env import load_layered_env

# Create the main Typer app
app = typer.Typer(
    name="platsync",
    help="Sync local coding sessions with the Agentic Platform",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    platsync - Agentic Platform sync.

    Browse platform projects and tasks, link a task to your working
    directory, and keep its status in sync with your session.

    Quick Start:
        1. platsync platform login           # Store your API key
        2. platsync platform projects        # Find your work
        3. platsync platform link TASK_ID    # Link a task here
        4. platsync platform context         # Print the task briefing
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Load layered env files early so PLATFORM_API_KEY etc. are available.
    # Precedence: OS env > project .env > user .env
    load_layered_env()

    # Store debug flag in context for subcommands
    ctx.obj = {"debug": debug}


app.add_typer(platform.app, name="platform")


@app.command()
def version() -> None:
    """Show platsync version and exit."""
    console.print(f"platsync version {__version__}")
    raise typer.Exit(0)


__all__ = ["app"]
