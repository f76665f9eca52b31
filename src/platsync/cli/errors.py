"""
Standardized error handling and exit codes for the platsync CLI.

Error messages carry actionable guidance, and exit codes are shared by
every command.
"""

from enum import IntEnum

from rich.console import Console

console = Console()


class ExitCode(IntEnum):
    """Standard exit codes for platsync CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error, including platform and network failures."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Not logged in",
        ...     reason="No platform API key is stored",
        ...     solution="platsync platform login",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_not_logged_in_error() -> None:
    """Print error when no platform API key is configured."""
    print_error(
        "Not logged in to the Agentic Platform",
        reason="No platform API key is stored or set in PLATFORM_API_KEY",
        solution="platsync platform login",
    )


def print_no_linked_task_error() -> None:
    """Print error when a command needs a linked task and none is linked."""
    print_error(
        "No task linked to this directory",
        reason="Pass a task ID or link one first",
        solution="platsync platform link TASK_ID",
    )


def print_invalid_option_error(option: str, valid_options: list[str]) -> None:
    """Print error when an invalid option value is provided."""
    valid_str = ", ".join(valid_options)
    print_error(
        f"Invalid option: {option}",
        reason=f"Valid options are: {valid_str}",
        solution=f"Use one of: {valid_str}",
    )


__all__ = [
    "ExitCode",
    "print_error",
    "print_not_logged_in_error",
    "print_no_linked_task_error",
    "print_invalid_option_error",
]
