"""
platsync CLI - Agentic Platform commands.

Log in, browse the project hierarchy, link a platform task to the current
directory, and push task status updates.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from platsync.cli.errors import (
    ExitCode,
    print_error,
    print_invalid_option_error,
    print_no_linked_task_error,
    print_not_logged_in_error,
)
from platsync.core.config import default_secret_store, load_config
from platsync.core.platform import (
    APIKeyNotConfiguredError,
    ConfigurationError,
    PlatformClient,
    PlatformError,
    PlatformValidationError,
    SecretStore,
    TaskAssociation,
    TaskStatus,
    delete_api_key,
    format_context_brief,
    format_context_prompt,
    is_api_key_configured,
    is_valid_task_status,
    mask_api_key,
    set_api_key,
    validate_api_key_format,
)
from platsync.core.services import PlatformService

console = Console()
app = typer.Typer(
    name="platform",
    help="Agentic Platform integration",
    no_args_is_help=True,
)

# Worktree link, relative to the project directory
LINK_FILE = Path(".platsync") / "task.json"

STATUS_CHOICES = [s.value for s in TaskStatus]


# =============================================================================
# Factories (patched in tests)
# =============================================================================


def get_secret_store() -> SecretStore:
    return default_secret_store()


def build_client(api_key: str) -> PlatformClient:
    config = load_config().platform
    return PlatformClient(api_key, base_url=config.base_url, timeout=config.timeout)


def get_service() -> PlatformService:
    return PlatformService.from_config(store=get_secret_store())


# =============================================================================
# Helpers
# =============================================================================


def _fail(error: PlatformError) -> NoReturn:
    """Print a platform error and exit with the matching code."""
    if isinstance(error, APIKeyNotConfiguredError):
        print_not_logged_in_error()
        raise typer.Exit(ExitCode.USER_ERROR)
    if isinstance(error, (ConfigurationError, PlatformValidationError)):
        print_error(str(error))
        raise typer.Exit(ExitCode.USER_ERROR)
    print_error(str(error))
    raise typer.Exit(ExitCode.GENERAL_ERROR)


def read_task_link(project_dir: Path | None = None) -> TaskAssociation | None:
    """Load the task linked to ``project_dir`` (cwd by default), if any."""
    path = (project_dir or Path.cwd()) / LINK_FILE
    if not path.exists():
        return None
    try:
        return TaskAssociation.model_validate_json(path.read_text())
    except (ValidationError, OSError) as e:
        print_error(
            f"Cannot read task link {path}",
            reason="The link file is corrupt or unreadable",
            solution="platsync platform unlink, then link the task again",
        )
        raise typer.Exit(ExitCode.USER_ERROR) from e


def write_task_link(association: TaskAssociation, project_dir: Path | None = None) -> Path:
    path = (project_dir or Path.cwd()) / LINK_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(association.model_dump_json(by_alias=True, indent=2) + "\n")
    return path


def _resolve_task_id(task_id: str | None) -> str:
    if task_id:
        return task_id
    link = read_task_link()
    if link is None:
        print_no_linked_task_error()
        raise typer.Exit(ExitCode.USER_ERROR)
    return link.task_id


# =============================================================================
# Authentication
# =============================================================================


@app.command()
def login(
    api_key: str | None = typer.Option(
        None,
        "--api-key",
        help="API key (prompted for if omitted)",
    ),
) -> None:
    """
    Store a platform API key after verifying it.

    Examples:
        platsync platform login
        platsync platform login --api-key ap_user_...
    """
    if api_key is None:
        api_key = typer.prompt("Platform API key", hide_input=True)

    try:
        validate_api_key_format(api_key)
        with build_client(api_key) as client:
            user = client.get_current_user()
        set_api_key(get_secret_store(), api_key)
    except PlatformError as e:
        _fail(e)

    who = f"{user.name} ({user.email})" if user.name else user.email or user.id
    console.print(f"[green]✓[/green] Logged in as {who}")
    console.print(f"[dim]Key {mask_api_key(api_key)} stored[/dim]")


@app.command()
def logout() -> None:
    """Remove the stored platform API key."""
    try:
        store = get_secret_store()
        if not is_api_key_configured(store):
            console.print("[blue]Not logged in[/blue]")
            return
        delete_api_key(store)
    except PlatformError as e:
        _fail(e)
    console.print("[green]✓[/green] Logged out")


# =============================================================================
# Status
# =============================================================================


@app.command()
def status(
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Show connection and sync status.

    Examples:
        platsync platform status
        platsync platform status --json
    """
    try:
        with get_service() as service:
            connection = service.check_connection()
            sync = service.get_sync_status()
    except PlatformError as e:
        _fail(e)

    if json_output:
        data = {
            "connection": connection.model_dump(mode="json", by_alias=True),
            "sync": sync.model_dump(mode="json", by_alias=True),
        }
        typer.echo(json.dumps(data, indent=2))
        return

    if connection.connected:
        console.print(f"[green]✓[/green] Connected to {connection.base_url}")
    else:
        console.print(f"[red]✗[/red] Offline: {connection.error or 'platform unreachable'}")

    table = Table(title="Platform Status", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    if connection.user is not None:
        table.add_row("User", connection.user.email or connection.user.id)
    table.add_row("Pending updates", str(sync.pending_updates))
    if sync.dropped_updates:
        table.add_row("Dropped updates", f"[red]{sync.dropped_updates}[/red]")
    if sync.last_sync_time:
        table.add_row("Last synced", sync.last_sync_time.strftime("%Y-%m-%d %H:%M:%S"))
    if sync.last_error:
        table.add_row("Last error", f"[red]{sync.last_error}[/red]")

    link = read_task_link()
    if link is not None:
        table.add_row("Linked task", f"{link.task_id} {link.task_title}".strip())

    console.print()
    console.print(table)


# =============================================================================
# Hierarchy
# =============================================================================


def _print_table(title: str, rows: list[tuple[str, ...]], columns: tuple[str, ...]) -> None:
    if not rows:
        console.print(f"[dim]No {title.lower()} found[/dim]")
        return
    table = Table(title=title)
    for i, column in enumerate(columns):
        table.add_column(column, style="cyan" if i == 0 else None)
    for row in rows:
        table.add_row(*row)
    console.print(table)


@app.command()
def projects() -> None:
    """List projects you can access."""
    try:
        with get_service() as service:
            items = service.get_projects()
    except PlatformError as e:
        _fail(e)
    rows = [(p.id, p.name, p.description) for p in items]
    _print_table("Projects", rows, ("ID", "Name", "Description"))


@app.command()
def products(
    project_id: str = typer.Argument(..., help="Project ID"),
) -> None:
    """List products in a project."""
    try:
        with get_service() as service:
            items = service.get_products(project_id)
    except PlatformError as e:
        _fail(e)
    rows = [(p.id, p.name, p.description) for p in items]
    _print_table("Products", rows, ("ID", "Name", "Description"))


@app.command()
def specs(
    product_id: str = typer.Argument(..., help="Product ID"),
) -> None:
    """List specs in a product."""
    try:
        with get_service() as service:
            items = service.get_specs(product_id)
    except PlatformError as e:
        _fail(e)
    _print_table("Specs", [(s.id, s.name, s.status) for s in items], ("ID", "Name", "Status"))


@app.command()
def tasks(
    spec_id: str = typer.Argument(..., help="Spec ID"),
    status_filter: str | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Only show tasks with this status",
    ),
) -> None:
    """
    List tasks in a spec.

    Examples:
        platsync platform tasks spec-1
        platsync platform tasks spec-1 --status processing
    """
    if status_filter and not is_valid_task_status(status_filter):
        print_invalid_option_error(status_filter, STATUS_CHOICES)
        raise typer.Exit(ExitCode.USER_ERROR)

    try:
        with get_service() as service:
            items = service.get_tasks(spec_id)
    except PlatformError as e:
        _fail(e)

    if status_filter:
        wanted = TaskStatus(status_filter)
        items = [t for t in items if t.status == wanted]
    rows = [(t.id, t.title, t.status.value) for t in items]
    _print_table("Tasks", rows, ("ID", "Title", "Status"))


# =============================================================================
# Task link and context
# =============================================================================


@app.command()
def link(
    task_id: str = typer.Argument(..., help="Platform task ID"),
) -> None:
    """Link a platform task to the current directory."""
    try:
        with get_service() as service:
            ctx = service.get_task_context(task_id)
    except PlatformError as e:
        _fail(e)

    association = TaskAssociation(
        task_id=ctx.task_id,
        spec_id=ctx.spec_id,
        task_title=ctx.task_title,
        spec_name=ctx.spec_name,
        worktree_dir=str(Path.cwd()),
    )
    path = write_task_link(association)
    console.print(f"[green]✓[/green] Linked {ctx.task_id}: {ctx.task_title}")
    console.print(f"[dim]Saved to {path}[/dim]")


@app.command()
def unlink() -> None:
    """Remove the task link from the current directory."""
    path = Path.cwd() / LINK_FILE
    if not path.exists():
        console.print("[blue]No task linked[/blue]")
        return
    path.unlink()
    console.print("[green]✓[/green] Unlinked task")


@app.command()
def context(
    task_id: str | None = typer.Argument(None, help="Task ID (defaults to the linked task)"),
    brief: bool = typer.Option(False, "--brief", "-b", help="One-line summary only"),
) -> None:
    """Print the session context for a task."""
    task_id = _resolve_task_id(task_id)
    try:
        with get_service() as service:
            ctx = service.get_task_context(task_id)
    except PlatformError as e:
        _fail(e)

    if brief:
        typer.echo(format_context_brief(ctx))
    else:
        typer.echo(format_context_prompt(ctx), nl=False)


@app.command("update-status")
def update_status(
    new_status: str = typer.Argument(..., help="New task status"),
    task_id: str | None = typer.Option(
        None,
        "--task",
        "-t",
        help="Task ID (defaults to the linked task)",
    ),
) -> None:
    """
    Set the status of a platform task.

    Examples:
        platsync platform update-status processing
        platsync platform update-status completed --task task-42
    """
    if not is_valid_task_status(new_status):
        print_invalid_option_error(new_status, STATUS_CHOICES)
        raise typer.Exit(ExitCode.USER_ERROR)

    task_id = _resolve_task_id(task_id)
    try:
        with get_service() as service:
            service.push_status_update(task_id, new_status)
            service.flush_updates()
    except PlatformError as e:
        _fail(e)

    console.print(f"[green]✓[/green] {task_id} → {TaskStatus(new_status).value}")
