"""
Task context for agent sessions.

Builds a markdown briefing for a linked platform task (title, description,
spec content, sub-task checklist) that is injected into a coding session.
"""

from __future__ import annotations

import threading

from pydantic import Field

from platsync.core.platform.client import PlatformClient
from platsync.core.platform.exceptions import PlatformValidationError
from platsync.core.platform.models import PlatformModel, SubTask

# Spec content beyond this many characters is truncated in the prompt
MAX_SPEC_LENGTH = 10000


class ContextInjection(PlatformModel):
    """Everything a session needs to know about its linked task."""

    task_id: str
    task_title: str = ""
    task_description: str = ""
    task_status: str = ""
    spec_id: str = ""
    spec_name: str = ""
    spec_content: str = ""
    sub_tasks: list[SubTask] = Field(default_factory=list)
    relevant_files: list[str] = Field(default_factory=list)
    checkpoint_mode: bool = False

    @property
    def completed_count(self) -> int:
        return sum(1 for st in self.sub_tasks if st.is_completed)


def generate_context(
    client: PlatformClient, task_id: str, *, cancel: threading.Event | None = None
) -> ContextInjection:
    """
    Fetch a task and its spec and assemble the context injection.

    Raises:
        PlatformValidationError: If task_id is empty
        PlatformError: If the task cannot be fetched
    """
    if not task_id:
        raise PlatformValidationError("task ID is required")

    task, spec = client.get_task_with_spec(task_id, cancel=cancel)

    injection = ContextInjection(
        task_id=task.id,
        task_title=task.title,
        task_description=task.description,
        task_status=task.status.value,
        checkpoint_mode=task.checkpoint_mode,
        sub_tasks=list(task.sub_tasks),
    )
    if spec is not None:
        injection.spec_id = spec.id
        injection.spec_name = spec.name
        injection.spec_content = spec.content
    return injection


def format_context_prompt(ctx: ContextInjection | None) -> str:
    """Render the context injection as a markdown prompt."""
    if ctx is None:
        return ""

    parts = [f"# Task Context: {ctx.task_title}\n\n"]

    if ctx.task_description:
        parts.append(f"## Task Description\n\n{ctx.task_description}\n\n")

    if ctx.checkpoint_mode:
        parts.append(
            "> **Note:** This task is in checkpoint mode. Pause and request "
            "confirmation after completing each major step.\n\n"
        )

    if ctx.spec_content:
        content = ctx.spec_content
        if len(content) > MAX_SPEC_LENGTH:
            content = (
                content[:MAX_SPEC_LENGTH]
                + "\n\n... (truncated, full spec available in project docs)"
            )
        parts.append(f"## Specification Context\n\n{content}\n\n")

    if ctx.sub_tasks:
        parts.append("## Sub-tasks to Complete\n\n")
        for st in ctx.sub_tasks:
            checkbox = "[x]" if st.is_completed else "[ ]"
            parts.append(f"- {checkbox} {st.title}\n")
        parts.append("\n")

    if ctx.relevant_files:
        parts.append("## Relevant Files\n\n")
        for path in ctx.relevant_files:
            parts.append(f"- `{path}`\n")
        parts.append("\n")

    parts.append("---\n\n")
    parts.append("*This context was automatically injected based on your linked platform task.*\n")
    return "".join(parts)


def format_context_brief(ctx: ContextInjection | None) -> str:
    """One-line summary, e.g. ``"Wire login (2/5 completed)"``."""
    if ctx is None:
        return ""
    if ctx.sub_tasks:
        return f"{ctx.task_title} ({ctx.completed_count}/{len(ctx.sub_tasks)} completed)"
    return ctx.task_title


__all__ = [
    "MAX_SPEC_LENGTH",
    "ContextInjection",
    "generate_context",
    "format_context_prompt",
    "format_context_brief",
]
