"""Shared helpers for CLI commands."""

import sys

import click

from maziq.catalog import SoftwareId, entry
from maziq.errors import format_suggestion
from maziq.manager import ExecutionEvent, RunOptions
from maziq.tasks import TaskEvent, TaskPayload, TaskQueue

# Exit codes
EXIT_SUCCESS = 0
EXIT_MANAGER_ERROR = 1
EXIT_NOT_FOUND = 3
EXIT_DATA_ERROR = 4


def run_options(ctx: click.Context, dry_run: bool = False, force: bool = False) -> RunOptions:
    """Merge the global --dry-run flag with the subcommand's own flags."""
    global_dry_run = ctx.obj.get("dry_run", False) if ctx.obj else False
    return RunOptions(dry_run=dry_run or global_dry_run, force=force)


def require_software_id(key: str) -> SoftwareId:
    """Resolve a catalog key or exit with EXIT_NOT_FOUND."""
    identifier = SoftwareId.from_key(key)
    if identifier is None:
        click.echo(
            format_suggestion(
                f"Unknown software id `{key}`", "run 'maziq software list' for valid keys"
            ),
            err=True,
        )
        sys.exit(EXIT_NOT_FOUND)
    return identifier


def format_dependencies(ids) -> str:
    if not ids:
        return "none"
    return ", ".join(identifier.key for identifier in ids)


def echo_plan(order: list[SoftwareId]) -> None:
    click.echo("Execution order:")
    for index, identifier in enumerate(order, start=1):
        deps = format_dependencies(entry(identifier).dependencies)
        click.echo(f"{index:>2}. {identifier.display_name:<24} deps: {deps}")


def render_events(events: list[ExecutionEvent]) -> None:
    if not events:
        click.echo("No actions executed.")
        return
    click.echo("Action log:")
    for event in events:
        click.echo(f"- {event.summary()}")


def run_task(label: str, payload: TaskPayload, task_queue: TaskQueue | None = None) -> bool:
    """Run one task on the background worker, echoing its messages.

    Returns:
        True if no event of the task reported a failure
    """
    owned = task_queue is None
    if task_queue is None:
        task_queue = TaskQueue()

    failed = False

    def echo_event(event: TaskEvent) -> None:
        nonlocal failed
        for message in event.messages:
            click.echo(message)
        failed = failed or event.failed

    try:
        task_id = task_queue.submit(label, payload)
        task_queue.wait(task_id, on_event=echo_event)
    except KeyboardInterrupt:
        # No join: the daemon worker may be inside a long shell command.
        if owned:
            task_queue.shutdown(wait=False)
            owned = False
        raise
    finally:
        if owned:
            task_queue.shutdown()
    return not failed
