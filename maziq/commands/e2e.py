"""End-to-end install/update/remove test command."""

import sys

import click
import questionary

from maziq import setup_logging
from maziq.catalog import SoftwareId, all_entries
from maziq.commands.utils import (
    EXIT_DATA_ERROR,
    EXIT_MANAGER_ERROR,
    require_software_id,
    run_options,
    run_task,
)
from maziq.errors import CatalogError, format_error
from maziq.tasks import EndToEndFlow


def _is_interactive() -> bool:
    return sys.stdin.isatty()


def select_software_interactive() -> SoftwareId | None:
    """Ask which catalog entry to exercise. Returns None if cancelled.

    Raises:
        RuntimeError: If not running in a TTY
    """
    if not _is_interactive():
        raise RuntimeError("Interactive software selector requires a TTY")

    choices = [
        questionary.Choice(title=f"{item.display_name} ({item.id.key})", value=item.id)
        for item in all_entries()
    ]
    try:
        return questionary.select(
            "Select software for the end-to-end test:",
            choices=choices,
        ).ask()
    except KeyboardInterrupt:
        return None


@click.command()
@click.argument("key", required=False)
@click.option("--skip-install", is_flag=True, help="Do not run the install step")
@click.option("--skip-update", is_flag=True, help="Do not run the update step")
@click.option("--skip-remove", is_flag=True, help="Do not run the remove step")
@click.option("--dry-run", is_flag=True, help="Report each enabled step without running it")
@click.option("--force", "-f", is_flag=True, help="Reinstall even if already installed")
@click.pass_context
def e2e(
    ctx,
    key: str | None,
    skip_install: bool,
    skip_update: bool,
    skip_remove: bool,
    dry_run: bool,
    force: bool,
):
    """Install, update and remove one package in sequence (e.g. `neovim`)."""
    setup_logging(ctx.obj.get("debug", False))

    if key:
        identifier = require_software_id(key)
    else:
        if not _is_interactive():
            raise click.UsageError("KEY is required when not running in a terminal")
        try:
            identifier = select_software_interactive()
        except CatalogError as e:
            click.echo(format_error(str(e)), err=True)
            sys.exit(EXIT_DATA_ERROR)
        if identifier is None:
            click.echo("Cancelled.")
            return

    payload = EndToEndFlow(
        id=identifier,
        install=not skip_install,
        update=not skip_update,
        remove=not skip_remove,
        options=run_options(ctx, dry_run, force),
    )
    if not run_task(f"e2e {identifier.key}", payload):
        sys.exit(EXIT_MANAGER_ERROR)
