"""Software catalog commands: list, show, install, update, uninstall, status."""

import logging
import sys

import click

from maziq import setup_logging
from maziq.catalog import all_entries, categories, find_by_key
from maziq.commands.utils import (
    EXIT_DATA_ERROR,
    EXIT_MANAGER_ERROR,
    EXIT_NOT_FOUND,
    echo_plan,
    require_software_id,
    render_events,
    run_options,
)
from maziq.errors import CatalogError, ManagerError, format_error, format_suggestion
from maziq.manager import ActionKind, SoftwareManager


_logging = logging.getLogger(__name__)


@click.group()
def software():
    """Inspect software definitions and run actions."""
    pass


@software.command(name="list")
@click.option("--by-category", "-c", is_flag=True, help="Group entries by category")
@click.pass_context
def list_software(ctx, by_category: bool):
    """List all known software entries."""
    setup_logging(ctx.obj.get("debug", False))
    try:
        if by_category:
            for category, ids in categories().items():
                click.echo(f"{category}:")
                for identifier in ids:
                    click.echo(f"  {identifier.key:<20} {identifier.display_name}")
            return

        click.echo(f"{'Key':<20} {'Name':<26} {'Kind':<8} Category")
        click.echo("-" * 90)
        for item in all_entries():
            click.echo(
                f"{item.id.key:<20} {item.display_name:<26} {item.kind.label:<8} {item.category}"
            )
    except CatalogError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(EXIT_DATA_ERROR)


@software.command()
@click.argument("key")
@click.pass_context
def show(ctx, key: str):
    """Show detail for a software id (e.g. `rustup`)."""
    setup_logging(ctx.obj.get("debug", False))
    try:
        item = find_by_key(key)
    except CatalogError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(EXIT_DATA_ERROR)

    if item is None:
        click.echo(
            format_suggestion(
                f"Unknown software id `{key}`", "run 'maziq software list' for valid keys"
            ),
            err=True,
        )
        sys.exit(EXIT_NOT_FOUND)

    click.echo(f"Key: {item.id.key}")
    click.echo(f"Name: {item.display_name}")
    click.echo(f"Category: {item.category}")
    click.echo(f"Kind: {item.kind.label}")
    click.echo(f"Summary: {item.summary}")
    if item.dependencies:
        names = ", ".join(dep.display_name for dep in item.dependencies)
        click.echo(f"Dependencies: {names}")
    else:
        click.echo("Dependencies: none")
    click.echo(f"Version check: {item.version_probe.description()}")
    for title, sources in (
        ("Install", item.install_sources),
        ("Update", item.update_sources),
        ("Uninstall", item.uninstall_sources),
    ):
        click.echo(f"{title} sources:")
        for source in sources:
            click.echo(f"  - {source.label} -> {source.recipe.description()}")


def _run_action(ctx, action: ActionKind, key: str, dry_run: bool, force: bool):
    setup_logging(ctx.obj.get("debug", False))
    identifier = require_software_id(key)
    options = run_options(ctx, dry_run, force)
    manager = SoftwareManager(options=options)

    try:
        order = manager.plan([identifier], action)
        echo_plan(order)
        click.echo("")
        events = manager.run(action, [identifier])
    except CatalogError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(EXIT_DATA_ERROR)
    except ManagerError as e:
        _logging.debug(f"{action.label} {identifier.key} failed: {e!r}")
        click.echo(
            format_error(f"{action.label} failed for {identifier.display_name}: {e}"),
            err=True,
        )
        sys.exit(EXIT_MANAGER_ERROR)

    render_events(events)


@software.command()
@click.argument("key")
@click.option("--dry-run", is_flag=True, help="Preview actions without modifying the system")
@click.option("--force", "-f", is_flag=True, help="Reinstall even if already installed")
@click.pass_context
def install(ctx, key: str, dry_run: bool, force: bool):
    """Install a software entry (dependencies are resolved automatically)."""
    _run_action(ctx, ActionKind.INSTALL, key, dry_run, force)


@software.command()
@click.argument("key")
@click.option("--dry-run", is_flag=True, help="Preview actions without modifying the system")
@click.option("--force", "-f", is_flag=True, help="Accepted for symmetry with install")
@click.pass_context
def update(ctx, key: str, dry_run: bool, force: bool):
    """Update a software entry."""
    _run_action(ctx, ActionKind.UPDATE, key, dry_run, force)


@software.command()
@click.argument("key")
@click.option("--dry-run", is_flag=True, help="Preview actions without modifying the system")
@click.option("--force", "-f", is_flag=True, help="Accepted for symmetry with install")
@click.pass_context
def uninstall(ctx, key: str, dry_run: bool, force: bool):
    """Uninstall a software entry (dependents first)."""
    _run_action(ctx, ActionKind.UNINSTALL, key, dry_run, force)


@software.command()
@click.argument("key")
@click.pass_context
def status(ctx, key: str):
    """Show current status/version for a software entry."""
    setup_logging(ctx.obj.get("debug", False))
    identifier = require_software_id(key)
    try:
        report = SoftwareManager().status(identifier)
    except CatalogError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(EXIT_DATA_ERROR)
    click.echo(report.summary())
