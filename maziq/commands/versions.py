"""Versions command implementation."""

import sys

import click

from maziq import setup_logging
from maziq.commands.utils import EXIT_DATA_ERROR
from maziq.errors import CatalogError, format_error
from maziq.execution import Installed
from maziq.manager import SoftwareManager


@click.command()
@click.option("--installed", "-i", is_flag=True, help="Only show installed software")
@click.pass_context
def versions(ctx, installed: bool):
    """Detect installed versions across all software."""
    setup_logging(ctx.obj.get("debug", False))
    try:
        reports = SoftwareManager().status_all()
    except CatalogError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(EXIT_DATA_ERROR)

    click.echo("Detected software versions:")
    for report in reports:
        if installed and not isinstance(report.state, Installed):
            continue
        click.echo(report.summary())

    present = sum(1 for r in reports if isinstance(r.state, Installed))
    click.echo(f"\n{present}/{len(reports)} installed.")
