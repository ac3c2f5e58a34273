"""History command implementation."""

from datetime import datetime

import click

from maziq import setup_logging
from maziq.history import read_all
from maziq.paths import get_history_path


@click.command()
@click.option("--limit", "-n", default=20, show_default=True, help="Number of records to show")
@click.option("--software", "-s", "key", help="Only show records for this software key")
@click.pass_context
def history(ctx, limit: int, key: str | None):
    """Show recently executed actions."""
    setup_logging(ctx.obj.get("debug", False))
    path = get_history_path()
    records = read_all(path)
    if key:
        records = [r for r in records if r.software == key]

    if not records:
        click.echo(f"No history recorded in {path}.")
        return

    for record in records[-limit:]:
        when = datetime.fromtimestamp(record.timestamp).strftime("%Y-%m-%d %H:%M:%S")
        version = record.version or "-"
        source = record.source or "-"
        click.echo(f"{when}  {record.action:<9} {record.software:<20} {version}  [{source}]")
