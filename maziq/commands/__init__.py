"""CLI command definitions for maziq."""

import sys

import click

from maziq import __version__
from maziq.commands.utils import EXIT_DATA_ERROR
from maziq.commands.e2e import e2e
from maziq.commands.history import history
from maziq.commands.onboard import onboard
from maziq.commands.software import software
from maziq.commands.versions import versions
from maziq.errors import CatalogError, format_error


@click.group(invoke_without_command=True)
@click.option("--debug", is_flag=True, help="Enable debug output for troubleshooting")
@click.option("--dry-run", is_flag=True, help="Global dry-run for every subcommand")
@click.version_option(__version__, prog_name="maziq")
@click.pass_context
def cli(ctx, debug, dry_run):
    """Manage macOS development setups.

    Without a subcommand, starts the interactive view.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["dry_run"] = dry_run
    if ctx.invoked_subcommand is None:
        from maziq.tui import run_app

        try:
            run_app(debug=debug, dry_run=dry_run)
        except RuntimeError as e:
            raise click.UsageError(str(e)) from e
        except CatalogError as e:
            click.echo(format_error(str(e)), err=True)
            sys.exit(EXIT_DATA_ERROR)


# Register all commands
cli.add_command(software)
cli.add_command(onboard)
cli.add_command(versions)
cli.add_command(e2e)
cli.add_command(history)

__all__ = ["cli"]


if __name__ == "__main__":
    cli()
