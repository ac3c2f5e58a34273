"""Template-driven onboarding commands."""

import sys

import click

from maziq import setup_logging
from maziq.commands.utils import (
    EXIT_DATA_ERROR,
    EXIT_MANAGER_ERROR,
    EXIT_NOT_FOUND,
    run_options,
    run_task,
)
from maziq.errors import (
    CatalogError,
    TemplateError,
    TemplateNotFound,
    format_error,
    format_suggestion,
)
from maziq.manager import ActionKind
from maziq.tasks import TemplateFlow
from maziq.templates import DEFAULT_TEMPLATE, load_all, load_named


@click.group()
def onboard():
    """Template-driven onboarding flows."""
    pass


def _run_flow(ctx, action: ActionKind, template_name: str, dry_run: bool, force: bool):
    setup_logging(ctx.obj.get("debug", False))
    try:
        template = load_named(template_name)
    except TemplateNotFound as e:
        click.echo(
            format_suggestion(str(e), "run 'maziq onboard templates' to list templates"),
            err=True,
        )
        sys.exit(EXIT_NOT_FOUND)
    except TemplateError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(EXIT_DATA_ERROR)

    if template.description:
        click.echo(f"Description: {template.description}")

    payload = TemplateFlow(
        action=action,
        ids=tuple(template.software),
        options=run_options(ctx, dry_run, force),
        name=template.name,
    )
    try:
        ok = run_task(f"{action.label} {template.name}", payload)
    except CatalogError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(EXIT_DATA_ERROR)
    if not ok:
        sys.exit(EXIT_MANAGER_ERROR)


@onboard.command()
@click.option(
    "--template", "-t", default=DEFAULT_TEMPLATE, show_default=True, help="Template slug or name"
)
@click.option("--dry-run", is_flag=True, help="Show the plan without executing anything")
@click.option("--force", "-f", is_flag=True, help="Reinstall even if targets appear installed")
@click.pass_context
def fresh(ctx, template: str, dry_run: bool, force: bool):
    """Install every item defined in a template."""
    _run_flow(ctx, ActionKind.INSTALL, template, dry_run, force)


@onboard.command()
@click.option(
    "--template", "-t", default=DEFAULT_TEMPLATE, show_default=True, help="Template slug or name"
)
@click.option("--dry-run", is_flag=True, help="Show the plan without executing anything")
@click.option("--force", "-f", is_flag=True, help="Accepted for symmetry with fresh")
@click.pass_context
def update(ctx, template: str, dry_run: bool, force: bool):
    """Update every item defined in a template."""
    _run_flow(ctx, ActionKind.UPDATE, template, dry_run, force)


@onboard.command()
@click.pass_context
def templates(ctx):
    """List available templates."""
    setup_logging(ctx.obj.get("debug", False))
    try:
        found = load_all()
    except TemplateError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(EXIT_DATA_ERROR)

    if not found:
        click.echo("No templates found.")
        return

    click.echo("Available templates:")
    for template in found:
        description = template.description or "no description provided"
        click.echo(f"- {template.name} ({description}) [{template.path}]")
