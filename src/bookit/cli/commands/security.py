"""Security commands."""

import click
from bookit.cli.error_handling import handle_domain_error
from bookit.domain.directory import SecurityService
from bookit.domain.errors import DomainError


@click.group()
def security_group():
    """Manage securities."""
    pass


@security_group.command("create")
@click.argument("name")
@click.option("--identifier", help="ISIN or ticker")
@click.pass_context
def create_security(ctx, name: str, identifier: str | None):
    """Create a security."""
    service = SecurityService(ctx.obj["db"])
    try:
        security_id = service.create_security(ctx.obj["user_id"], name, identifier)
        click.echo(f"Created security '{name}' (ID: {security_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@security_group.command("list")
@click.pass_context
def list_securities(ctx):
    """List securities."""
    service = SecurityService(ctx.obj["db"])
    securities = service.list_securities(ctx.obj["user_id"])
    if not securities:
        click.echo("No securities found.")
        return

    click.echo("\nSecurities:")
    click.echo("-" * 60)
    for security in securities:
        click.echo(f"ID: {security.id:3d} | {security.name:20s} | {security.identifier or '-'}")


def register_commands(cli):
    """Register security commands with main CLI."""
    cli.add_command(security_group, name="security")
