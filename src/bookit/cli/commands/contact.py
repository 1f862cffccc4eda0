"""Contact management commands."""

import click
from bookit.cli.error_handling import handle_domain_error
from bookit.cli.resolution import resolve_contact_or_exit
from bookit.domain.directory import ContactService
from bookit.domain.errors import DomainError


@click.group()
def contact_group():
    """Manage contacts and their alias patterns."""
    pass


@contact_group.command("create")
@click.argument("name")
@click.option("--alias", "aliases", multiple=True, help="Alias pattern (repeatable, * and ? wildcards)")
@click.pass_context
def create_contact(ctx, name: str, aliases: tuple[str, ...]):
    """Create a contact.

    Examples:
        bookit contact create "Grocery Store" --alias "GROCERY*" --alias "*MARKET 12?"
    """
    service = ContactService(ctx.obj["db"])
    try:
        contact_id = service.create_contact(ctx.obj["user_id"], name, aliases)
        click.echo(f"Created contact '{name}' (ID: {contact_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@contact_group.command("list")
@click.pass_context
def list_contacts(ctx):
    """List contacts with their alias patterns."""
    service = ContactService(ctx.obj["db"])
    contacts = service.list_contacts(ctx.obj["user_id"])
    if not contacts:
        click.echo("No contacts found.")
        return

    click.echo("\nContacts:")
    click.echo("-" * 60)
    for contact in contacts:
        click.echo(f"ID: {contact.id:3d} | {contact.name}")
        for alias in contact.aliases:
            click.echo(f"         alias {alias.id}: {alias.pattern}")


@contact_group.command("alias-add")
@click.argument("contact")
@click.argument("pattern")
@click.pass_context
def add_alias(ctx, contact: str, pattern: str):
    """Add an alias pattern to CONTACT (name or ID)."""
    contact_id = resolve_contact_or_exit(ctx, contact)
    service = ContactService(ctx.obj["db"])
    try:
        alias_id = service.add_alias(contact_id, ctx.obj["user_id"], pattern)
        click.echo(f"Added alias '{pattern}' (ID: {alias_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@contact_group.command("alias-remove")
@click.argument("contact")
@click.argument("alias_id", type=int)
@click.pass_context
def remove_alias(ctx, contact: str, alias_id: int):
    """Remove alias ALIAS_ID from CONTACT (name or ID)."""
    contact_id = resolve_contact_or_exit(ctx, contact)
    service = ContactService(ctx.obj["db"])
    try:
        service.remove_alias(contact_id, ctx.obj["user_id"], alias_id)
        click.echo(f"Removed alias {alias_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register contact commands with main CLI."""
    cli.add_command(contact_group, name="contact")
