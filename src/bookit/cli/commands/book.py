"""Booking command."""

import click
from bookit.cli.error_handling import echo_report, handle_domain_error
from bookit.domain.booking import BookingEngine
from bookit.domain.errors import DomainError


@click.command("book")
@click.argument("draft_id", type=int)
@click.option("--entry", "entry_id", type=int, help="Book only this entry")
@click.option("--force", is_flag=True, help="Book entries that only have warnings")
@click.pass_context
def book(ctx, draft_id: int, entry_id: int | None, force: bool):
    """Book a draft, or one entry of it, into postings.

    Entries with validation errors stay unbooked. Entries with warnings are
    only booked with --force.

    Examples:
        bookit book 1
        bookit book 1 --entry 4 --force
    """
    engine = BookingEngine(ctx.obj["db"])
    try:
        result = engine.book(draft_id, ctx.obj["user_id"], entry_id=entry_id, force_warnings=force)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Booked {result.booked_count} entr{'ies' if result.booked_count != 1 else 'y'}")
    echo_report(result.report)
    if result.has_warnings and not force and not result.success:
        click.echo("Warnings present; use --force to book anyway.")
    if result.next_entry_id is not None:
        click.echo(f"Next open entry: {result.next_entry_id}")
    if not result.success:
        ctx.exit(1)


def register_commands(cli):
    """Register booking command with main CLI."""
    cli.add_command(book)
