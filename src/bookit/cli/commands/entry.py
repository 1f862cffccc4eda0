"""Draft entry commands."""

import click
from bookit.cli.error_handling import handle_domain_error
from bookit.cli.resolution import (
    resolve_contact_or_exit,
    resolve_savings_plan_or_exit,
    resolve_security_or_exit,
)
from bookit.domain.draft import DraftService
from bookit.domain.entities import SecurityTransactionType
from bookit.utils.amount_parser import parse_amount
from bookit.utils.date_parser import parse_date


@click.group()
def entry_group():
    """Edit and classify draft entries."""
    pass


@entry_group.command("add")
@click.argument("draft_id", type=int)
@click.option("--date", "date_str", required=True, help="Booking date")
@click.option("--amount", required=True, help="Signed amount, e.g. -45.00 or 45,00-")
@click.option("--subject", required=True, help="Payment subject")
@click.option("--recipient", help="Recipient name")
@click.option("--valuta", help="Valuta date")
@click.option("--currency", help="Currency code (default EUR)")
@click.option("--description", help="Booking description")
@click.option("--announced", is_flag=True, help="Entry is a pre-notified movement")
@click.pass_context
def add_entry(
    ctx,
    draft_id: int,
    date_str: str,
    amount: str,
    subject: str,
    recipient: str | None,
    valuta: str | None,
    currency: str | None,
    description: str | None,
    announced: bool,
):
    """Add an entry to a draft.

    Examples:
        bookit entry add 1 --date 2024-03-15 --amount -45.00 --subject "Groceries" --recipient "Market"
    """
    service = DraftService(ctx.obj["db"])
    try:
        entry_id = service.add_entry(
            draft_id,
            ctx.obj["user_id"],
            booking_date=parse_date(date_str),
            amount=parse_amount(amount),
            subject=subject,
            recipient_name=recipient,
            valuta_date=parse_date(valuta) if valuta else None,
            currency_code=currency,
            booking_description=description,
            is_announced=announced,
        )
        click.echo(f"Added entry {entry_id} to draft {draft_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@entry_group.command("update")
@click.argument("draft_id", type=int)
@click.argument("entry_id", type=int)
@click.option("--date", "date_str", help="Booking date")
@click.option("--amount", help="Signed amount")
@click.option("--subject", help="Payment subject")
@click.option("--recipient", help="Recipient name")
@click.option("--valuta", help="Valuta date")
@click.option("--currency", help="Currency code")
@click.pass_context
def update_entry(
    ctx,
    draft_id: int,
    entry_id: int,
    date_str: str | None,
    amount: str | None,
    subject: str | None,
    recipient: str | None,
    valuta: str | None,
    currency: str | None,
):
    """Edit statement data of an entry. Omitted options keep their value."""
    service = DraftService(ctx.obj["db"])
    try:
        service.update_entry(
            draft_id,
            entry_id,
            ctx.obj["user_id"],
            booking_date=parse_date(date_str) if date_str else None,
            valuta_date=parse_date(valuta) if valuta else None,
            amount=parse_amount(amount) if amount is not None else None,
            subject=subject,
            recipient_name=recipient,
            currency_code=currency,
        )
        click.echo(f"Updated entry {entry_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@entry_group.command("delete")
@click.argument("draft_id", type=int)
@click.argument("entry_id", type=int)
@click.pass_context
def delete_entry(ctx, draft_id: int, entry_id: int):
    """Delete an unbooked entry."""
    service = DraftService(ctx.obj["db"])
    try:
        service.delete_entry(draft_id, entry_id, ctx.obj["user_id"])
        click.echo(f"Deleted entry {entry_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@entry_group.command("contact")
@click.argument("draft_id", type=int)
@click.argument("entry_id", type=int)
@click.argument("contact", required=False)
@click.option("--clear", is_flag=True, help="Remove the contact")
@click.pass_context
def set_contact(ctx, draft_id: int, entry_id: int, contact: str | None, clear: bool):
    """Assign CONTACT (name or ID) to an entry, or remove it with --clear."""
    service = DraftService(ctx.obj["db"])
    owner_id = ctx.obj["user_id"]
    if not clear and contact is None:
        click.echo("Error: Provide a CONTACT or --clear", err=True)
        ctx.exit(1)
    try:
        if clear:
            service.clear_contact(draft_id, entry_id, owner_id)
            click.echo(f"Removed contact from entry {entry_id}")
        else:
            contact_id = resolve_contact_or_exit(ctx, contact)
            service.assign_contact(draft_id, entry_id, owner_id, contact_id)
            click.echo(f"Assigned contact {contact_id} to entry {entry_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@entry_group.command("plan")
@click.argument("draft_id", type=int)
@click.argument("entry_id", type=int)
@click.argument("plan", required=False)
@click.option("--clear", is_flag=True, help="Remove the savings plan")
@click.option("--archive-on-booking", is_flag=True, help="Archive the plan when the entry is booked")
@click.pass_context
def set_plan(
    ctx, draft_id: int, entry_id: int, plan: str | None, clear: bool, archive_on_booking: bool
):
    """Assign savings PLAN (name or ID) to an entry, or remove it with --clear."""
    service = DraftService(ctx.obj["db"])
    owner_id = ctx.obj["user_id"]
    if not clear and plan is None:
        click.echo("Error: Provide a PLAN or --clear", err=True)
        ctx.exit(1)
    try:
        if clear:
            service.assign_savings_plan(draft_id, entry_id, owner_id, None)
            click.echo(f"Removed savings plan from entry {entry_id}")
            return
        plan_id = resolve_savings_plan_or_exit(ctx, plan)
        service.assign_savings_plan(draft_id, entry_id, owner_id, plan_id)
        if archive_on_booking:
            service.set_archive_savings_plan_on_booking(draft_id, entry_id, owner_id, True)
        click.echo(f"Assigned savings plan {plan_id} to entry {entry_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@entry_group.command("security")
@click.argument("draft_id", type=int)
@click.argument("entry_id", type=int)
@click.argument("security", required=False)
@click.option(
    "--type",
    "transaction_type",
    type=click.Choice([t.value for t in SecurityTransactionType], case_sensitive=False),
    help="Transaction type",
)
@click.option("--quantity", help="Number of units (Buy/Sell)")
@click.option("--fee", help="Fee amount")
@click.option("--tax", help="Tax amount")
@click.option("--clear", is_flag=True, help="Remove the security assignment")
@click.pass_context
def set_security(
    ctx,
    draft_id: int,
    entry_id: int,
    security: str | None,
    transaction_type: str | None,
    quantity: str | None,
    fee: str | None,
    tax: str | None,
    clear: bool,
):
    """Assign SECURITY (name or ID) with trade details, or remove it with --clear.

    Examples:
        bookit entry security 1 5 "ACME Fund" --type Buy --quantity 10 --fee 4.90
    """
    service = DraftService(ctx.obj["db"])
    owner_id = ctx.obj["user_id"]
    if not clear and security is None:
        click.echo("Error: Provide a SECURITY or --clear", err=True)
        ctx.exit(1)
    try:
        if clear:
            service.set_security(draft_id, entry_id, owner_id, None)
            click.echo(f"Removed security from entry {entry_id}")
            return
        security_id = resolve_security_or_exit(ctx, security)
        tx_type = None
        if transaction_type is not None:
            tx_type = next(
                t for t in SecurityTransactionType if t.value.lower() == transaction_type.lower()
            )
        service.set_security(
            draft_id,
            entry_id,
            owner_id,
            security_id,
            transaction_type=tx_type,
            quantity=parse_amount(quantity) if quantity is not None else None,
            fee_amount=parse_amount(fee) if fee is not None else None,
            tax_amount=parse_amount(tax) if tax is not None else None,
        )
        click.echo(f"Assigned security {security_id} to entry {entry_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@entry_group.command("cost-neutral")
@click.argument("draft_id", type=int)
@click.argument("entry_id", type=int)
@click.option("--off", is_flag=True, help="Unmark the entry")
@click.pass_context
def set_cost_neutral(ctx, draft_id: int, entry_id: int, off: bool):
    """Mark an entry as cost-neutral (an own transfer)."""
    service = DraftService(ctx.obj["db"])
    try:
        service.set_cost_neutral(draft_id, entry_id, ctx.obj["user_id"], not off)
        click.echo(f"Entry {entry_id} is {'not ' if off else ''}cost-neutral")
    except ValueError as e:
        handle_domain_error(ctx, e)


@entry_group.command("reset")
@click.argument("draft_id", type=int)
@click.argument("entry_id", type=int)
@click.pass_context
def reset_entry(ctx, draft_id: int, entry_id: int):
    """Reset an entry to open."""
    service = DraftService(ctx.obj["db"])
    try:
        entry = service.reset_open(draft_id, entry_id, ctx.obj["user_id"])
        click.echo(f"Entry {entry_id} is {entry.status.value}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register entry commands with main CLI."""
    cli.add_command(entry_group, name="entry")
