"""Statement draft commands."""

from datetime import datetime, time

import click
from bookit.cli.error_handling import echo_report, handle_domain_error
from bookit.cli.resolution import resolve_account_or_exit
from bookit.domain.classifier import EntryClassifier
from bookit.domain.draft import DraftService
from bookit.domain.errors import DomainError
from bookit.domain.split import SplitLinker
from bookit.domain.validation import Validator
from bookit.utils.amount_parser import parse_amount
from bookit.utils.date_parser import parse_date


@click.group()
def draft_group():
    """Manage statement drafts."""
    pass


@draft_group.command("create")
@click.argument("file_name")
@click.option("--account-name", help="Account identifier (IBAN) from the statement header")
@click.option("--description", help="Draft description")
@click.pass_context
def create_draft(ctx, file_name: str, account_name: str | None, description: str | None):
    """Create an empty draft for statement FILE_NAME.

    Add rows with 'bookit entry add'.
    """
    service = DraftService(ctx.obj["db"])
    draft_id = service.create_draft(
        ctx.obj["user_id"], file_name, account_name=account_name, description=description
    )
    click.echo(f"Created draft '{file_name}' (ID: {draft_id})")


@draft_group.command("list")
@click.pass_context
def list_drafts(ctx):
    """List open drafts."""
    service = DraftService(ctx.obj["db"])
    drafts = service.list_open_drafts(ctx.obj["user_id"])
    if not drafts:
        click.echo("No open drafts found.")
        return

    click.echo("\nOpen drafts:")
    click.echo("-" * 72)
    for draft in drafts:
        account = draft.detected_account_id if draft.detected_account_id is not None else "-"
        split = f" | split of entry {draft.parent_entry_id}" if draft.is_split_draft else ""
        click.echo(
            f"ID: {draft.id:3d} | {draft.original_file_name:24s} | account {account}{split}"
        )


@draft_group.command("show")
@click.argument("draft_id", type=int)
@click.pass_context
def show_draft(ctx, draft_id: int):
    """Show a draft and its entries."""
    service = DraftService(ctx.obj["db"])
    owner_id = ctx.obj["user_id"]
    try:
        draft = service.require_draft(draft_id, owner_id)
        entries = service.list_entries(draft_id, owner_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Draft {draft.id}: {draft.original_file_name} [{draft.status.value}]")
    if draft.description:
        click.echo(f"  {draft.description}")
    click.echo(f"  Account: {draft.detected_account_id or '-'}")
    click.echo("-" * 80)
    for e in entries:
        links = []
        if e.contact_id is not None:
            links.append(f"contact {e.contact_id}")
        if e.savings_plan_id is not None:
            links.append(f"plan {e.savings_plan_id}")
        if e.security_id is not None:
            links.append(f"security {e.security_id}")
        if e.split_draft_id is not None:
            links.append(f"split {e.split_draft_id}")
        if e.is_cost_neutral:
            links.append("cost-neutral")
        click.echo(
            f"{e.id:4d} | {e.booking_date} | {e.amount:>10} {e.currency_code} | "
            f"{e.status.value:13s} | {(e.recipient_name or '')[:20]:20s} | {e.subject[:30]}"
            + (f" | {', '.join(links)}" if links else "")
        )


@draft_group.command("set-account")
@click.argument("draft_id", type=int)
@click.argument("account")
@click.pass_context
def set_account(ctx, draft_id: int, account: str):
    """Assign ACCOUNT (name or ID) to a draft."""
    account_id = resolve_account_or_exit(ctx, account)
    service = DraftService(ctx.obj["db"])
    try:
        service.set_account(draft_id, ctx.obj["user_id"], account_id)
        click.echo(f"Draft {draft_id} assigned to account {account_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@draft_group.command("classify")
@click.argument("draft_id", type=int)
@click.pass_context
def classify_draft(ctx, draft_id: int):
    """Detect the account and assign contacts from alias patterns."""
    classifier = EntryClassifier(ctx.obj["db"])
    owner_id = ctx.obj["user_id"]
    try:
        account_id = classifier.detect_account(draft_id, owner_id)
        applied = classifier.apply_proposals(draft_id, owner_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if account_id is not None:
        click.echo(f"Account: {account_id}")
    else:
        click.echo("Account could not be detected")
    click.echo(f"Assigned contacts to {len(applied)} entr{'ies' if len(applied) != 1 else 'y'}")


@draft_group.command("proposals")
@click.argument("draft_id", type=int)
@click.pass_context
def show_proposals(ctx, draft_id: int):
    """List suggested assignments and possible duplicates. Nothing is changed."""
    classifier = EntryClassifier(ctx.obj["db"])
    try:
        proposals = classifier.propose(draft_id, ctx.obj["user_id"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    shown = 0
    for proposal in proposals:
        parts = []
        if proposal.contact_id is not None:
            parts.append(f"contact {proposal.contact_id}")
        if proposal.savings_plan_id is not None:
            parts.append(f"plan {proposal.savings_plan_id}")
        if proposal.security_id is not None:
            parts.append(f"security {proposal.security_id}")
        if proposal.duplicate_posting_id is not None:
            parts.append(f"duplicate of posting {proposal.duplicate_posting_id}")
        if not parts:
            continue
        shown += 1
        line = f"Entry {proposal.entry_id:3d}: " + ", ".join(parts)
        if proposal.ambiguous:
            line += f" (check {', '.join(proposal.ambiguous)})"
        click.echo(line)
    if shown == 0:
        click.echo("No proposals.")


@draft_group.command("validate")
@click.argument("draft_id", type=int)
@click.option("--entry", "entry_id", type=int, help="Validate only this entry")
@click.pass_context
def validate_draft(ctx, draft_id: int, entry_id: int | None):
    """Validate a draft. Exits with 1 when errors are found."""
    validator = Validator(ctx.obj["db"])
    try:
        report = validator.validate(draft_id, ctx.obj["user_id"], entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not report.messages:
        click.echo("No findings.")
    echo_report(report)
    if not report.is_valid:
        ctx.exit(1)
    click.echo("Draft is valid." if entry_id is None else f"Entry {entry_id} is valid.")


@draft_group.command("split")
@click.argument("draft_id", type=int)
@click.argument("entry_id", type=int)
@click.option("--amount", "amounts", multiple=True, help="Amount of one split entry (repeatable)")
@click.option("--link", "link_draft_id", type=int, help="Link an existing draft instead")
@click.pass_context
def split_entry(ctx, draft_id: int, entry_id: int, amounts: tuple[str, ...], link_draft_id: int | None):
    """Split an entry into a child draft.

    Examples:
        bookit draft split 1 4 --amount -30 --amount -15
        bookit draft split 1 4 --link 7
    """
    linker = SplitLinker(ctx.obj["db"])
    owner_id = ctx.obj["user_id"]
    try:
        if link_draft_id is not None:
            linker.assign_split_draft(draft_id, entry_id, owner_id, link_draft_id)
            child_id = link_draft_id
        else:
            parsed = [parse_amount(a) for a in amounts]
            child_id = linker.create_split_draft(draft_id, entry_id, owner_id, parsed)
        click.echo(f"Entry {entry_id} split into draft {child_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@draft_group.command("unsplit")
@click.argument("draft_id", type=int)
@click.argument("entry_id", type=int)
@click.pass_context
def unsplit_entry(ctx, draft_id: int, entry_id: int):
    """Remove the split draft link of an entry."""
    linker = SplitLinker(ctx.obj["db"])
    try:
        linker.clear_split_draft(draft_id, entry_id, ctx.obj["user_id"])
        click.echo(f"Split link of entry {entry_id} removed")
    except DomainError as e:
        handle_domain_error(ctx, e)


@draft_group.command("commit")
@click.argument("draft_id", type=int)
@click.pass_context
def commit_draft(ctx, draft_id: int):
    """Close a draft whose entries are all booked."""
    service = DraftService(ctx.obj["db"])
    try:
        service.mark_committed(draft_id, ctx.obj["user_id"])
        click.echo(f"Draft {draft_id} committed")
    except DomainError as e:
        handle_domain_error(ctx, e)


@draft_group.command("cancel")
@click.argument("draft_id", type=int)
@click.pass_context
def cancel_draft(ctx, draft_id: int):
    """Abandon a draft."""
    service = DraftService(ctx.obj["db"])
    try:
        service.cancel(draft_id, ctx.obj["user_id"])
        click.echo(f"Draft {draft_id} cancelled")
    except DomainError as e:
        handle_domain_error(ctx, e)


@draft_group.command("expire")
@click.option("--older-than", "older_than", required=True, help="Cutoff date, e.g. 2024-01-31 or 'last month'")
@click.pass_context
def expire_drafts(ctx, older_than: str):
    """Expire open drafts created before a date."""
    service = DraftService(ctx.obj["db"])
    try:
        cutoff = datetime.combine(parse_date(older_than), time.min)
    except ValueError as e:
        handle_domain_error(ctx, e)
    expired = service.expire_older_than(ctx.obj["user_id"], cutoff)
    click.echo(f"Expired {len(expired)} draft{'s' if len(expired) != 1 else ''}")


def register_commands(cli):
    """Register draft commands with main CLI."""
    cli.add_command(draft_group, name="draft")
