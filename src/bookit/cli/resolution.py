"""CLI helpers for resolving names of owned entities."""

from __future__ import annotations

import click

from bookit.domain.directory import (
    AccountService,
    ContactService,
    SavingsPlanService,
    SecurityService,
)
from bookit.domain.errors import NotFoundError
from bookit.utils.resolver import resolve_by_name_or_id


def _resolve_or_exit(ctx: click.Context, kind: str, reference: str, get, candidates) -> int:
    """Resolve a name or ID, or exit with a CLI error.

    This keeps error messaging and exit behavior consistent across commands.
    """
    try:
        return resolve_by_name_or_id(kind, reference, get, candidates)
    except NotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


def resolve_account_or_exit(ctx: click.Context, reference: str) -> int:
    service = AccountService(ctx.obj["db"])
    owner_id = ctx.obj["user_id"]
    return _resolve_or_exit(
        ctx,
        "Account",
        reference,
        lambda i: service.get_account(i, owner_id),
        lambda: service.list_accounts(owner_id),
    )


def resolve_contact_or_exit(ctx: click.Context, reference: str) -> int:
    service = ContactService(ctx.obj["db"])
    owner_id = ctx.obj["user_id"]
    return _resolve_or_exit(
        ctx,
        "Contact",
        reference,
        lambda i: service.get_contact(i, owner_id),
        lambda: service.list_contacts(owner_id),
    )


def resolve_savings_plan_or_exit(ctx: click.Context, reference: str) -> int:
    service = SavingsPlanService(ctx.obj["db"])
    owner_id = ctx.obj["user_id"]
    return _resolve_or_exit(
        ctx,
        "Savings plan",
        reference,
        lambda i: service.get_savings_plan(i, owner_id),
        lambda: service.list_savings_plans(owner_id),
    )


def resolve_security_or_exit(ctx: click.Context, reference: str) -> int:
    service = SecurityService(ctx.obj["db"])
    owner_id = ctx.obj["user_id"]
    return _resolve_or_exit(
        ctx,
        "Security",
        reference,
        lambda i: service.get_security(i, owner_id),
        lambda: service.list_securities(owner_id),
    )
