"""Account management commands."""

import click
from bookit.cli.error_handling import handle_domain_error
from bookit.domain.directory import AccountService
from bookit.domain.errors import DomainError


@click.group()
def account_group():
    """Manage bank accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--bank", help="Bank name (defaults to account name if not provided)")
@click.option("--iban", help="IBAN used to detect the account from statements")
@click.option("--currency", default="EUR", show_default=True, help="Account currency")
@click.pass_context
def create_account(ctx, name: str, bank: str | None, iban: str | None, currency: str):
    """Create a new account.

    Examples:
        bookit account create "Checking" --iban "DE89 3704 0044 0532 0130 00"
        bookit account create "Savings" --bank "My Bank"
    """
    service = AccountService(ctx.obj["db"])
    bank_name = bank if bank is not None else name

    try:
        account_id = service.create_account(
            owner_id=ctx.obj["user_id"],
            name=name,
            bank_name=bank_name,
            iban=iban,
            currency_code=currency,
        )
        click.echo(f"Created account '{name}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List accounts with their current balance."""
    service = AccountService(ctx.obj["db"])

    accounts = service.list_accounts(ctx.obj["user_id"])
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for acc in accounts:
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | {acc.iban or '-':24s} | "
            f"{acc.current_balance:>12} {acc.currency_code}"
        )


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
