"""Savings plan commands."""

import click
from bookit.cli.error_handling import handle_domain_error
from bookit.cli.resolution import resolve_savings_plan_or_exit
from bookit.domain.directory import SavingsPlanService
from bookit.domain.entities import SavingsPlanInterval
from bookit.domain.errors import DomainError
from bookit.utils.amount_parser import parse_amount
from bookit.utils.date_parser import parse_date


@click.group()
def plan_group():
    """Manage savings plans."""
    pass


@plan_group.command("create")
@click.argument("name")
@click.option("--target", help="Target amount, e.g. 5000 or 5.000,00")
@click.option("--target-date", help="Next due date of a contribution")
@click.option(
    "--interval",
    type=click.Choice([i.value for i in SavingsPlanInterval]),
    help="Contribution interval; makes the plan recurring",
)
@click.option("--contract", "contract_number", help="Contract number quoted in statement subjects")
@click.pass_context
def create_plan(
    ctx,
    name: str,
    target: str | None,
    target_date: str | None,
    interval: str | None,
    contract_number: str | None,
):
    """Create a savings plan."""
    service = SavingsPlanService(ctx.obj["db"])
    try:
        target_amount = parse_amount(target) if target is not None else None
        due = parse_date(target_date) if target_date is not None else None
        plan_id = service.create_savings_plan(
            ctx.obj["user_id"],
            name,
            target_amount,
            target_date=due,
            interval=SavingsPlanInterval(interval) if interval is not None else None,
            contract_number=contract_number,
        )
        click.echo(f"Created savings plan '{name}' (ID: {plan_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@plan_group.command("list")
@click.pass_context
def list_plans(ctx):
    """List savings plans."""
    service = SavingsPlanService(ctx.obj["db"])
    plans = service.list_savings_plans(ctx.obj["user_id"])
    if not plans:
        click.echo("No savings plans found.")
        return

    click.echo("\nSavings plans:")
    click.echo("-" * 60)
    for plan in plans:
        state = "active" if plan.is_active else "archived"
        target = plan.target_amount if plan.target_amount is not None else "-"
        line = f"ID: {plan.id:3d} | {plan.name:20s} | target {target} | {state}"
        if plan.is_recurring:
            line += f" | {plan.interval.value}, due {plan.target_date}"
        click.echo(line)


@plan_group.command("archive")
@click.argument("plan")
@click.pass_context
def archive_plan(ctx, plan: str):
    """Archive PLAN (name or ID)."""
    plan_id = resolve_savings_plan_or_exit(ctx, plan)
    service = SavingsPlanService(ctx.obj["db"])
    try:
        service.archive(plan_id, ctx.obj["user_id"])
        click.echo(f"Archived savings plan {plan_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register savings plan commands with main CLI."""
    cli.add_command(plan_group, name="plan")
