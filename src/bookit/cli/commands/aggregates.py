"""Posting aggregate commands."""

import click
from bookit.cli.error_handling import handle_domain_error
from bookit.domain.aggregation import PostingAggregationService
from bookit.domain.entities import (
    AggregatePeriod,
    DateBasis,
    PostingKind,
    SecurityPostingSubType,
)
from bookit.utils.date_parser import parse_date


def _choice(enum_cls):
    return click.Choice([m.value for m in enum_cls], case_sensitive=False)


def _member(enum_cls, value: str | None):
    if value is None:
        return None
    return next(m for m in enum_cls if m.value.lower() == value.lower())


@click.group()
def aggregates_group():
    """Inspect and rebuild posting aggregates."""
    pass


@aggregates_group.command("rebuild")
@click.option("--batch-size", type=int, help="Rows per transaction (default BOOKIT_REBUILD_BATCH_SIZE)")
@click.pass_context
def rebuild(ctx, batch_size: int | None):
    """Recompute all aggregates and account balances from postings."""
    service = PostingAggregationService(ctx.obj["db"])

    def progress(processed: int, total: int) -> None:
        click.echo(f"  {processed}/{total} rows")

    try:
        result = service.rebuild_for_user(ctx.obj["user_id"], progress=progress, batch_size=batch_size)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"Rebuilt {result.processed} aggregate rows; "
        f"{result.balances_updated} account balance{'s' if result.balances_updated != 1 else ''} corrected"
    )


@aggregates_group.command("series")
@click.argument("kind", type=_choice(PostingKind))
@click.option("--period", type=_choice(AggregatePeriod), default=AggregatePeriod.MONTH.value, show_default=True)
@click.option("--basis", type=_choice(DateBasis), default=DateBasis.BOOKING.value, show_default=True)
@click.option("--id", "dimension_id", type=int, help="Only this account/contact/plan/security")
@click.option("--sub-type", type=_choice(SecurityPostingSubType), help="Security posting sub-type")
@click.option("--start", "start_str", help="First period to include")
@click.option("--end", "end_str", help="Last period to include")
@click.pass_context
def series(
    ctx,
    kind: str,
    period: str,
    basis: str,
    dimension_id: int | None,
    sub_type: str | None,
    start_str: str | None,
    end_str: str | None,
):
    """Show the aggregate time series of a KIND of dimension.

    Examples:
        bookit aggregates series Bank --period Quarter
        bookit aggregates series Contact --id 3 --start "this year"
    """
    service = PostingAggregationService(ctx.obj["db"])
    try:
        points = service.get_time_series(
            ctx.obj["user_id"],
            _member(PostingKind, kind),
            _member(AggregatePeriod, period),
            date_basis=_member(DateBasis, basis),
            dimension_id=dimension_id,
            security_sub_type=_member(SecurityPostingSubType, sub_type),
            start=parse_date(start_str) if start_str else None,
            end=parse_date(end_str) if end_str else None,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    if not points:
        click.echo("No data.")
        return
    for point in points:
        click.echo(f"{point.period_start} | {point.amount:>12}")


def register_commands(cli):
    """Register aggregate commands with main CLI."""
    cli.add_command(aggregates_group, name="aggregates")
