"""CLI error handling helpers."""

import click

from bookit.domain.entities import ValidationReport
from bookit.domain.errors import DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    report = getattr(error, "report", None)
    if report is not None:
        echo_report(report, err=True)
    ctx.exit(1)


def echo_report(report: ValidationReport, err: bool = False) -> None:
    """Print validation messages, one per line."""
    for message in report.messages:
        where = f"entry {message.entry_id}" if message.entry_id is not None else "draft"
        click.echo(
            f"  [{message.severity.value:11s}] {message.code} ({where}): {message.message}",
            err=err,
        )
