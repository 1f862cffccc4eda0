"""Main CLI entry point."""

import click
from bookit.config import default_log_level, default_user_id
from bookit.database.factories import create_sqlite_database
from bookit.logging_config import configure_logging, parse_level

# Import and register all commands at module level
from bookit.cli.commands import (
    account,
    contact,
    plan,
    security,
    draft,
    entry,
    book,
    aggregates,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BOOKIT_DB_PATH environment variable)",
    envvar="BOOKIT_DB_PATH",
)
@click.option(
    "--user-id",
    type=int,
    default=None,
    help="User whose data is used (overrides BOOKIT_USER_ID, default 1)",
)
@click.option(
    "--log-level",
    default=None,
    help="Log level written to stderr as JSON lines (overrides BOOKIT_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx, db_path: str | None, user_id: int | None, log_level: str | None):
    """Bookit - Bank statement booking.

    Review bank statement drafts, assign contacts, savings plans and
    securities to their entries, and book them into postings with
    per-period aggregates and account balances.
    """
    ctx.ensure_object(dict)

    try:
        configure_logging(level=parse_level(log_level or default_log_level()))
        ctx.obj["user_id"] = user_id if user_id is not None else default_user_id()
    except ValueError as e:
        raise click.BadParameter(str(e))

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
contact.register_commands(cli)
plan.register_commands(cli)
security.register_commands(cli)
draft.register_commands(cli)
entry.register_commands(cli)
book.register_commands(cli)
aggregates.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
