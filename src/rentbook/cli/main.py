"""Main CLI entry point."""

import click
from rentbook.database.factories import create_database
from rentbook.logging_config import setup_logging

# Import and register all commands at module level
from rentbook.cli.commands import (
    account,
    property_cmd,
    ingest,
    rule,
    pending,
    reprocess,
)


@click.group()
@click.option(
    "--db-path",
    help="Database file path or SQLAlchemy URL (overrides RENTBOOK_DB_PATH environment variable)",
    envvar="RENTBOOK_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="RENTBOOK_LOG_LEVEL",
    help="Logging verbosity",
)
@click.option(
    "--reviewer",
    default="cli",
    show_default=True,
    envvar="RENTBOOK_REVIEWER",
    help="Identity recorded on manual approvals",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str, reviewer: str):
    """Rentbook - Rental property bookkeeping.

    Import bank transactions, classify them with matching rules and approve
    them into the property ledger.
    """
    ctx.ensure_object(dict)
    ctx.obj["reviewer"] = reviewer

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        setup_logging(log_level)
        db = create_database(db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
property_cmd.register_commands(cli)
ingest.register_commands(cli)
rule.register_commands(cli)
pending.register_commands(cli)
reprocess.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
