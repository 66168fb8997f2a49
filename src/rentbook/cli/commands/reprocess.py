"""Reprocessing command."""

import click
from rentbook.cli.account_resolution import resolve_bank_account_or_exit
from rentbook.cli.error_handling import handle_domain_error
from rentbook.domain.account import BankAccountService
from rentbook.domain.errors import DomainError
from rentbook.domain.reprocessing import ReprocessingService


def echo_summary(summary: dict[str, int]) -> None:
    """Print a reprocessing summary."""
    click.echo(
        f"Reprocessed {summary['processed']} pending transactions: "
        f"{summary['approved']} approved, {summary['failed']} failed"
    )


@click.command("reprocess")
@click.option("--account", help="Bank account name or ID (default: all accounts)")
@click.pass_context
def reprocess_pending(ctx, account: str | None):
    """Re-evaluate unreviewed pending transactions against the current rules."""
    db = ctx.obj["db"]
    account_id = None
    if account is not None:
        account_id = resolve_bank_account_or_exit(ctx, BankAccountService(db), account)

    try:
        echo_summary(ReprocessingService(db).reprocess(bank_account_id=account_id))
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register reprocess command with main CLI."""
    cli.add_command(reprocess_pending)
