"""Provider transaction ingestion command."""

import json

import click
from rentbook.cli.account_resolution import resolve_bank_account_or_exit
from rentbook.cli.error_handling import handle_domain_error
from rentbook.domain.account import BankAccountService
from rentbook.domain.errors import DomainError
from rentbook.domain.ingestion import IngestionService


@click.command("ingest")
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Bank account name or ID")
@click.pass_context
def ingest_transactions(ctx, json_file: str, account: str):
    """Ingest provider transactions from a JSON file.

    The file holds a list of provider transactions, or an object with a
    "transactions" list as returned by the provider's API.

    Examples:
        rentbook ingest transactions.json --account "Rent Account"
    """
    db = ctx.obj["db"]
    account_id = resolve_bank_account_or_exit(ctx, BankAccountService(db), account)

    try:
        with open(json_file, encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as e:
        click.echo(f"Error: Cannot read {json_file}: {e}", err=True)
        ctx.exit(1)

    records = payload.get("transactions") if isinstance(payload, dict) else payload
    if not isinstance(records, list):
        click.echo("Error: Expected a list of transactions", err=True)
        ctx.exit(1)

    try:
        result = IngestionService(db).ingest(records, bank_account_id=account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo("\nIngest complete:")
    click.echo(f"  Imported: {result['processed']} transactions")
    click.echo(f"  Skipped: {result['duplicates_skipped']} duplicates")
    click.echo(f"  Auto-approved: {result['auto_approved']}")
    if result["errors"]:
        click.echo(f"  Errors: {len(result['errors'])}")
        for error in result["errors"]:
            click.echo(f"    {error['external_id']}: {error['reason']}", err=True)


def register_commands(cli):
    """Register ingest command with main CLI."""
    cli.add_command(ingest_transactions)
