"""Bank account management commands."""

import click
from rentbook.cli.error_handling import handle_domain_error
from rentbook.domain.account import BankAccountService
from rentbook.domain.errors import DomainError


@click.group()
def account_group():
    """Manage bank accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--provider", default="monzo", show_default=True, help="Banking provider")
@click.option("--external-id", help="Provider-assigned account ID")
@click.pass_context
def create_account(ctx, name: str, provider: str, external_id: str | None):
    """Create a new bank account.

    Examples:
        rentbook account create "Rent Account"
        rentbook account create "Joint" --external-id acc_00009
    """
    service = BankAccountService(ctx.obj["db"])
    try:
        account_id = service.create_bank_account(
            name=name, provider=provider, external_account_id=external_id
        )
        click.echo(f"Created bank account '{name}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all bank accounts."""
    service = BankAccountService(ctx.obj["db"])

    accounts = service.list_bank_accounts()
    if not accounts:
        click.echo("No bank accounts found.")
        return

    click.echo("\nBank accounts:")
    click.echo("-" * 60)
    for acc in accounts:
        click.echo(f"ID: {acc.id:3d} | {acc.name:20s} | Provider: {acc.provider}")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
