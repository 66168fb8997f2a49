"""CLI helpers for bank account resolution."""

from __future__ import annotations

import click

from rentbook.domain.account import BankAccountService


def resolve_bank_account_or_exit(
    ctx: click.Context, account_service: BankAccountService, account: str | int
) -> int:
    """Resolve bank account name or ID, or exit with a CLI error."""
    try:
        return account_service.resolve(str(account))
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
