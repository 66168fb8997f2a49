"""Pending transaction review commands."""

import click
from rentbook.cli.account_resolution import resolve_bank_account_or_exit
from rentbook.cli.error_handling import handle_domain_error
from rentbook.domain.account import BankAccountService
from rentbook.domain.errors import DomainError
from rentbook.domain.review import ReviewService

TYPE_CHOICE = click.Choice(["INCOME", "EXPENSE"], case_sensitive=False)


@click.group()
def pending_group():
    """Review pending transactions."""
    pass


@pending_group.command("list")
@click.option("--account", help="Bank account name or ID")
@click.option(
    "--status",
    type=click.Choice(["pending", "reviewed", "all"]),
    default="pending",
    show_default=True,
    help="Review status",
)
@click.option("--search", help="Text to search for in descriptions")
@click.pass_context
def list_pending(ctx, account: str | None, status: str, search: str | None):
    """List pending transactions, newest first."""
    db = ctx.obj["db"]
    account_id = None
    if account is not None:
        account_id = resolve_bank_account_or_exit(ctx, BankAccountService(db), account)

    try:
        pending_list = ReviewService(db).list_pending(
            bank_account_id=account_id, review_status=status, search=search
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not pending_list:
        click.echo("No pending transactions found.")
        return

    click.echo(f"\n{'ID':>4s}  {'Date':10s}  {'Amount':>10s}  {'Description':30s}  Classification")
    click.echo("-" * 90)
    for p in pending_list:
        classification = " / ".join(
            [
                f"property {p.property_id}" if p.property_id is not None else "?",
                p.type.value if p.type is not None else "?",
                p.category or "?",
            ]
        )
        marker = f"  [reviewed by {p.reviewed_by}]" if p.is_reviewed else ""
        click.echo(
            f"{p.id:4d}  {p.transaction_date:%Y-%m-%d}  {p.amount:>10.2f}  "
            f"{p.description[:30]:30s}  {classification}{marker}"
        )


@pending_group.command("count")
@click.pass_context
def count_pending(ctx):
    """Show how many pending transactions await review."""
    count = ReviewService(ctx.obj["db"]).count_unreviewed()
    click.echo(f"{count} pending transaction{'s' if count != 1 else ''} awaiting review")


@pending_group.command("update")
@click.argument("pending_ids", nargs=-1, required=True, type=int)
@click.option("--property-id", type=int, help="Property to assign")
@click.option("--type", "txn_type", type=TYPE_CHOICE, help="Transaction type")
@click.option("--category", help="Category")
@click.option("--lease-id", type=int, help="Lease to link")
@click.option("--clear-property", is_flag=True, help="Clear the property")
@click.option("--clear-type", is_flag=True, help="Clear the type")
@click.option("--clear-category", is_flag=True, help="Clear the category")
@click.option("--clear-lease", is_flag=True, help="Clear the lease")
@click.pass_context
def update_pending(
    ctx,
    pending_ids: tuple[int, ...],
    property_id: int | None,
    txn_type: str | None,
    category: str | None,
    lease_id: int | None,
    clear_property: bool,
    clear_type: bool,
    clear_category: bool,
    clear_lease: bool,
):
    """Set classification fields on one or more pending transactions.

    Either every transaction is updated or none is.

    Examples:
        rentbook pending update 3 --property-id 1 --type INCOME --category Rent
        rentbook pending update 3 4 5 --category Repair
    """
    changes = {}
    for field, value, clear in (
        ("property_id", property_id, clear_property),
        ("type", txn_type, clear_type),
        ("category", category, clear_category),
        ("lease_id", lease_id, clear_lease),
    ):
        if value is not None or clear:
            changes[field] = None if clear else value

    try:
        count = ReviewService(ctx.obj["db"]).bulk_update(list(pending_ids), **changes)
        click.echo(f"Updated {count} pending transaction{'s' if count != 1 else ''}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@pending_group.command("approve")
@click.argument("pending_ids", nargs=-1, required=True, type=int)
@click.pass_context
def approve_pending(ctx, pending_ids: tuple[int, ...]):
    """Approve pending transactions into the ledger.

    Either every transaction is approved or none is.
    """
    try:
        ledger_ids = ReviewService(ctx.obj["db"]).bulk_approve(
            list(pending_ids), reviewed_by=ctx.obj["reviewer"]
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Approved {len(ledger_ids)} transaction{'s' if len(ledger_ids) != 1 else ''}")
    for ledger_id in ledger_ids:
        click.echo(f"  Ledger transaction {ledger_id}")


@pending_group.command("reject")
@click.argument("pending_ids", nargs=-1, required=True, type=int)
@click.pass_context
def reject_pending(ctx, pending_ids: tuple[int, ...]):
    """Reject pending transactions without adding them to the ledger."""
    try:
        count = ReviewService(ctx.obj["db"]).bulk_reject(list(pending_ids))
        click.echo(f"Rejected {count} pending transaction{'s' if count != 1 else ''}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register pending commands with main CLI."""
    cli.add_command(pending_group, name="pending")
