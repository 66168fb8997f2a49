"""Matching rule commands."""

import click
from rentbook.cli.account_resolution import resolve_bank_account_or_exit
from rentbook.cli.commands.reprocess import echo_summary
from rentbook.cli.error_handling import handle_domain_error
from rentbook.domain.account import BankAccountService
from rentbook.domain.errors import DomainError
from rentbook.domain.matching_rule import MatchingRuleService

TYPE_CHOICE = click.Choice(["INCOME", "EXPENSE"], case_sensitive=False)


@click.group()
def rule_group():
    """Manage matching rules."""
    pass


@rule_group.command("create")
@click.argument("name")
@click.argument("conditions", metavar="CONDITIONS_JSON")
@click.option("--account", help="Bank account name or ID (omit for a global rule)")
@click.option("--property-id", type=int, help="Property to assign")
@click.option("--type", "txn_type", type=TYPE_CHOICE, help="Transaction type to assign")
@click.option("--category", help="Category to assign")
@click.option("--disabled", is_flag=True, help="Create the rule disabled")
@click.pass_context
def create_rule(
    ctx,
    name: str,
    conditions: str,
    account: str | None,
    property_id: int | None,
    txn_type: str | None,
    category: str | None,
    disabled: bool,
):
    """Create a matching rule and reprocess pending transactions.

    Examples:
        rentbook rule create "Rent" '{"operator":"AND","rules":[{"field":"description","matchType":"contains","value":"rent"}]}' --type INCOME --category Rent
        rentbook rule create "Flat 1" '{"rules":[{"field":"reference","matchType":"equals","value":"FLAT1"}]}' --account 1 --property-id 1
    """
    db = ctx.obj["db"]
    account_id = None
    if account is not None:
        account_id = resolve_bank_account_or_exit(ctx, BankAccountService(db), account)

    try:
        rule_id, summary = MatchingRuleService(db).create_rule(
            name=name,
            conditions=conditions,
            bank_account_id=account_id,
            property_id=property_id,
            type=txn_type,
            category=category,
            enabled=not disabled,
        )
        click.echo(f"Created matching rule '{name}' (ID: {rule_id})")
        echo_summary(summary)
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("list")
@click.option("--account", help="Show the rules that apply to this bank account")
@click.option("--global-only", is_flag=True, help="Show only global rules")
@click.pass_context
def list_rules(ctx, account: str | None, global_only: bool):
    """List matching rules in evaluation order."""
    db = ctx.obj["db"]
    account_id = None
    if account is not None:
        account_id = resolve_bank_account_or_exit(ctx, BankAccountService(db), account)

    rules = MatchingRuleService(db).list_rules(bank_account_id=account_id, include_global=not global_only)
    if not rules:
        click.echo("No matching rules found.")
        return

    click.echo("\nMatching rules:")
    click.echo("-" * 80)
    for r in rules:
        scope = "global" if r.is_global else f"account {r.bank_account_id}"
        outputs = ", ".join(
            part
            for part in (
                f"property {r.property_id}" if r.property_id is not None else "",
                r.type.value if r.type is not None else "",
                r.category or "",
            )
            if part
        )
        status = "" if r.enabled else " (disabled)"
        click.echo(
            f"ID: {r.id:3d} | P{r.priority:<4d} | {r.name:25s} | {scope:10s} | {outputs or '-'}{status}"
        )


@rule_group.command("update")
@click.argument("rule_id", type=int)
@click.option("--name", help="New rule name")
@click.option("--conditions", help="New conditions JSON")
@click.option("--property-id", type=int, help="Property to assign")
@click.option("--type", "txn_type", type=TYPE_CHOICE, help="Transaction type to assign")
@click.option("--category", help="Category to assign")
@click.option("--clear-property", is_flag=True, help="Stop assigning a property")
@click.option("--clear-type", is_flag=True, help="Stop assigning a type")
@click.option("--clear-category", is_flag=True, help="Stop assigning a category")
@click.option("--enable/--disable", "enabled", default=None, help="Enable or disable the rule")
@click.pass_context
def update_rule(
    ctx,
    rule_id: int,
    name: str | None,
    conditions: str | None,
    property_id: int | None,
    txn_type: str | None,
    category: str | None,
    clear_property: bool,
    clear_type: bool,
    clear_category: bool,
    enabled: bool | None,
):
    """Update a matching rule and reprocess pending transactions."""
    changes = {}
    if name is not None:
        changes["name"] = name
    if conditions is not None:
        changes["conditions"] = conditions
    if enabled is not None:
        changes["enabled"] = enabled
    if property_id is not None or clear_property:
        changes["property_id"] = None if clear_property else property_id
    if txn_type is not None or clear_type:
        changes["type"] = None if clear_type else txn_type
    if category is not None or clear_category:
        changes["category"] = None if clear_category else category

    try:
        summary = MatchingRuleService(ctx.obj["db"]).update_rule(rule_id, **changes)
        click.echo(f"Updated matching rule {rule_id}")
        echo_summary(summary)
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("delete")
@click.argument("rule_id", type=int)
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_rule(ctx, rule_id: int, yes: bool):
    """Delete a matching rule and reprocess pending transactions."""
    service = MatchingRuleService(ctx.obj["db"])
    rule = service.get_rule(rule_id)
    if rule is None:
        click.echo(f"Error: Matching rule {rule_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Are you sure you want to delete rule '{rule.name}' (ID: {rule_id})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        summary = service.delete_rule(rule_id)
        click.echo(f"Deleted matching rule '{rule.name}'")
        echo_summary(summary)
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("reorder")
@click.argument("rule_ids", nargs=-1, required=True, type=int)
@click.pass_context
def reorder_rules(ctx, rule_ids: tuple[int, ...]):
    """Set account rule priorities to the given order.

    Examples:
        rentbook rule reorder 4 2 3
    """
    try:
        summaries = MatchingRuleService(ctx.obj["db"]).reorder_rules(list(rule_ids))
        click.echo(f"Reordered {len(rule_ids)} matching rules")
        for summary in summaries.values():
            echo_summary(summary)
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("test")
@click.argument("rule_id", type=int)
@click.option("--description", required=True, help="Sample description")
@click.option("--amount", help="Sample amount")
@click.option("--counterparty", help="Sample counterparty name")
@click.option("--merchant", help="Sample merchant")
@click.option("--reference", help="Sample reference")
@click.pass_context
def test_rule(
    ctx,
    rule_id: int,
    description: str,
    amount: str | None,
    counterparty: str | None,
    merchant: str | None,
    reference: str | None,
):
    """Check whether a rule matches a sample transaction."""
    sample = {
        "description": description,
        "amount": amount,
        "counterpartyName": counterparty,
        "merchant": merchant,
        "reference": reference,
    }
    try:
        matched, result = MatchingRuleService(ctx.obj["db"]).test_rule(rule_id, sample)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not matched:
        click.echo(f"Rule {rule_id} does not match")
        return
    click.echo(f"Rule {rule_id} matches")
    click.echo(f"  Property: {result.property_id if result.property_id is not None else '-'}")
    click.echo(f"  Type: {result.type.value if result.type is not None else '-'}")
    click.echo(f"  Category: {result.category or '-'}")


@rule_group.command("init-defaults")
@click.pass_context
def init_defaults(ctx):
    """Create the default global matching rules."""
    try:
        created = MatchingRuleService(ctx.obj["db"]).create_default_rules()
    except DomainError as e:
        handle_domain_error(ctx, e)
    if created:
        click.echo(f"Created {created} default matching rules")
    else:
        click.echo("Default matching rules already exist")


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
