"""Property reference commands."""

import click
from rentbook.cli.error_handling import handle_domain_error
from rentbook.domain.account import PROPERTY_STATUSES, PropertyService
from rentbook.domain.errors import DomainError


@click.group()
def property_group():
    """Manage properties."""
    pass


@property_group.command("add")
@click.argument("name", metavar="PROPERTY_NAME")
@click.option("--status", type=click.Choice(PROPERTY_STATUSES), default="Active", show_default=True)
@click.pass_context
def add_property(ctx, name: str, status: str):
    """Add a property that rules and the ledger can refer to."""
    service = PropertyService(ctx.obj["db"])
    try:
        property_id = service.create_property(name=name, status=status)
        click.echo(f"Added property '{name}' (ID: {property_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@property_group.command("list")
@click.pass_context
def list_properties(ctx):
    """List all properties."""
    service = PropertyService(ctx.obj["db"])

    properties = service.list_properties()
    if not properties:
        click.echo("No properties found.")
        return

    click.echo("\nProperties:")
    click.echo("-" * 60)
    for prop in properties:
        click.echo(f"ID: {prop.id:3d} | {prop.name:30s} | {prop.status}")


def register_commands(cli):
    """Register property commands with main CLI."""
    cli.add_command(property_group, name="property")
