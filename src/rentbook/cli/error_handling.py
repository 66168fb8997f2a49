"""CLI error handling helpers."""

import click

from rentbook.domain.errors import DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error, including per-item details, and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    for detail in getattr(error, "details", None) or []:
        item = detail.get("id", detail.get("external_id", detail.get("path", "?")))
        click.echo(f"  {item}: {detail.get('reason')}", err=True)
    ctx.exit(1)
