"""CLI commands for the product catalog."""

from __future__ import annotations

import click

from storefront.infrastructure.bootstrap import product_catalog


@click.command("list")
@click.option("--merchant", "merchant_id", default=None, help="Only this merchant's products.")
def product_list(merchant_id: str | None) -> None:
    """List products in the catalog."""
    products = product_catalog().list_all(merchant_id)

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<10} {'Name':<24} {'Price':>14} {'Stock':>6} {'NFT':>4}")
    click.echo("-" * 62)
    for p in products:
        stock = "-" if p.stock is None else str(p.stock)
        nft = "yes" if p.has_nft_enabled else ""
        name = p.name if p.active else f"{p.name} (off)"
        click.echo(f"{p.id:<10} {name:<24} {str(p.price):>14} {stock:>6} {nft:>4}")
