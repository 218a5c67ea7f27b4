import click

from storefront.infrastructure.cli.access_commands import access_check
from storefront.infrastructure.cli.order_commands import (
    order_cancel,
    order_confirm_payment,
    order_create,
    order_mint,
    order_pay,
    order_refund,
    order_show,
)
from storefront.infrastructure.cli.product_commands import product_list
from storefront.infrastructure.config import get_settings
from storefront.infrastructure.logging_setup import configure_logging


@click.group()
def cli() -> None:
    """Storefront — orders, payments and token-gated access"""
    configure_logging(get_settings())


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def product() -> None:
    """Browse the product catalog."""


@cli.group()
def access() -> None:
    """Check token-gated access."""


# Register subcommands
order.add_command(order_cancel)
order.add_command(order_confirm_payment)
order.add_command(order_create)
order.add_command(order_mint)
order.add_command(order_pay)
order.add_command(order_refund)
order.add_command(order_show)
product.add_command(product_list)
access.add_command(access_check)
