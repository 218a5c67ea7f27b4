"""CLI commands for the Order aggregate."""

from __future__ import annotations

import click

from storefront.application.assemble_order import AssembleOrderHandler
from storefront.application.cancel_order import CancelOrderHandler
from storefront.application.dto import LineRequest, OrderDTO, PaymentOptions, PaymentResult
from storefront.application.refund_order import RefundOrderHandler
from storefront.application.show_order import ShowOrderHandler
from storefront.domain.exceptions import DomainException, NotFoundError
from storefront.domain.gateway.instant_payment import ChargeStatus
from storefront.domain.model.order import BuyerInfo, PaymentMethod
from storefront.domain.model.value_objects import Money
from storefront.infrastructure.bootstrap import (
    confirm_payment_handler,
    instant_payment_provider,
    merchant_directory,
    mint_tokens_handler,
    order_repository,
    process_payment_handler,
    product_catalog,
)

_METHODS = [m.value for m in PaymentMethod]


def _parse_items(raw: str) -> list[LineRequest]:
    """Parse 'p-1:3,p-2:1' into LineRequest list."""
    requests: list[LineRequest] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductID:Quantity'."
            )
        product_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product_id}'."
            )
        requests.append(LineRequest(product_id=product_id.strip(), quantity=qty))
    return requests


def _money(raw: str | None, currency: str = "BRL") -> Money | None:
    return None if raw is None else Money.of(raw, currency)


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order #{dto.id}  (status={dto.status}, method={dto.payment_method})")
    click.echo(f"Merchant: {dto.merchant_id}   Buyer: {dto.buyer_id}")
    if dto.buyer_wallet:
        click.echo(f"Wallet:   {dto.buyer_wallet}")
    click.echo(f"Created:  {dto.created_at}")
    click.echo()

    click.echo(f"  {'Product':<24} {'Qty':>5} {'Price':>14} {'Total':>14} {'NFT':>4}")
    click.echo(f"  {'-'*65}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<24} {item.quantity:>5} {item.unit_price:>14} "
            f"{item.line_total:>14} {'yes' if item.nft else '':>4}"
        )
    click.echo(f"  {'-'*65}")
    click.echo(f"  {'Subtotal':<30} {dto.subtotal:>29}")
    click.echo(f"  {'Shipping':<30} {dto.shipping_cost:>29}")
    click.echo(f"  {'Tax':<30} {dto.tax:>29}")
    click.echo(f"  {'Order Total':<30} {dto.total:>29}")

    if dto.minted_tokens:
        click.echo()
        click.echo(f"Minted tokens: {', '.join(dto.minted_tokens)}")
    if dto.timeline:
        click.echo()
        click.echo("Timeline:")
        for line in dto.timeline:
            click.echo(f"  {line}")


def _display_payment(result: PaymentResult) -> None:
    click.echo(f"Order #{result.order.id}  (status={result.order.status.value})")
    click.echo(f"Transaction: {result.transaction_id}")
    if result.split is not None:
        click.echo(
            f"Split: merchant {result.split.merchant_amount} / "
            f"platform {result.split.platform_amount}"
        )
    if result.qr_code_text:
        click.echo(f"Pay with: {result.qr_code_text}")
    if result.expires_at is not None:
        click.echo(f"Expires:  {result.expires_at:%Y-%m-%d %H:%M UTC}")
    for minted in result.minted_tokens:
        click.echo(f"Minted token {minted.token_id} (tx {minted.transaction_hash})")
    if result.mint_error:
        click.echo(f"Warning: payment accepted but tokens were not minted: {result.mint_error}")


@click.command("create")
@click.option("--merchant", "merchant_id", required=True, help="Merchant ID.")
@click.option("--buyer", "buyer_id", required=True, help="Buyer ID.")
@click.option("--items", required=True, help="Items as 'ProductID:Qty,ProductID:Qty'.")
@click.option("--method", type=click.Choice(_METHODS), default=_METHODS[0], show_default=True)
@click.option("--wallet", default=None, help="Buyer wallet that receives tokens.")
@click.option("--buyer-name", default="", help="Buyer display name.")
@click.option("--buyer-email", default="", help="Buyer e-mail.")
@click.option("--shipping", default=None, help="Shipping cost (e.g. 15.00).")
@click.option("--tax", default=None, help="Tax (e.g. 3.50).")
def order_create(
    merchant_id: str,
    buyer_id: str,
    items: str,
    method: str,
    wallet: str | None,
    buyer_name: str,
    buyer_email: str,
    shipping: str | None,
    tax: str | None,
) -> None:
    """Create a new pending order from a cart."""
    requests = _parse_items(items)

    handler = AssembleOrderHandler(
        order_repo=order_repository(),
        catalog=product_catalog(),
    )

    try:
        order = handler.handle(
            merchant_id=merchant_id,
            buyer_id=buyer_id,
            line_requests=requests,
            payment_method=method,
            buyer_info=BuyerInfo(name=buyer_name, email=buyer_email),
            buyer_wallet=wallet,
            shipping_cost=_money(shipping),
            tax=_money(tax),
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(OrderDTO.from_order(order))


@click.command("show")
@click.option("--id", "order_id", required=True, help="Order ID to display.")
def order_show(order_id: str) -> None:
    """Show details of an existing order."""
    handler = ShowOrderHandler(order_repo=order_repository())

    try:
        dto = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("pay")
@click.option("--id", "order_id", required=True, help="Order ID to pay.")
@click.option("--method", type=click.Choice(_METHODS), required=True)
@click.option("--wallet", default=None, help="Paying wallet (on-chain only).")
@click.option("--amount", default=None, help="Crypto amount (on-chain only).")
@click.option("--token", "token_symbol", default=None, help="Token symbol (on-chain only).")
def order_pay(
    order_id: str,
    method: str,
    wallet: str | None,
    amount: str | None,
    token_symbol: str | None,
) -> None:
    """Start payment of a pending order on one rail."""
    options = PaymentOptions(wallet_address=wallet, crypto_amount=amount, token_symbol=token_symbol)

    try:
        result = process_payment_handler().handle(order_id, method, options)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_payment(result)


@click.command("confirm-payment")
@click.option("--id", "order_id", required=True, help="Order ID awaiting payment.")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ChargeStatus]),
    default=None,
    help="Status reported by the provider webhook; polls the provider if omitted.",
)
def order_confirm_payment(order_id: str, status: str | None) -> None:
    """Confirm, expire or fail an instant payment."""
    reported = ChargeStatus(status) if status else None

    try:
        result = confirm_payment_handler().handle(order_id, reported)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_payment(result)


@click.command("mint")
@click.option("--id", "order_id", required=True, help="Paid order ID.")
@click.option("--wallet", default=None, help="Recipient wallet (defaults to the order's).")
@click.option("--contract", "contract_ref", default=None, help="Token contract (defaults to the merchant's).")
def order_mint(order_id: str, wallet: str | None, contract_ref: str | None) -> None:
    """Mint the access tokens of a paid order."""
    try:
        order = order_repository().get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        if contract_ref is None:
            merchant = merchant_directory().get_by_id(order.merchant_id)
            if merchant is None:
                raise NotFoundError(f"Merchant {order.merchant_id} not found")
            contract_ref = merchant.contract_ref
        summary = mint_tokens_handler().handle(
            order_id, wallet or order.buyer_wallet or "", contract_ref
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id}: minted {len(summary.token_ids)} token(s) on {summary.contract_ref}")
    for token_id, tx_hash in zip(summary.token_ids, summary.transaction_hashes):
        click.echo(f"  token {token_id}  tx {tx_hash}")


@click.command("cancel")
@click.option("--id", "order_id", required=True, help="Order ID to cancel.")
@click.option("--reason", default="Order cancelled", help="Reason recorded on the timeline.")
def order_cancel(order_id: str, reason: str) -> None:
    """Cancel a pending or paid order."""
    handler = CancelOrderHandler(order_repo=order_repository())

    try:
        handler.handle(order_id, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id} cancelled.")


@click.command("refund")
@click.option("--id", "order_id", required=True, help="Paid order ID to refund.")
@click.option("--amount", default=None, help="Partial amount (defaults to the order total).")
def order_refund(order_id: str, amount: str | None) -> None:
    """Refund a paid order."""
    handler = RefundOrderHandler(
        order_repo=order_repository(),
        instant_provider=instant_payment_provider(),
    )

    try:
        order = handler.handle(order_id, _money(amount))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    refunded = order.payment.refund_amount if order.payment else None
    click.echo(f"Order #{order_id} refunded ({refunded}).")
