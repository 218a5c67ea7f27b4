"""CLI commands for token-gated access checks."""

from __future__ import annotations

import click

from storefront.application.dto import AccessRequest
from storefront.domain.exceptions import DomainException, TransientError
from storefront.infrastructure.bootstrap import validate_access_handler


@click.command("check")
@click.option("--wallet", required=True, help="Wallet address to check.")
@click.option("--contract", "contract_ref", default=None, help="Token contract.")
@click.option("--merchant", "merchant_id", default=None, help="Merchant whose contract to use.")
@click.option("--product", "product_id", default=None, help="Require a token for this product.")
@click.option("--level", "levels", multiple=True, help="Accepted access level (repeatable).")
@click.option("--min-balance", default=1, show_default=True, type=int)
@click.option("--challenge", default=None, help="Challenge the wallet signs.")
@click.option("--signature", default=None, help="Signature over the challenge.")
def access_check(
    wallet: str,
    contract_ref: str | None,
    merchant_id: str | None,
    product_id: str | None,
    levels: tuple[str, ...],
    min_balance: int,
    challenge: str | None,
    signature: str | None,
) -> None:
    """Check whether a wallet holds a qualifying access token."""
    request = AccessRequest(
        wallet_address=wallet,
        contract_ref=contract_ref,
        merchant_id=merchant_id,
        product_id=product_id,
        signature=signature,
        challenge=challenge,
        required_levels=levels or None,
        min_balance=min_balance,
    )

    try:
        result = validate_access_handler().handle(request)
    except TransientError as exc:
        raise click.ClickException(f"{exc} (retry in {exc.retry_after:g}s)")
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if result.awaiting_signature:
        click.echo(f"Sign this challenge with {wallet}: {result.challenge}")
        return

    if result.access_granted:
        click.echo(f"Access granted: {result.token_count} token(s) on {result.contract_ref}")
        if result.matched_levels:
            click.echo(f"Levels: {', '.join(sorted(result.matched_levels))}")
        return

    try:
        result.raise_for_denial()
    except DomainException as exc:
        raise click.ClickException(f"Access denied ({result.denial.value}): {exc}")
