"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from storefront.domain.model.order import Order, PaymentMethod
from storefront.domain.model.split import Split
from storefront.domain.model.token import MintResult
from storefront.domain.model.value_objects import Money


@dataclass(frozen=True)
class LineRequest:
    """Input: what the buyer put in the cart (product id + quantity)."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class PaymentOptions:
    """Input for the on-chain rail; ignored by the instant-payment rail."""

    wallet_address: str | None = None
    crypto_amount: str | None = None
    token_symbol: str | None = None


@dataclass(frozen=True)
class PaymentResult:
    order: Order
    method: PaymentMethod
    transaction_id: str
    payout_key: str | None = None
    qr_code: str | None = None
    qr_code_text: str | None = None
    expires_at: datetime | None = None
    split: Split | None = None
    minted_tokens: tuple[MintResult, ...] = ()
    mint_error: str | None = None


@dataclass(frozen=True)
class AccessRequest:
    wallet_address: str
    contract_ref: str | None = None
    merchant_id: str | None = None
    product_id: str | None = None
    signature: str | None = None
    challenge: str | None = None
    required_levels: Iterable[str] | str | None = None
    min_balance: int = 1


@dataclass(frozen=True)
class OrderLineItemDTO:
    """Output: a single line item as displayed to the user."""

    product_name: str
    quantity: int
    unit_price: str  # formatted, e.g. "R$ 150,00"
    line_total: str
    nft: bool


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    id: str
    merchant_id: str
    buyer_id: str
    status: str
    payment_method: str
    items: list[OrderLineItemDTO]
    subtotal: str
    shipping_cost: str
    tax: str
    total: str
    created_at: str
    buyer_wallet: str | None = None
    minted_tokens: list[str] = field(default_factory=list)
    timeline: list[str] = field(default_factory=list)

    @staticmethod
    def from_order(order: Order) -> OrderDTO:
        return OrderDTO(
            id=order.id,  # type: ignore[arg-type]
            merchant_id=order.merchant_id,
            buyer_id=order.buyer_id,
            status=order.status.value,
            payment_method=order.payment_method.value,
            items=[
                OrderLineItemDTO(
                    product_name=item.product_name,
                    quantity=item.quantity.value,
                    unit_price=str(item.unit_price),
                    line_total=str(item.line_total),
                    nft=item.is_nft_eligible,
                )
                for item in order.items
            ],
            subtotal=str(order.subtotal),
            shipping_cost=str(order.shipping_cost or Money.zero(order.currency)),
            tax=str(order.tax or Money.zero(order.currency)),
            total=str(order.total),
            created_at=order.created_at.strftime("%Y-%m-%d %H:%M UTC"),
            buyer_wallet=order.buyer_wallet,
            minted_tokens=list(order.minted_tokens),
            timeline=[
                f"{e.timestamp:%Y-%m-%d %H:%M} {e.status.value}: {e.description}"
                for e in order.timeline
            ],
        )
