"""Application service: Assemble Order use case.

Turns a cart into a priced, persisted ``pending`` order.  Every line is
resolved and validated before anything is written, so a bad line never
leaves a partial order behind.  No payment or minting happens here.
"""

from __future__ import annotations

from typing import Any, Mapping

import structlog

from storefront.application.dto import LineRequest
from storefront.domain.exceptions import (
    InsufficientStockError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from storefront.domain.model.order import BuyerInfo, Order, OrderLineItem, PaymentMethod
from storefront.domain.model.value_objects import Money, Quantity, WalletAddress
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.product_catalog import ProductCatalog

log = structlog.get_logger(__name__)


class AssembleOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        catalog: ProductCatalog,
    ) -> None:
        self._order_repo = order_repo
        self._catalog = catalog

    def handle(
        self,
        merchant_id: str,
        buyer_id: str,
        line_requests: list[LineRequest],
        payment_method: PaymentMethod | str,
        buyer_info: BuyerInfo | None = None,
        buyer_wallet: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        shipping_cost: Money | None = None,
        tax: Money | None = None,
    ) -> Order:
        """Assemble and persist a new order.

        Steps:
        1. Reject empty merchant, buyer or cart.
        2. Resolve each product (must exist, be active and in stock).
        3. Build line items with *current* prices (snapshot).
        4. Let the Order aggregate validate it, apply optional shipping
           and tax, and persist it as pending.
        """
        if not merchant_id or not buyer_id or not line_requests:
            raise ValidationError("Merchant ID, buyer ID, and items are required")

        method = PaymentMethod.parse(payment_method)
        if buyer_wallet:
            WalletAddress(buyer_wallet)

        line_items = [self._resolve_line(merchant_id, req) for req in line_requests]

        order = Order.create(
            merchant_id=merchant_id,
            buyer_id=buyer_id,
            items=line_items,
            payment_method=method,
            buyer_wallet=buyer_wallet,
            buyer=buyer_info,
            metadata=metadata,
        )
        if shipping_cost is not None or tax is not None:
            order = order.with_charges(
                shipping_cost or Money.zero(order.currency),
                tax or Money.zero(order.currency),
            )
        order = self._order_repo.save(order)

        log.info(
            "order_assembled",
            order_id=order.id,
            merchant_id=merchant_id,
            lines=len(order.items),
            total=order.total.amount_minor_units,
            currency=order.currency,
        )
        return order

    def _resolve_line(self, merchant_id: str, req: LineRequest) -> OrderLineItem:
        quantity = Quantity(req.quantity)

        product = self._catalog.get_by_id(req.product_id)
        if product is None:
            raise NotFoundError(f"Product {req.product_id} not found")
        if product.merchant_id != merchant_id:
            raise ValidationError(
                f"Product {product.name} is not sold by merchant {merchant_id}"
            )
        if not product.active:
            raise UnavailableError(f"Product {product.name} is not available")
        if not product.has_stock_for(quantity.value):
            raise InsufficientStockError(
                f"Insufficient stock for product {product.name} "
                f"(need {quantity.value}, have {product.stock})"
            )

        return OrderLineItem(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price=product.price,  # <-- price snapshot
            image=product.image,
            attributes=product.line_attributes(),
        )
