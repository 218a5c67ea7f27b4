"""Application service: Refund Order use case.

Only a ``paid`` order can be refunded, and only once.  Instant-payment
charges are refunded through the provider before the order is updated;
if the order changed meanwhile the refund is logged as
``refund_transition_conflict`` for manual reconciliation.
"""

from __future__ import annotations

import structlog

from storefront.domain.exceptions import InvalidStateError, NotFoundError
from storefront.domain.gateway.instant_payment import InstantPaymentProvider
from storefront.domain.model.order import Order, OrderStatus, PaymentMethod
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.order_repository import OrderRepository

log = structlog.get_logger(__name__)


class RefundOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        instant_provider: InstantPaymentProvider,
    ) -> None:
        self._order_repo = order_repo
        self._instant = instant_provider

    def handle(self, order_id: str, amount: Money | None = None) -> Order:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        # Validates state and amount before touching the provider
        refunded = order.refund(amount)
        payment = refunded.payment
        refund_amount = payment.refund_amount  # type: ignore[union-attr]

        if payment.method == PaymentMethod.INSTANT_PAYMENT:  # type: ignore[union-attr]
            self._instant.refund(payment.reference, refund_amount)  # type: ignore[union-attr]

        if not self._order_repo.save_if_status(refunded, expected=OrderStatus.PAID):
            log.error(
                "refund_transition_conflict",
                order_id=order_id,
                reference=payment.reference,  # type: ignore[union-attr]
                method=payment.method.value,  # type: ignore[union-attr]
                amount=refund_amount.amount_minor_units,
            )
            raise InvalidStateError(f"Order {order_id} changed while being refunded")

        log.info(
            "order_refunded",
            order_id=order_id,
            amount=refund_amount.amount_minor_units,
        )
        return refunded
