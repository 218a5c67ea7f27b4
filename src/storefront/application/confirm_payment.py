"""Application service: Confirm an instant payment.

Driven either by a provider webhook (which reports the status) or by a
poll.  ``payment_pending`` moves to ``paid`` (and tokens are minted), to
``expired`` once the charge window has passed, or to ``failed``.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from storefront.application.dto import PaymentResult
from storefront.application.mint_tokens import MintOrderTokensHandler
from storefront.domain.exceptions import InvalidStateError, NotFoundError
from storefront.domain.gateway.instant_payment import ChargeStatus, InstantPaymentProvider
from storefront.domain.model.order import Order, OrderStatus, PaymentMethod
from storefront.domain.repository.merchant_directory import MerchantDirectory
from storefront.domain.repository.order_repository import OrderRepository

log = structlog.get_logger(__name__)


class ConfirmPaymentHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        merchant_directory: MerchantDirectory,
        instant_provider: InstantPaymentProvider,
        fulfillment: MintOrderTokensHandler,
    ) -> None:
        self._order_repo = order_repo
        self._merchants = merchant_directory
        self._instant = instant_provider
        self._fulfillment = fulfillment

    def handle(
        self, order_id: str, reported_status: ChargeStatus | None = None
    ) -> PaymentResult:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        if order.status != OrderStatus.PAYMENT_PENDING or order.payment is None:
            raise InvalidStateError(
                f"Order is not awaiting payment. Current status: {order.status.value}"
            )

        charge_id = order.payment.reference
        status = reported_status or self._instant.charge_status(charge_id)

        if status == ChargeStatus.COMPLETED:
            return self._on_paid(order)

        if status == ChargeStatus.EXPIRED or (
            status == ChargeStatus.PENDING and self._window_closed(order)
        ):
            updated = order.expire()
        elif status == ChargeStatus.FAILED:
            updated = order.fail("Instant payment failed at provider")
        else:
            updated = order

        if updated is not order:
            self._save(updated)
            log.info("instant_payment_closed", order_id=order_id, status=updated.status.value)

        return PaymentResult(
            order=updated,
            method=PaymentMethod.INSTANT_PAYMENT,
            transaction_id=charge_id,
            expires_at=order.payment.expires_at,
            split=order.payment.split,
        )

    def _on_paid(self, order: Order) -> PaymentResult:
        paid = order.mark_paid(order.payment)
        self._save(paid)
        log.info("instant_payment_confirmed", order_id=order.id, charge_id=order.payment.reference)

        merchant = self._merchants.get_by_id(order.merchant_id)
        if merchant is None:
            raise NotFoundError(f"Merchant {order.merchant_id} not found")

        outcome = self._fulfillment.fulfil_after_payment(
            paid, order.buyer_wallet, merchant.contract_ref
        )
        return PaymentResult(
            order=outcome.order,
            method=PaymentMethod.INSTANT_PAYMENT,
            transaction_id=order.payment.reference,
            split=order.payment.split,
            minted_tokens=outcome.summary.results if outcome.summary else (),
            mint_error=outcome.error,
        )

    def _save(self, order: Order) -> None:
        if not self._order_repo.save_if_status(order, expected=OrderStatus.PAYMENT_PENDING):
            raise InvalidStateError(f"Order {order.id} was already confirmed or closed")

    @staticmethod
    def _window_closed(order: Order) -> bool:
        expires_at = order.payment.expires_at if order.payment else None
        return expires_at is not None and expires_at <= datetime.now(timezone.utc)
