"""Application service: Process Payment use case.

Routes a pending order to one of two mutually exclusive rails:

* instant payment: split computed, provider charge created, order moves
  to ``payment_pending`` until the provider confirms;
* on-chain: transfer validated and submitted, order moves straight to
  ``paid`` and tokens are minted for eligible lines.

A rail failure leaves the order ``pending``.  A mint failure after an
accepted on-chain transfer does not undo ``paid``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

import structlog

from storefront.application.dto import PaymentOptions, PaymentResult
from storefront.application.mint_tokens import MintOrderTokensHandler
from storefront.domain.exceptions import (
    InvalidStateError,
    NotFoundError,
    PaymentFailedError,
    UnavailableError,
    ValidationError,
)
from storefront.domain.gateway.instant_payment import ChargeRequest, InstantPaymentProvider
from storefront.domain.gateway.onchain_payment import OnChainPaymentGateway, TransferRequest
from storefront.domain.model.merchant import Merchant
from storefront.domain.model.order import Order, OrderStatus, PaymentMethod, PaymentRecord
from storefront.domain.model.value_objects import WalletAddress
from storefront.domain.repository.merchant_directory import MerchantDirectory
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.service.split_calculator import SplitCalculator

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PaymentPolicy:
    """Platform-wide payment settings, injected by the composition root."""

    default_split_percentage: Decimal = Decimal("0.05")
    expiry_minutes: int = 30
    # crypto units required per minor currency unit of the order total
    crypto_rate: Decimal = Decimal("0.001")


class ProcessPaymentHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        merchant_directory: MerchantDirectory,
        instant_provider: InstantPaymentProvider,
        onchain_gateway: OnChainPaymentGateway,
        fulfillment: MintOrderTokensHandler,
        policy: PaymentPolicy | None = None,
        split_calculator: SplitCalculator | None = None,
    ) -> None:
        self._order_repo = order_repo
        self._merchants = merchant_directory
        self._instant = instant_provider
        self._onchain = onchain_gateway
        self._fulfillment = fulfillment
        self._policy = policy or PaymentPolicy()
        self._splits = split_calculator or SplitCalculator()

    def handle(
        self,
        order_id: str,
        method: PaymentMethod | str,
        options: PaymentOptions | None = None,
    ) -> PaymentResult:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        merchant = self._merchants.get_by_id(order.merchant_id)
        if merchant is None:
            raise NotFoundError(f"Merchant {order.merchant_id} not found")

        if order.status != OrderStatus.PENDING:
            raise InvalidStateError(
                f"Order is not in pending status. Current status: {order.status.value}"
            )

        rail = PaymentMethod.parse(method)
        if not merchant.can_process_orders():
            raise UnavailableError(f"Merchant {merchant.id} is not accepting payments")

        if rail == PaymentMethod.INSTANT_PAYMENT:
            return self._pay_instant(order, merchant)
        return self._pay_on_chain(order, merchant, options or PaymentOptions())

    # --- Instant payment ------------------------------------------------------

    def _pay_instant(self, order: Order, merchant: Merchant) -> PaymentResult:
        split = self._splits.split(
            order.total, merchant.platform_cut(self._policy.default_split_percentage)
        )
        request = ChargeRequest(
            amount=order.total,
            payout_key=merchant.payout_key,
            description=f"Order {order.id} - {merchant.name}",
            merchant_ref=merchant.id,
            order_ref=order.id,  # type: ignore[arg-type]
            split=split,
            expires_in_seconds=self._policy.expiry_minutes * 60,
        )

        try:
            charge = self._instant.create_charge(request)
            reference = self._instant.payment_reference(charge, request)
        except PaymentFailedError as exc:
            raise PaymentFailedError(f"Instant payment failed: {exc}") from exc

        updated = order.await_payment(
            PaymentRecord(
                method=PaymentMethod.INSTANT_PAYMENT,
                reference=charge.charge_id,
                split=split,
                expires_at=charge.expires_at,
            )
        )
        self._save_transition(updated, charge.charge_id)

        log.info(
            "instant_payment_requested",
            order_id=order.id,
            charge_id=charge.charge_id,
            merchant_amount=split.merchant_amount.amount_minor_units,
            platform_amount=split.platform_amount.amount_minor_units,
            expires_at=charge.expires_at.isoformat(),
        )
        return PaymentResult(
            order=updated,
            method=PaymentMethod.INSTANT_PAYMENT,
            transaction_id=charge.charge_id,
            payout_key=merchant.payout_key,
            qr_code=reference.qr_code,
            qr_code_text=reference.qr_code_text,
            expires_at=charge.expires_at,
            split=split,
        )

    # --- On-chain payment -----------------------------------------------------

    def _pay_on_chain(
        self, order: Order, merchant: Merchant, options: PaymentOptions
    ) -> PaymentResult:
        if not options.wallet_address or not options.crypto_amount or not options.token_symbol:
            raise ValidationError("Missing required on-chain payment information")

        wallet = WalletAddress(options.wallet_address)
        amount = self._validate_amount(order, options.crypto_amount, options.token_symbol)

        try:
            tx_hash = self._onchain.submit_transfer(
                TransferRequest(
                    from_wallet=str(wallet),
                    to_contract=merchant.contract_ref,
                    amount=amount,
                    token_symbol=options.token_symbol,
                    order_ref=order.id,  # type: ignore[arg-type]
                )
            )
        except PaymentFailedError as exc:
            raise PaymentFailedError(f"On-chain payment failed: {exc}") from exc

        paid = order.mark_paid(
            PaymentRecord(
                method=PaymentMethod.ON_CHAIN,
                reference=tx_hash,
                paid_at=datetime.now(timezone.utc),
            )
        )
        self._save_transition(paid, tx_hash)
        log.info("on_chain_payment_accepted", order_id=order.id, tx_hash=tx_hash)

        outcome = self._fulfillment.fulfil_after_payment(
            paid, str(wallet), merchant.contract_ref
        )
        return PaymentResult(
            order=outcome.order,
            method=PaymentMethod.ON_CHAIN,
            transaction_id=tx_hash,
            minted_tokens=outcome.summary.results if outcome.summary else (),
            mint_error=outcome.error,
        )

    def _validate_amount(self, order: Order, raw_amount: str, token_symbol: str) -> Decimal:
        try:
            amount = Decimal(str(raw_amount).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Crypto amount must be numeric, got {raw_amount!r}") from None
        if not amount.is_finite() or amount <= 0:
            raise ValidationError("Crypto amount must be positive")

        required = Decimal(order.total.amount_minor_units) * self._policy.crypto_rate
        if amount < required:
            raise ValidationError(
                f"Crypto amount {amount} {token_symbol} is below the required {required}"
            )
        return amount

    def _save_transition(self, order: Order, reference: str) -> None:
        if not self._order_repo.save_if_status(order, expected=OrderStatus.PENDING):
            log.error(
                "payment_transition_conflict",
                order_id=order.id,
                reference=reference,
                target=order.status.value,
            )
            raise InvalidStateError(
                f"Order {order.id} changed while payment {reference} was being processed"
            )
