"""Integration tests for confirming instant payments."""

from datetime import datetime, timedelta, timezone

import pytest

from storefront.application.confirm_payment import ConfirmPaymentHandler
from storefront.application.mint_tokens import MintOrderTokensHandler
from storefront.domain.exceptions import InvalidStateError, NotFoundError
from storefront.domain.gateway.instant_payment import ChargeStatus
from storefront.domain.model.merchant import Merchant
from storefront.domain.model.order import (
    Order,
    OrderLineItem,
    OrderStatus,
    PaymentMethod,
    PaymentRecord,
)
from storefront.domain.model.value_objects import Money, Quantity
from tests.fakes import (
    CONTRACT,
    WALLET,
    FakeInstantPaymentProvider,
    FakeMerchantDirectory,
    FakeMintingService,
    FakeOrderRepository,
)


def _setup(
    wallet: str | None = WALLET,
    expires_in: timedelta = timedelta(minutes=30),
    nft: bool = True,
):
    order_repo = FakeOrderRepository()
    instant = FakeInstantPaymentProvider()
    minting = FakeMintingService()
    merchants = FakeMerchantDirectory(
        [Merchant(id="m-1", name="Arena", contract_ref=CONTRACT, payout_key="arena@pix")]
    )
    item = OrderLineItem(
        product_id="a",
        product_name="Backstage",
        quantity=Quantity(1),
        unit_price=Money(10000),
        attributes={"nft": {"enabled": True}} if nft else {},
    )
    order = Order.create("m-1", "buyer-1", [item], PaymentMethod.INSTANT_PAYMENT, buyer_wallet=wallet)
    order = order_repo.save(
        order.await_payment(
            PaymentRecord(
                method=PaymentMethod.INSTANT_PAYMENT,
                reference="charge-1",
                expires_at=datetime.now(timezone.utc) + expires_in,
            )
        )
    )
    instant.statuses["charge-1"] = ChargeStatus.PENDING
    handler = ConfirmPaymentHandler(
        order_repo, merchants, instant, MintOrderTokensHandler(order_repo, minting)
    )
    return handler, order_repo, instant, minting, order


class TestConfirmPaid:

    def test_webhook_completion_pays_and_mints(self):
        handler, order_repo, _, minting, order = _setup()

        result = handler.handle(order.id, ChargeStatus.COMPLETED)

        assert result.order.status == OrderStatus.COMPLETED
        assert len(result.minted_tokens) == 1
        assert minting.calls[0][1] == WALLET
        assert order_repo.get_by_id(order.id).payment.paid_at is not None

    def test_polled_completion(self):
        handler, order_repo, instant, _, order = _setup(nft=False)
        instant.statuses["charge-1"] = ChargeStatus.COMPLETED

        result = handler.handle(order.id)

        assert result.order.status == OrderStatus.COMPLETED
        assert order_repo.get_by_id(order.id).minted_tokens == ()

    def test_paid_without_wallet_stays_paid(self):
        handler, order_repo, _, minting, order = _setup(wallet=None)

        result = handler.handle(order.id, ChargeStatus.COMPLETED)

        assert result.order.status == OrderStatus.PAID
        assert "No buyer wallet" in result.mint_error
        assert minting.calls == []


class TestConfirmClosed:

    def test_still_pending_inside_window(self):
        handler, order_repo, _, _, order = _setup()
        result = handler.handle(order.id)
        assert result.order.status == OrderStatus.PAYMENT_PENDING
        assert order_repo.get_by_id(order.id).status == OrderStatus.PAYMENT_PENDING

    def test_pending_after_window_expires(self):
        handler, order_repo, _, _, order = _setup(expires_in=timedelta(minutes=-1))
        result = handler.handle(order.id)
        assert result.order.status == OrderStatus.EXPIRED
        assert order_repo.get_by_id(order.id).status == OrderStatus.EXPIRED

    def test_provider_reports_expired(self):
        handler, _, _, _, order = _setup()
        assert handler.handle(order.id, ChargeStatus.EXPIRED).order.status == OrderStatus.EXPIRED

    def test_provider_reports_failed(self):
        handler, _, _, _, order = _setup()
        assert handler.handle(order.id, ChargeStatus.FAILED).order.status == OrderStatus.FAILED


class TestConfirmGuards:

    def test_second_confirmation_rejected(self):
        handler, _, _, _, order = _setup()
        handler.handle(order.id, ChargeStatus.COMPLETED)
        with pytest.raises(InvalidStateError, match="not awaiting payment"):
            handler.handle(order.id, ChargeStatus.COMPLETED)

    def test_unknown_order(self):
        handler, _, _, _, _ = _setup()
        with pytest.raises(NotFoundError):
            handler.handle("404")
