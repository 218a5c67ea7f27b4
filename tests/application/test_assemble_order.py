"""Integration tests for the AssembleOrder use case.

Uses in-memory fakes — no file I/O.
"""

import pytest

from storefront.application.assemble_order import AssembleOrderHandler
from storefront.application.dto import LineRequest, OrderDTO
from storefront.application.show_order import ShowOrderHandler
from storefront.domain.exceptions import (
    InsufficientStockError,
    NotFoundError,
    UnavailableError,
    UnsupportedMethodError,
    ValidationError,
)
from storefront.domain.model.order import NftEligibility, OrderStatus, PaymentMethod
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money
from tests.fakes import WALLET, FakeOrderRepository, FakeProductCatalog


def _setup(
    products: list[Product] | None = None,
) -> tuple[AssembleOrderHandler, FakeOrderRepository, FakeProductCatalog]:
    """Build handler with fakes, optionally pre-loaded with products."""
    if products is None:
        products = [
            Product(id="a", merchant_id="m-1", name="Concert Ticket", price=Money(10000),
                    nft=NftEligibility(enabled=True, access_level="vip")),
            Product(id="b", merchant_id="m-1", name="Poster", price=Money(5000), stock=3),
            Product(id="c", merchant_id="m-1", name="Retired", price=Money(100), active=False),
            Product(id="d", merchant_id="m-2", name="Elsewhere", price=Money(100)),
        ]
    order_repo = FakeOrderRepository()
    catalog = FakeProductCatalog(products)
    handler = AssembleOrderHandler(order_repo, catalog)
    return handler, order_repo, catalog


class TestAssembleOrderHappyPath:

    def test_two_line_cart_totals(self):
        handler, _, _ = _setup()
        order = handler.handle(
            "m-1", "buyer-1",
            [LineRequest("a", 2), LineRequest("b", 1)],
            PaymentMethod.INSTANT_PAYMENT,
        )
        assert order.subtotal == Money(25000)
        assert order.total == Money(25000)
        assert order.total.amount_minor_units == sum(
            i.line_total.amount_minor_units for i in order.items
        )
        assert order.status == OrderStatus.PENDING

    def test_assigns_id_and_persists(self):
        handler, order_repo, _ = _setup()
        order = handler.handle("m-1", "buyer-1", [LineRequest("a", 1)], "on_chain")
        assert order.id == "1"
        assert order_repo.get_by_id("1") == order

    def test_sequential_ids(self):
        handler, _, _ = _setup()
        first = handler.handle("m-1", "buyer-1", [LineRequest("a", 1)], "on_chain")
        second = handler.handle("m-1", "buyer-2", [LineRequest("a", 1)], "on_chain")
        assert int(second.id) == int(first.id) + 1

    def test_line_carries_nft_descriptor(self):
        handler, _, _ = _setup()
        order = handler.handle("m-1", "buyer-1", [LineRequest("a", 1)], "on_chain")
        assert order.items[0].is_nft_eligible
        assert order.items[0].nft.access_level == "vip"

    def test_shipping_and_tax(self):
        handler, _, _ = _setup()
        order = handler.handle(
            "m-1", "buyer-1", [LineRequest("b", 1)], "instant_payment",
            shipping_cost=Money(1500), tax=Money(250),
        )
        assert order.total == Money(6750)

    def test_buyer_wallet_kept(self):
        handler, _, _ = _setup()
        order = handler.handle(
            "m-1", "buyer-1", [LineRequest("a", 1)], "on_chain", buyer_wallet=WALLET
        )
        assert order.buyer_wallet == WALLET


class TestAssembleOrderPriceLock:

    def test_price_snapshot_at_creation(self):
        handler, order_repo, catalog = _setup()
        order = handler.handle("m-1", "buyer-1", [LineRequest("b", 1)], "on_chain")

        catalog.save(catalog.get_by_id("b").with_price(Money(99999)))

        assert order_repo.get_by_id(order.id).total == Money(5000)


class TestAssembleOrderValidation:

    def test_empty_cart_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(ValidationError, match="items are required"):
            handler.handle("m-1", "buyer-1", [], "on_chain")

    def test_missing_buyer_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(ValidationError, match="items are required"):
            handler.handle("m-1", "", [LineRequest("a", 1)], "on_chain")

    def test_unknown_product_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(NotFoundError, match="Product zzz not found"):
            handler.handle("m-1", "buyer-1", [LineRequest("zzz", 1)], "on_chain")

    def test_inactive_product_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(UnavailableError, match="Retired is not available"):
            handler.handle("m-1", "buyer-1", [LineRequest("c", 1)], "on_chain")

    def test_insufficient_stock_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(InsufficientStockError, match="Insufficient stock for product Poster"):
            handler.handle("m-1", "buyer-1", [LineRequest("b", 4)], "on_chain")

    def test_other_merchants_product_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(ValidationError, match="not sold by merchant m-1"):
            handler.handle("m-1", "buyer-1", [LineRequest("d", 1)], "on_chain")

    def test_zero_quantity_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(ValidationError, match="must be positive"):
            handler.handle("m-1", "buyer-1", [LineRequest("a", 0)], "on_chain")

    def test_unknown_method_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(UnsupportedMethodError):
            handler.handle("m-1", "buyer-1", [LineRequest("a", 1)], "cash")

    def test_malformed_wallet_rejected(self):
        handler, _, _ = _setup()
        with pytest.raises(ValidationError, match="Invalid wallet address"):
            handler.handle(
                "m-1", "buyer-1", [LineRequest("a", 1)], "on_chain", buyer_wallet="0x12"
            )

    def test_bad_line_leaves_nothing_behind(self):
        handler, order_repo, _ = _setup()
        with pytest.raises(NotFoundError):
            handler.handle("m-1", "buyer-1", [LineRequest("a", 1), LineRequest("zzz", 1)], "on_chain")
        assert order_repo.get_by_id("1") is None


class TestShowOrder:

    def test_formats_order(self):
        handler, order_repo, _ = _setup()
        order = handler.handle("m-1", "buyer-1", [LineRequest("a", 2)], "instant_payment")

        dto = ShowOrderHandler(order_repo).handle(order.id)

        assert isinstance(dto, OrderDTO)
        assert dto.total == "R$ 200,00"
        assert dto.items[0].nft is True
        assert dto.status == "pending"
        assert len(dto.timeline) == 1

    def test_unknown_order(self):
        with pytest.raises(NotFoundError):
            ShowOrderHandler(FakeOrderRepository()).handle("42")
