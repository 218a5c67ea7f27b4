"""Order aggregate — the core of the domain.

The Order is an aggregate root that owns its line items.  It is
immutable: every transition returns a new, validated ``Order`` and
appends a timeline entry, so the state machine can be tested as plain
input/output.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from storefront.domain.exceptions import (
    InvalidStateError,
    UnsupportedMethodError,
    ValidationError,
)
from storefront.domain.model.split import Split
from storefront.domain.model.value_objects import Money, Quantity


class OrderStatus(Enum):
    PENDING = "pending"
    PAYMENT_PENDING = "payment_pending"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    REFUNDED = "refunded"
    EXPIRED = "expired"


class PaymentMethod(Enum):
    INSTANT_PAYMENT = "instant_payment"
    ON_CHAIN = "on_chain"

    @classmethod
    def parse(cls, raw: str | PaymentMethod) -> PaymentMethod:
        if isinstance(raw, PaymentMethod):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise UnsupportedMethodError(f"Unsupported payment method: {raw!r}") from None


_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {
            OrderStatus.PAYMENT_PENDING,
            OrderStatus.PAID,
            OrderStatus.CANCELLED,
            OrderStatus.FAILED,
        }
    ),
    OrderStatus.PAYMENT_PENDING: frozenset(
        {OrderStatus.PAID, OrderStatus.EXPIRED, OrderStatus.FAILED}
    ),
    OrderStatus.PAID: frozenset(
        {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}
    ),
}

NFT_ATTRIBUTE_KEY = "nft"


@dataclass(frozen=True)
class NftEligibility:
    """Descriptor carried in a line item's attributes under ``"nft"``."""

    enabled: bool = False
    token_standard: str = "ERC-721"
    collection_ref: str | None = None
    access_level: str | None = None

    @staticmethod
    def from_attributes(attributes: Mapping[str, Any]) -> NftEligibility:
        raw = attributes.get(NFT_ATTRIBUTE_KEY)
        if isinstance(raw, NftEligibility):
            return raw
        if not isinstance(raw, Mapping):
            return NftEligibility()
        return NftEligibility(
            enabled=bool(raw.get("enabled", False)),
            token_standard=str(raw.get("token_standard") or "ERC-721"),
            collection_ref=raw.get("collection_ref"),
            access_level=raw.get("access_level"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "token_standard": self.token_standard,
            "collection_ref": self.collection_ref,
            "access_level": self.access_level,
        }


@dataclass(frozen=True)
class OrderLineItem:
    """Captures the price snapshot of a product at order-creation time.

    ``unit_price`` is locked when the order is assembled and is never
    looked up again.
    """

    product_id: str
    product_name: str
    quantity: Quantity
    unit_price: Money  # locked at order-creation time
    image: str = ""
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value

    @property
    def nft(self) -> NftEligibility:
        return NftEligibility.from_attributes(self.attributes)

    @property
    def is_nft_eligible(self) -> bool:
        return self.nft.enabled

    @property
    def product_attributes(self) -> dict[str, Any]:
        """Attributes without the embedded NFT descriptor."""
        return {k: v for k, v in self.attributes.items() if k != NFT_ATTRIBUTE_KEY}


@dataclass(frozen=True)
class BuyerInfo:
    name: str = ""
    email: str = ""
    phone: str | None = None


@dataclass(frozen=True)
class PaymentRecord:
    """Payment sub-record written by the payment rails."""

    method: PaymentMethod
    reference: str
    split: Split | None = None
    expires_at: datetime | None = None
    paid_at: datetime | None = None
    refunded_at: datetime | None = None
    refund_amount: Money | None = None


@dataclass(frozen=True)
class TimelineEntry:
    status: OrderStatus
    timestamp: datetime
    description: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Order:
    """Aggregate root for storefront orders.

    Use the ``Order.create()`` factory for new orders — it enforces all
    business rules.  The constructor is kept plain so repositories can
    reconstitute persisted orders without re-validating.

    Invariant: ``total == subtotal + shipping_cost + tax``.  Subtotal and
    total are derived from the line items, so they cannot drift.
    """

    id: str | None
    merchant_id: str
    buyer_id: str
    items: tuple[OrderLineItem, ...]
    payment_method: PaymentMethod
    status: OrderStatus = OrderStatus.PENDING
    buyer_wallet: str | None = None
    buyer: BuyerInfo = field(default_factory=BuyerInfo)
    currency: str = "BRL"
    shipping_cost: Money | None = None
    tax: Money | None = None
    payment: PaymentRecord | None = None
    minted_tokens: tuple[str, ...] = ()
    timeline: tuple[TimelineEntry, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    completed_at: datetime | None = None

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        merchant_id: str,
        buyer_id: str,
        items: list[OrderLineItem],
        payment_method: PaymentMethod,
        buyer_wallet: str | None = None,
        buyer: BuyerInfo | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> Order:
        """Create a new pending order, enforcing all invariants."""
        if not merchant_id or not buyer_id or not items:
            raise ValidationError("Merchant ID, buyer ID, and items are required")

        currencies = {item.unit_price.currency for item in items}
        if len(currencies) > 1:
            raise ValidationError(
                f"All items must share one currency, got {sorted(currencies)}"
            )

        now = _now()
        return Order(
            id=None,
            merchant_id=merchant_id,
            buyer_id=buyer_id,
            items=tuple(items),
            payment_method=payment_method,
            buyer_wallet=buyer_wallet or None,
            buyer=buyer or BuyerInfo(),
            currency=currencies.pop(),
            metadata=dict(metadata or {}),
            timeline=(TimelineEntry(OrderStatus.PENDING, now, "Order created"),),
            created_at=now,
            updated_at=now,
        )

    # --- Computed properties --------------------------------------------------

    @property
    def subtotal(self) -> Money:
        result = Money.zero(self.currency)
        for item in self.items:
            result = result + item.line_total
        return result

    @property
    def total(self) -> Money:
        return (
            self.subtotal
            + (self.shipping_cost or Money.zero(self.currency))
            + (self.tax or Money.zero(self.currency))
        )

    @property
    def nft_eligible_items(self) -> tuple[OrderLineItem, ...]:
        return tuple(item for item in self.items if item.is_nft_eligible)

    @property
    def has_nft_items(self) -> bool:
        return bool(self.nft_eligible_items)

    @property
    def can_be_cancelled(self) -> bool:
        return self.status in (OrderStatus.PENDING, OrderStatus.PAID)

    @property
    def can_be_refunded(self) -> bool:
        return self.status == OrderStatus.PAID and (
            self.payment is None or self.payment.refunded_at is None
        )

    # --- Value updates --------------------------------------------------------

    def with_id(self, order_id: str) -> Order:
        return replace(self, id=order_id)

    def with_charges(self, shipping_cost: Money, tax: Money) -> Order:
        """Apply shipping and tax; only allowed before payment starts."""
        self._require(OrderStatus.PENDING, action="change charges")
        for charge in (shipping_cost, tax):
            if charge.currency != self.currency:
                raise ValidationError(
                    f"Cannot combine {self.currency} with {charge.currency}"
                )
        return replace(self, shipping_cost=shipping_cost, tax=tax, updated_at=_now())

    # --- State transitions ----------------------------------------------------

    def await_payment(self, payment: PaymentRecord) -> Order:
        """pending -> payment_pending, once an instant-payment charge exists."""
        return self._transition(
            OrderStatus.PAYMENT_PENDING,
            "Awaiting instant payment",
            payment=payment,
        )

    def mark_paid(self, payment: PaymentRecord) -> Order:
        """pending|payment_pending -> paid."""
        paid_at = payment.paid_at or _now()
        return self._transition(
            OrderStatus.PAID,
            "Payment confirmed",
            payment=replace(payment, paid_at=paid_at),
        )

    def expire(self) -> Order:
        return self._transition(OrderStatus.EXPIRED, "Payment window expired")

    def fail(self, reason: str) -> Order:
        return self._transition(OrderStatus.FAILED, reason)

    def complete(self, token_ids: list[str] | tuple[str, ...] = ()) -> Order:
        """paid -> completed, recording any minted token ids."""
        if self.minted_tokens:
            raise InvalidStateError(f"Order {self.id} already has minted tokens")
        now = _now()
        description = (
            f"{len(token_ids)} token(s) minted" if token_ids else "Order completed"
        )
        return self._transition(
            OrderStatus.COMPLETED,
            description,
            minted_tokens=tuple(token_ids),
            completed_at=now,
        )

    def cancel(self, reason: str = "Order cancelled") -> Order:
        if not self.can_be_cancelled:
            raise InvalidStateError(
                f"Cannot cancel order {self.id} in {self.status.value} status"
            )
        return self._transition(OrderStatus.CANCELLED, reason)

    def refund(self, amount: Money | None = None) -> Order:
        if not self.can_be_refunded:
            raise InvalidStateError(
                f"Cannot refund order {self.id} in {self.status.value} status"
            )
        if self.payment is None:
            raise InvalidStateError(f"Order {self.id} has no payment to refund")
        amount = amount or self.total
        if amount > self.total:
            raise ValidationError(
                f"Refund {amount} exceeds order total {self.total}"
            )
        now = _now()
        payment = replace(self.payment, refunded_at=now, refund_amount=amount)
        return self._transition(
            OrderStatus.REFUNDED, f"Refunded {amount}", payment=payment
        )

    # --- Internal helpers -----------------------------------------------------

    def _require(self, status: OrderStatus, action: str) -> None:
        if self.status != status:
            raise InvalidStateError(
                f"Cannot {action}: order {self.id} is {self.status.value}, "
                f"expected {status.value}"
            )

    def _transition(self, target: OrderStatus, description: str, **changes: Any) -> Order:
        if target not in _TRANSITIONS.get(self.status, frozenset()):
            raise InvalidStateError(
                f"Cannot move order {self.id} from {self.status.value} to {target.value}"
            )
        now = _now()
        return replace(
            self,
            status=target,
            timeline=self.timeline + (TimelineEntry(target, now, description),),
            updated_at=now,
            **changes,
        )
