"""JSON-file-backed implementation of OrderRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from storefront.domain.model.order import (
    BuyerInfo,
    Order,
    OrderLineItem,
    OrderStatus,
    PaymentMethod,
    PaymentRecord,
    TimelineEntry,
)
from storefront.domain.model.split import Split
from storefront.domain.model.value_objects import Money, Quantity
from storefront.domain.repository.order_repository import OrderRepository
from storefront.infrastructure.persistence.json_store import JsonFile


class JsonOrderRepository(OrderRepository):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path, empty=[])

    # --- OrderRepository interface --------------------------------------------

    def next_id(self) -> str:
        orders = self._file.load()
        if not orders:
            return "1"
        return str(max(int(o["id"]) for o in orders) + 1)

    def get_by_id(self, order_id: str) -> Order | None:
        for raw in self._file.load():
            if raw["id"] == str(order_id):
                return self._to_domain(raw)
        return None

    def save(self, order: Order) -> Order:
        with self._file.locked():
            if order.id is None:
                order = order.with_id(self.next_id())
            self._upsert(order)
        return order

    def save_if_status(self, order: Order, expected: OrderStatus) -> bool:
        with self._file.locked():
            current = self.get_by_id(order.id)  # type: ignore[arg-type]
            if current is None or current.status != expected:
                return False
            self._upsert(order)
            return True

    def _upsert(self, order: Order) -> None:
        orders = self._file.load()
        # Upsert: replace if exists, otherwise append
        for i, raw in enumerate(orders):
            if raw["id"] == order.id:
                orders[i] = self._to_raw(order)
                break
        else:
            orders.append(self._to_raw(order))
        self._file.persist(orders)

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(order: Order) -> dict[str, Any]:
        return {
            "id": order.id,
            "merchant_id": order.merchant_id,
            "buyer_id": order.buyer_id,
            "status": order.status.value,
            "payment_method": order.payment_method.value,
            "buyer_wallet": order.buyer_wallet,
            "buyer": {
                "name": order.buyer.name,
                "email": order.buyer.email,
                "phone": order.buyer.phone,
            },
            "currency": order.currency,
            "shipping_cost": _money_raw(order.shipping_cost),
            "tax": _money_raw(order.tax),
            "payment": _payment_raw(order.payment),
            "minted_tokens": list(order.minted_tokens),
            "timeline": [
                {
                    "status": e.status.value,
                    "timestamp": e.timestamp.isoformat(),
                    "description": e.description,
                }
                for e in order.timeline
            ],
            "metadata": dict(order.metadata),
            "created_at": order.created_at.isoformat(),
            "updated_at": order.updated_at.isoformat(),
            "completed_at": _dt_raw(order.completed_at),
            "items": [
                {
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "quantity": item.quantity.value,
                    "unit_price": item.unit_price.amount_minor_units,
                    "currency": item.unit_price.currency,
                    "image": item.image,
                    "attributes": dict(item.attributes),
                }
                for item in order.items
            ],
        }

    @staticmethod
    def _to_domain(raw: dict[str, Any]) -> Order:
        items = tuple(
            OrderLineItem(
                product_id=i["product_id"],
                product_name=i["product_name"],
                quantity=Quantity(i["quantity"]),
                unit_price=Money(i["unit_price"], i.get("currency", "BRL")),
                image=i.get("image", ""),
                attributes=i.get("attributes", {}),
            )
            for i in raw["items"]
        )
        buyer = raw.get("buyer") or {}
        return Order(
            id=raw["id"],
            merchant_id=raw["merchant_id"],
            buyer_id=raw["buyer_id"],
            items=items,
            payment_method=PaymentMethod(raw["payment_method"]),
            status=OrderStatus(raw["status"]),
            buyer_wallet=raw.get("buyer_wallet"),
            buyer=BuyerInfo(
                name=buyer.get("name", ""),
                email=buyer.get("email", ""),
                phone=buyer.get("phone"),
            ),
            currency=raw.get("currency", "BRL"),
            shipping_cost=_money(raw.get("shipping_cost")),
            tax=_money(raw.get("tax")),
            payment=_payment(raw.get("payment")),
            minted_tokens=tuple(raw.get("minted_tokens", [])),
            timeline=tuple(
                TimelineEntry(
                    status=OrderStatus(e["status"]),
                    timestamp=datetime.fromisoformat(e["timestamp"]),
                    description=e["description"],
                )
                for e in raw.get("timeline", [])
            ),
            metadata=raw.get("metadata", {}),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
            completed_at=_dt(raw.get("completed_at")),
        )


def _dt_raw(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _dt(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


def _money_raw(money: Money | None) -> dict[str, Any] | None:
    if money is None:
        return None
    return {"amount": money.amount_minor_units, "currency": money.currency}


def _money(raw: dict[str, Any] | None) -> Money | None:
    if raw is None:
        return None
    return Money(raw["amount"], raw["currency"])


def _payment_raw(payment: PaymentRecord | None) -> dict[str, Any] | None:
    if payment is None:
        return None
    split = payment.split
    return {
        "method": payment.method.value,
        "reference": payment.reference,
        "split": split
        and {
            "merchant_amount": _money_raw(split.merchant_amount),
            "platform_amount": _money_raw(split.platform_amount),
            "merchant_percentage": str(split.merchant_percentage),
            "platform_percentage": str(split.platform_percentage),
        },
        "expires_at": _dt_raw(payment.expires_at),
        "paid_at": _dt_raw(payment.paid_at),
        "refunded_at": _dt_raw(payment.refunded_at),
        "refund_amount": _money_raw(payment.refund_amount),
    }


def _payment(raw: dict[str, Any] | None) -> PaymentRecord | None:
    if raw is None:
        return None
    split_raw = raw.get("split")
    split = None
    if split_raw:
        split = Split(
            merchant_amount=_money(split_raw["merchant_amount"]),  # type: ignore[arg-type]
            platform_amount=_money(split_raw["platform_amount"]),  # type: ignore[arg-type]
            merchant_percentage=Decimal(split_raw["merchant_percentage"]),
            platform_percentage=Decimal(split_raw["platform_percentage"]),
        )
    return PaymentRecord(
        method=PaymentMethod(raw["method"]),
        reference=raw["reference"],
        split=split,
        expires_at=_dt(raw.get("expires_at")),
        paid_at=_dt(raw.get("paid_at")),
        refunded_at=_dt(raw.get("refunded_at")),
        refund_amount=_money(raw.get("refund_amount")),
    )
