"""Application service: Cancel Order use case.

Allowed while the order is ``pending`` or ``paid`` (before shipment).
"""

from __future__ import annotations

import structlog

from storefront.domain.exceptions import InvalidStateError, NotFoundError
from storefront.domain.model.order import Order
from storefront.domain.repository.order_repository import OrderRepository

log = structlog.get_logger(__name__)


class CancelOrderHandler:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def handle(self, order_id: str, reason: str = "Order cancelled") -> Order:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        cancelled = order.cancel(reason)
        if not self._order_repo.save_if_status(cancelled, expected=order.status):
            raise InvalidStateError(f"Order {order_id} changed while being cancelled")

        log.info("order_cancelled", order_id=order_id, previous=order.status.value)
        return cancelled
