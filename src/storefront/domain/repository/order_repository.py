"""Abstract repository for Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.order import Order, OrderStatus


class OrderRepository(ABC):

    @abstractmethod
    def next_id(self) -> str:
        """Generate the next unique order ID."""

    @abstractmethod
    def get_by_id(self, order_id: str) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    def save(self, order: Order) -> Order:
        """Persist a new or updated order and return the stored version.

        New orders (``id is None``) are assigned an ID.
        """

    @abstractmethod
    def save_if_status(self, order: Order, expected: OrderStatus) -> bool:
        """Atomically replace the stored order only if its status is *expected*.

        Returns False, without writing, when the stored status differs.
        Concurrent callers racing on the same transition must see exactly
        one True.
        """
