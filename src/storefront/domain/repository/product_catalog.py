"""Abstract catalog of products.

Defined in the domain layer so the domain never depends on
infrastructure. Concrete implementations (JSON, SQL, in-memory)
live in the infrastructure layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.product import Product


class ProductCatalog(ABC):

    @abstractmethod
    def get_by_id(self, product_id: str) -> Product | None:
        """Return a product by its ID, or None if not found."""

    @abstractmethod
    def list_all(self, merchant_id: str | None = None) -> list[Product]:
        """Return every product, optionally for one merchant."""

    @abstractmethod
    def save(self, product: Product) -> None:
        """Persist a new or updated product."""
