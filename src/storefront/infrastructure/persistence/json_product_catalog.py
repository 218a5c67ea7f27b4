"""JSON-file-backed implementation of ProductCatalog."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from storefront.domain.model.order import NftEligibility
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.product_catalog import ProductCatalog
from storefront.infrastructure.persistence.json_store import JsonFile


class JsonProductCatalog(ProductCatalog):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path, empty=[])

    # --- ProductCatalog interface ---------------------------------------------

    def get_by_id(self, product_id: str) -> Product | None:
        return self._load().get(product_id)

    def list_all(self, merchant_id: str | None = None) -> list[Product]:
        products = self._load().values()
        if merchant_id is None:
            return list(products)
        return [p for p in products if p.merchant_id == merchant_id]

    def save(self, product: Product) -> None:
        with self._file.locked():
            products = self._load()
            products[product.id] = product
            self._file.persist([self._to_raw(p) for p in products.values()])

    # --- Serialization helpers ------------------------------------------------

    def _load(self) -> dict[str, Product]:
        return {item["id"]: self._to_domain(item) for item in self._file.load()}

    @staticmethod
    def _to_domain(item: dict[str, Any]) -> Product:
        nft = item.get("nft") or {}
        return Product(
            id=item["id"],
            merchant_id=item["merchant_id"],
            name=item["name"],
            price=Money(item["price"], item.get("currency", "BRL")),
            description=item.get("description", ""),
            image=item.get("image", ""),
            active=item.get("active", True),
            stock=item.get("stock"),
            nft=NftEligibility.from_attributes({"nft": nft}),
            attributes=item.get("attributes", {}),
        )

    @staticmethod
    def _to_raw(p: Product) -> dict[str, Any]:
        return {
            "id": p.id,
            "merchant_id": p.merchant_id,
            "name": p.name,
            "price": p.price.amount_minor_units,
            "currency": p.price.currency,
            "description": p.description,
            "image": p.image,
            "active": p.active,
            "stock": p.stock,
            "nft": p.nft.to_dict(),
            "attributes": dict(p.attributes),
        }
