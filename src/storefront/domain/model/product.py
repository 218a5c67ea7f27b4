"""Product aggregate.

Products live independently of orders.  Orders copy what they need
(name, price, NFT descriptor) at assembly time.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.order import NFT_ATTRIBUTE_KEY, NftEligibility
from storefront.domain.model.value_objects import Money


@dataclass(frozen=True)
class Product:
    """A product in a merchant's catalog.

    ``stock`` is ``None`` for untracked products (digital goods, tickets
    without a cap).
    """

    id: str
    merchant_id: str
    name: str
    price: Money
    description: str = ""
    image: str = ""
    active: bool = True
    stock: int | None = None
    nft: NftEligibility = field(default_factory=NftEligibility)
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def has_nft_enabled(self) -> bool:
        return self.nft.enabled

    def has_stock_for(self, quantity: int) -> bool:
        return self.stock is None or self.stock >= quantity

    def line_attributes(self) -> dict[str, Any]:
        """Attributes copied onto an order line, NFT descriptor included."""
        attrs = dict(self.attributes)
        if self.nft.enabled:
            attrs[NFT_ATTRIBUTE_KEY] = self.nft.to_dict()
        return attrs

    def with_price(self, new_price: Money) -> Product:
        """Change the product price.

        Existing orders are unaffected; they hold a price snapshot.
        """
        if new_price.amount_minor_units <= 0:
            raise ValidationError("Product price must be greater than zero")
        return replace(self, price=new_price)
