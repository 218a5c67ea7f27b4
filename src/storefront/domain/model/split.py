"""Split of a single payment between merchant and platform."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.value_objects import Money


@dataclass(frozen=True)
class Split:
    """Merchant and platform shares of one total.

    Invariant: the two amounts add up exactly to ``total``.
    """

    merchant_amount: Money
    platform_amount: Money
    merchant_percentage: Decimal
    platform_percentage: Decimal

    def __post_init__(self) -> None:
        if self.merchant_amount.currency != self.platform_amount.currency:
            raise ValidationError("Split amounts must share one currency")

    @property
    def total(self) -> Money:
        return self.merchant_amount + self.platform_amount
