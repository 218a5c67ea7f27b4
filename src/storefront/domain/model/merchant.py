"""Merchant aggregate."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from storefront.domain.exceptions import ValidationError


@dataclass(frozen=True)
class Merchant:
    """A seller on the platform.

    ``split_percentage`` is the platform's cut (0..1); ``None`` means the
    platform default applies.
    """

    id: str
    name: str
    contract_ref: str
    payout_key: str
    split_percentage: Decimal | None = None
    active: bool = True

    def __post_init__(self) -> None:
        if self.split_percentage is not None and not (
            Decimal(0) <= self.split_percentage <= Decimal(1)
        ):
            raise ValidationError(
                f"Split percentage must be between 0 and 1, got {self.split_percentage}"
            )

    def can_process_orders(self) -> bool:
        return self.active and bool(self.payout_key)

    def platform_cut(self, default: Decimal) -> Decimal:
        return default if self.split_percentage is None else self.split_percentage
