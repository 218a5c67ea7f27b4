"""Domain service: split a payment between merchant and platform.

The platform share is rounded down; whatever minor units are left over
go to the merchant, so the two shares always add back to the total.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.split import Split
from storefront.domain.model.value_objects import Money


class SplitCalculator:

    def split(self, total: Money, platform_percentage: Decimal | float | str) -> Split:
        pct = self._as_decimal(platform_percentage)
        if not Decimal(0) <= pct <= Decimal(1):
            raise ValidationError(
                f"Platform percentage must be between 0 and 1, got {platform_percentage}"
            )

        platform_amount = total.fraction(pct)
        merchant_amount = total - platform_amount
        return Split(
            merchant_amount=merchant_amount,
            platform_amount=platform_amount,
            merchant_percentage=Decimal(1) - pct,
            platform_percentage=pct,
        )

    @staticmethod
    def _as_decimal(value: Decimal | float | str) -> Decimal:
        # str() first so 0.05 becomes Decimal("0.05"), not its binary expansion
        try:
            return value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid platform percentage: {value!r}") from exc
