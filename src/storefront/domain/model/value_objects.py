"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from storefront.domain.exceptions import ValidationError

# symbol, thousands separator, decimal separator, space after symbol
_CURRENCY_STYLES: dict[str, tuple[str, str, str, bool]] = {
    "BRL": ("R$", ".", ",", True),
    "USD": ("$", ",", ".", False),
    "EUR": ("€", ".", ",", True),
}

# Currencies whose minor unit is not 1/100.
_MINOR_UNIT_EXPONENTS: dict[str, int] = {"JPY": 0, "KRW": 0}

_WALLET_ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")


@dataclass(frozen=True)
class Money:
    """Monetary amount in integer minor units (e.g. centavos).

    All arithmetic stays in integers; ``formatted`` is derived on every
    access and never stored.
    """

    amount_minor_units: int
    currency: str = "BRL"

    def __post_init__(self) -> None:
        if isinstance(self.amount_minor_units, bool) or not isinstance(
            self.amount_minor_units, int
        ):
            raise ValidationError(
                "Money amount must be an integer number of minor units, "
                f"got {type(self.amount_minor_units).__name__}"
            )
        if self.amount_minor_units < 0:
            raise ValidationError(
                f"Money amount cannot be negative, got {self.amount_minor_units}"
            )
        if not self.currency or len(self.currency) != 3 or not self.currency.isalpha():
            raise ValidationError(f"Invalid currency code: {self.currency!r}")

    # --- Arithmetic helpers ---------------------------------------------------

    def __add__(self, other: Money) -> Money:
        self._assert_same_currency(other)
        return Money(self.amount_minor_units + other.amount_minor_units, self.currency)

    def __sub__(self, other: Money) -> Money:
        self._assert_same_currency(other)
        result = self.amount_minor_units - other.amount_minor_units
        if result < 0:
            raise ValidationError("Money subtraction would result in a negative amount")
        return Money(result, self.currency)

    def __mul__(self, factor: int) -> Money:
        if isinstance(factor, bool) or not isinstance(factor, int):
            raise TypeError(f"Can only multiply Money by int, got {type(factor).__name__}")
        return Money(self.amount_minor_units * factor, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount_minor_units < other.amount_minor_units

    def __le__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount_minor_units <= other.amount_minor_units

    def __gt__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount_minor_units > other.amount_minor_units

    def __ge__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount_minor_units >= other.amount_minor_units

    def fraction(self, percentage: Decimal) -> Money:
        """Return ``floor(amount * percentage)`` in the same currency."""
        scaled = (Decimal(self.amount_minor_units) * percentage).to_integral_value(
            rounding=ROUND_FLOOR
        )
        return Money(int(scaled), self.currency)

    # --- Display --------------------------------------------------------------

    @property
    def minor_unit_exponent(self) -> int:
        return _MINOR_UNIT_EXPONENTS.get(self.currency, 2)

    @property
    def major_units(self) -> Decimal:
        return Decimal(self.amount_minor_units).scaleb(-self.minor_unit_exponent)

    @property
    def formatted(self) -> str:
        symbol, thousands, decimal_sep, spaced = _CURRENCY_STYLES.get(
            self.currency, (self.currency, ",", ".", True)
        )
        exponent = self.minor_unit_exponent
        whole, cents = divmod(self.amount_minor_units, 10**exponent)
        digits = f"{whole:,}".replace(",", thousands)
        if exponent:
            digits = f"{digits}{decimal_sep}{cents:0{exponent}d}"
        return f"{symbol} {digits}" if spaced else f"{symbol}{digits}"

    def __str__(self) -> str:
        return self.formatted

    # --- Internal helpers -----------------------------------------------------

    def _assert_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValidationError(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    # --- Factories ------------------------------------------------------------

    @staticmethod
    def zero(currency: str = "BRL") -> Money:
        return Money(0, currency)

    @staticmethod
    def of(amount: str | int | Decimal, currency: str = "BRL") -> Money:
        """Build Money from a major-unit amount such as ``"150.00"``."""
        try:
            major = Decimal(str(amount))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc
        exponent = _MINOR_UNIT_EXPONENTS.get(currency, 2)
        minor = major.scaleb(exponent)
        if minor != minor.to_integral_value():
            raise ValidationError(
                f"Amount {amount!r} has more precision than {currency} allows"
            )
        return Money(int(minor), currency)


@dataclass(frozen=True)
class Quantity:
    """A positive integer quantity.

    Enforces the invariant that you cannot order zero or negative items.
    """

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class WalletAddress:
    """A 20-byte hex account address, ``0x``-prefixed."""

    value: str

    def __post_init__(self) -> None:
        if not is_valid_wallet_address(self.value):
            raise ValidationError(f"Invalid wallet address: {self.value!r}")

    def __str__(self) -> str:
        return self.value

    def same_as(self, other: str) -> bool:
        return self.value.lower() == other.lower()


def is_valid_wallet_address(value: str | None) -> bool:
    return bool(value) and _WALLET_ADDRESS_RE.fullmatch(value) is not None
