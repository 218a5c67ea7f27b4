"""Port for the domestic instant-payment provider."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from storefront.domain.model.split import Split
from storefront.domain.model.value_objects import Money


class ChargeStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ChargeRequest:
    amount: Money
    payout_key: str
    description: str
    merchant_ref: str
    order_ref: str
    split: Split
    expires_in_seconds: int


@dataclass(frozen=True)
class Charge:
    charge_id: str
    status: ChargeStatus
    expires_at: datetime


@dataclass(frozen=True)
class PaymentReference:
    """Scannable payload handed to the buyer (QR image plus copy-paste text)."""

    qr_code: str
    qr_code_text: str


class InstantPaymentProvider(ABC):
    """Implementations raise TransientError when the provider is
    unreachable and PaymentFailedError when it rejects a request."""

    @abstractmethod
    def create_charge(self, request: ChargeRequest) -> Charge:
        """Create a charge for the full order total with split receivers."""

    @abstractmethod
    def payment_reference(self, charge: Charge, request: ChargeRequest) -> PaymentReference:
        """Return the scannable payment reference for a charge."""

    @abstractmethod
    def charge_status(self, charge_id: str) -> ChargeStatus:
        """Poll the provider for the current status of a charge."""

    @abstractmethod
    def refund(self, charge_id: str, amount: Money) -> None:
        """Return *amount* of a completed charge to the payer."""
