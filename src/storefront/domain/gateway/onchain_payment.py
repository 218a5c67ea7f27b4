"""Port for on-chain payments."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class TransferRequest:
    from_wallet: str
    to_contract: str
    amount: Decimal
    token_symbol: str
    order_ref: str


class OnChainPaymentGateway(ABC):

    @abstractmethod
    def submit_transfer(self, request: TransferRequest) -> str:
        """Validate and submit a transfer; return the transaction hash.

        Raises PaymentFailedError if the chain rejects it and
        TransientError if the node cannot be reached.
        """
