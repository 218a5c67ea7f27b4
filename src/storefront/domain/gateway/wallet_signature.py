"""Port for wallet signature verification."""

from __future__ import annotations

from abc import ABC, abstractmethod


class WalletSignatureVerifier(ABC):

    @abstractmethod
    def verify(self, wallet: str, challenge: str, signature: str) -> bool:
        """True if *signature* over *challenge* was produced by *wallet*."""
