"""Abstract directory of merchants."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.merchant import Merchant


class MerchantDirectory(ABC):

    @abstractmethod
    def get_by_id(self, merchant_id: str) -> Merchant | None:
        """Return a merchant by its ID, or None."""

    @abstractmethod
    def get_by_contract_ref(self, contract_ref: str) -> Merchant | None:
        """Return the merchant owning a token contract, or None."""

    @abstractmethod
    def save(self, merchant: Merchant) -> None:
        """Persist a new or updated merchant."""
