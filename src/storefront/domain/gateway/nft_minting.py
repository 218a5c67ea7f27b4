"""Port for the token minting backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from storefront.domain.model.token import MintResult, OwnedToken, TokenMetadata


class NFTMintingService(ABC):

    @abstractmethod
    def mint(self, contract_ref: str, recipient: str, metadata: TokenMetadata) -> MintResult:
        """Mint exactly one token to *recipient*.

        Backend rejections come back as ``MintResult(success=False)``;
        unreachable backends raise TransientError.
        """

    @abstractmethod
    def tokens_owned_by(self, wallet: str, contract_ref: str) -> list[OwnedToken]:
        """Return tokens currently held by *wallet* on *contract_ref*."""

    @abstractmethod
    def token_metadata(self, contract_ref: str, token_id: str) -> dict[str, Any] | None:
        """Return the metadata document of one token, or None."""
