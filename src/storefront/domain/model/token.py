"""Access-credential tokens: mint requests, results and access checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from storefront.domain.exceptions import AccessDeniedError, TransferredError

ACCESS_LEVEL_TRAIT = "Access Level"
PRODUCT_ID_TRAIT = "Product ID"


@dataclass(frozen=True)
class TokenAttribute:
    trait_type: str
    value: Any
    display_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        raw: dict[str, Any] = {"trait_type": self.trait_type, "value": self.value}
        if self.display_type:
            raw["display_type"] = self.display_type
        return raw


@dataclass(frozen=True)
class TokenMetadata:
    """ERC-721 style metadata document for one minted token."""

    name: str
    description: str
    image: str
    attributes: tuple[TokenAttribute, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "attributes": [a.to_dict() for a in self.attributes],
        }


@dataclass(frozen=True)
class MintResult:
    """Outcome of a single mint call."""

    success: bool
    token_id: str | None = None
    contract_ref: str | None = None
    transaction_hash: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class MintSummary:
    order_id: str
    contract_ref: str
    results: tuple[MintResult, ...] = ()

    @property
    def token_ids(self) -> list[str]:
        return [r.token_id for r in self.results if r.token_id]

    @property
    def transaction_hashes(self) -> list[str]:
        return [r.transaction_hash for r in self.results if r.transaction_hash]


@dataclass(frozen=True)
class OwnedToken:
    token_id: str
    contract_ref: str
    balance: int = 1
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def trait_values(self, trait_type: str) -> set[str]:
        values: set[str] = set()
        for attr in self.metadata.get("attributes") or []:
            if isinstance(attr, Mapping) and attr.get("trait_type") == trait_type:
                values.add(str(attr.get("value")))
        return values

    @property
    def access_levels(self) -> set[str]:
        return self.trait_values(ACCESS_LEVEL_TRAIT)

    def is_for_product(self, product_id: str) -> bool:
        return product_id in self.trait_values(PRODUCT_ID_TRAIT)


class DenialReason(Enum):
    NOT_OWNED = "not_owned"
    TRANSFERRED = "transferred"
    INSUFFICIENT_LEVEL = "insufficient_level"


@dataclass(frozen=True)
class AccessResult:
    wallet: str
    contract_ref: str | None
    access_granted: bool
    owned_tokens: tuple[OwnedToken, ...] = ()
    matched_levels: frozenset[str] = frozenset()
    denial: DenialReason | None = None
    challenge: str | None = None

    @property
    def token_count(self) -> int:
        return sum(t.balance for t in self.owned_tokens)

    @property
    def awaiting_signature(self) -> bool:
        return self.challenge is not None

    def raise_for_denial(self) -> None:
        """Turn a denied result into the matching exception."""
        if self.access_granted or self.awaiting_signature:
            return
        if self.denial == DenialReason.TRANSFERRED:
            raise TransferredError(
                f"Wallet {self.wallet} no longer holds a token on {self.contract_ref}"
            )
        raise AccessDeniedError(
            f"Wallet {self.wallet} does not hold a qualifying token on {self.contract_ref}"
        )


class AuditAction(Enum):
    CHALLENGE_ISSUED = "challenge_issued"
    SIGNATURE_REJECTED = "signature_rejected"
    ACCESS_GRANTED = "access_granted"
    ACCESS_DENIED = "access_denied"
    CHECK_FAILED = "check_failed"


@dataclass(frozen=True)
class AuditRecord:
    wallet: str
    action: AuditAction
    timestamp: datetime
    contract_ref: str | None = None
    reason: str | None = None
    matched_metadata: tuple[Mapping[str, Any], ...] = ()
