"""Application service: Validate token-gated access for a wallet.

Two-phase handshake: a request carrying only a challenge gets the
challenge back to sign; a request carrying challenge + signature is
verified before ownership is checked.  Every check that reaches a
decision is written to the access audit log.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable

import structlog

from storefront.application.dto import AccessRequest
from storefront.domain.exceptions import (
    NotFoundError,
    SignatureError,
    TransientError,
    ValidationError,
)
from storefront.domain.gateway.nft_minting import NFTMintingService
from storefront.domain.gateway.wallet_signature import WalletSignatureVerifier
from storefront.domain.model.token import (
    AccessResult,
    AuditAction,
    AuditRecord,
    DenialReason,
    OwnedToken,
)
from storefront.domain.model.value_objects import is_valid_wallet_address
from storefront.domain.repository.access_audit_log import AccessAuditLog
from storefront.domain.repository.merchant_directory import MerchantDirectory

log = structlog.get_logger(__name__)


class ValidateAccessHandler:

    def __init__(
        self,
        merchant_directory: MerchantDirectory,
        minting_service: NFTMintingService,
        signature_verifier: WalletSignatureVerifier,
        audit_log: AccessAuditLog,
    ) -> None:
        self._merchants = merchant_directory
        self._tokens = minting_service
        self._verifier = signature_verifier
        self._audit = audit_log

    def handle(self, request: AccessRequest) -> AccessResult:
        wallet = request.wallet_address
        if not is_valid_wallet_address(wallet):
            raise ValidationError(f"Invalid wallet address format: {wallet!r}")
        if request.min_balance < 1:
            raise ValidationError("Minimum token balance must be at least 1")

        if request.challenge and request.signature:
            self._verify_signature(wallet, request.challenge, request.signature, request.contract_ref)
        elif request.challenge:
            self._record(wallet, AuditAction.CHALLENGE_ISSUED, request.contract_ref)
            return AccessResult(
                wallet=wallet,
                contract_ref=request.contract_ref,
                access_granted=False,
                challenge=request.challenge,
            )
        elif request.signature:
            raise ValidationError("A signature must be sent with the challenge it signs")

        contract_ref = self._resolve_contract(request)

        try:
            owned = self._tokens.tokens_owned_by(wallet, contract_ref)
            if request.product_id or request.required_levels:
                owned = [self._with_metadata(token) for token in owned]
        except TransientError as exc:
            self._record(wallet, AuditAction.CHECK_FAILED, contract_ref, reason=str(exc))
            raise TransientError(
                f"Could not check token ownership: {exc}", retry_after=exc.retry_after
            ) from exc

        result = self._decide(wallet, contract_ref, owned, request)
        self._record(
            wallet,
            AuditAction.ACCESS_GRANTED if result.access_granted else AuditAction.ACCESS_DENIED,
            contract_ref,
            reason=result.denial.value if result.denial else None,
            matched=tuple(t.metadata for t in result.owned_tokens),
        )
        return result

    # --- Internal helpers -----------------------------------------------------

    def _verify_signature(
        self, wallet: str, challenge: str, signature: str, contract_ref: str | None
    ) -> None:
        try:
            valid = self._verifier.verify(wallet, challenge, signature)
        except TransientError as exc:
            self._record(wallet, AuditAction.CHECK_FAILED, contract_ref, reason=str(exc))
            raise
        if not valid:
            self._record(wallet, AuditAction.SIGNATURE_REJECTED, contract_ref)
            raise SignatureError(f"Invalid signature for wallet {wallet}")

    def _with_metadata(self, token: OwnedToken) -> OwnedToken:
        """Fetch the metadata document of a held token the listing left bare."""
        if token.metadata or token.balance <= 0:
            return token
        metadata = self._tokens.token_metadata(token.contract_ref, token.token_id)
        return replace(token, metadata=metadata) if metadata else token

    def _resolve_contract(self, request: AccessRequest) -> str:
        if request.contract_ref:
            return request.contract_ref
        if request.merchant_id:
            merchant = self._merchants.get_by_id(request.merchant_id)
            if merchant is None:
                raise NotFoundError(f"Merchant {request.merchant_id} not found")
            return merchant.contract_ref
        raise ValidationError("Contract reference or merchant ID is required")

    def _decide(
        self,
        wallet: str,
        contract_ref: str,
        owned: list[OwnedToken],
        request: AccessRequest,
    ) -> AccessResult:
        tokens = [t for t in owned if t.balance > 0]
        if request.product_id:
            tokens = [t for t in tokens if t.is_for_product(request.product_id)]

        required = _normalize_levels(request.required_levels)
        if required:
            tokens = [t for t in tokens if t.access_levels & required]

        balance = sum(t.balance for t in tokens)
        if balance >= request.min_balance:
            matched: set[str] = set()
            for token in tokens:
                matched |= token.access_levels & required
            return AccessResult(
                wallet=wallet,
                contract_ref=contract_ref,
                access_granted=True,
                owned_tokens=tuple(tokens),
                matched_levels=frozenset(matched),
            )

        if required and any(t.balance > 0 for t in owned):
            denial = DenialReason.INSUFFICIENT_LEVEL
        elif self._previously_granted(wallet, contract_ref):
            denial = DenialReason.TRANSFERRED
        else:
            denial = DenialReason.NOT_OWNED
        return AccessResult(
            wallet=wallet,
            contract_ref=contract_ref,
            access_granted=False,
            denial=denial,
        )

    def _previously_granted(self, wallet: str, contract_ref: str) -> bool:
        return any(
            entry.action == AuditAction.ACCESS_GRANTED
            for entry in self._audit.history(wallet, contract_ref)
        )

    def _record(
        self,
        wallet: str,
        action: AuditAction,
        contract_ref: str | None,
        reason: str | None = None,
        matched: tuple = (),
    ) -> None:
        entry = AuditRecord(
            wallet=wallet,
            action=action,
            timestamp=datetime.now(timezone.utc),
            contract_ref=contract_ref,
            reason=reason,
            matched_metadata=matched,
        )
        self._audit.record(entry)
        log.info(
            "access_audit",
            wallet=wallet,
            action=action.value,
            contract_ref=contract_ref,
            reason=reason,
            matched=len(matched),
        )


def _normalize_levels(levels: Iterable[str] | str | None) -> set[str]:
    if not levels:
        return set()
    if isinstance(levels, str):
        return {levels}
    return {str(level) for level in levels}
