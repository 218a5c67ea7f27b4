"""HTTP client for the token minting backend."""

from __future__ import annotations

from typing import Any

import structlog

from storefront.domain.exceptions import ValidationError
from storefront.domain.gateway.nft_minting import NFTMintingService
from storefront.domain.model.token import MintResult, OwnedToken, TokenMetadata
from storefront.infrastructure.gateways.http_api import HttpApi, RequestRejected

log = structlog.get_logger(__name__)


class HttpNFTMintingService(NFTMintingService):

    def __init__(self, api: HttpApi) -> None:
        self._api = api

    def mint(self, contract_ref: str, recipient: str, metadata: TokenMetadata) -> MintResult:
        try:
            payload = self._api.request(
                "POST",
                f"/contracts/{contract_ref}/tokens",
                json_body={"to": recipient, "metadata": metadata.to_dict()},
            )
        except RequestRejected as exc:
            log.warning("mint_rejected", contract_ref=contract_ref, recipient=recipient, detail=exc.detail)
            return MintResult(success=False, contract_ref=contract_ref, error=exc.detail)

        token_id = payload.get("token_id")
        return MintResult(
            success=token_id is not None,
            token_id=None if token_id is None else str(token_id),
            contract_ref=str(payload.get("contract_ref") or contract_ref),
            transaction_hash=payload.get("transaction_hash"),
            error=None if token_id is not None else str(payload.get("error") or "no token id"),
        )

    def tokens_owned_by(self, wallet: str, contract_ref: str) -> list[OwnedToken]:
        try:
            payload = self._api.request(
                "GET", f"/contracts/{contract_ref}/owners/{wallet}/tokens"
            )
        except RequestRejected as exc:
            if exc.status_code == 404:
                return []
            raise ValidationError(f"Ownership query rejected: {exc.detail}") from exc
        tokens = payload.get("tokens", payload.get("result", []))
        owned: list[OwnedToken] = []
        for raw in tokens if isinstance(tokens, list) else []:
            if not isinstance(raw, dict) or raw.get("token_id") is None:
                continue
            owned.append(
                OwnedToken(
                    token_id=str(raw["token_id"]),
                    contract_ref=str(raw.get("contract_ref") or contract_ref),
                    balance=int(raw.get("balance", 1)),
                    metadata=raw.get("metadata") or {},
                )
            )
        return owned

    def token_metadata(self, contract_ref: str, token_id: str) -> dict[str, Any] | None:
        try:
            payload = self._api.request(
                "GET", f"/contracts/{contract_ref}/tokens/{token_id}/metadata"
            )
        except RequestRejected as exc:
            if exc.status_code == 404:
                return None
            raise ValidationError(f"Metadata query rejected: {exc.detail}") from exc
        return payload or None
