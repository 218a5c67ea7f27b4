"""HTTP client for wallet signature verification."""

from __future__ import annotations

import structlog

from storefront.domain.gateway.wallet_signature import WalletSignatureVerifier
from storefront.infrastructure.gateways.http_api import HttpApi, RequestRejected

log = structlog.get_logger(__name__)


class HttpWalletSignatureVerifier(WalletSignatureVerifier):

    def __init__(self, api: HttpApi) -> None:
        self._api = api

    def verify(self, wallet: str, challenge: str, signature: str) -> bool:
        try:
            payload = self._api.request(
                "POST",
                "/signatures/verify",
                json_body={"address": wallet, "message": challenge, "signature": signature},
            )
        except RequestRejected as exc:
            log.info("signature_rejected_by_verifier", wallet=wallet, detail=exc.detail)
            return False
        return bool(payload.get("valid"))
