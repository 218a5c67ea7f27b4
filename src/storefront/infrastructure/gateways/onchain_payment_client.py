"""HTTP client for the chain node / relayer used by the on-chain rail."""

from __future__ import annotations

from storefront.domain.exceptions import PaymentFailedError
from storefront.domain.gateway.onchain_payment import OnChainPaymentGateway, TransferRequest
from storefront.infrastructure.gateways.http_api import HttpApi, RequestRejected


class HttpOnChainPaymentGateway(OnChainPaymentGateway):

    def __init__(self, api: HttpApi) -> None:
        self._api = api

    def submit_transfer(self, request: TransferRequest) -> str:
        try:
            payload = self._api.request(
                "POST",
                "/transfers",
                json_body={
                    "from": request.from_wallet,
                    "to": request.to_contract,
                    "amount": str(request.amount),
                    "token_symbol": request.token_symbol,
                    "reference": request.order_ref,
                },
            )
        except RequestRejected as exc:
            raise PaymentFailedError(exc.detail) from exc

        tx_hash = payload.get("transaction_hash")
        if not tx_hash:
            raise PaymentFailedError(f"Transfer was not accepted: {payload}")
        return str(tx_hash)
