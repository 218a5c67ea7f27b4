"""Tests for the httpx collaborator clients, using httpx.MockTransport."""

import json
from decimal import Decimal

import httpx
import pytest

from storefront.domain.exceptions import PaymentFailedError, TransientError
from storefront.domain.gateway.instant_payment import ChargeRequest, ChargeStatus
from storefront.domain.gateway.onchain_payment import TransferRequest
from storefront.domain.model.token import TokenMetadata
from storefront.domain.model.value_objects import Money
from storefront.domain.service.split_calculator import SplitCalculator
from storefront.infrastructure.gateways.http_api import HttpApi
from storefront.infrastructure.gateways.instant_payment_client import HttpInstantPaymentProvider
from storefront.infrastructure.gateways.nft_minting_client import HttpNFTMintingService
from storefront.infrastructure.gateways.onchain_payment_client import HttpOnChainPaymentGateway
from storefront.infrastructure.gateways.wallet_signature_client import HttpWalletSignatureVerifier
from tests.fakes import CONTRACT, WALLET


def _api(handler, **kwargs) -> HttpApi:
    return HttpApi("https://api.test/", transport=httpx.MockTransport(handler), **kwargs)


def _charge_request() -> ChargeRequest:
    return ChargeRequest(
        amount=Money(10000),
        payout_key="arena@pix",
        description="Order 1 - Arena",
        merchant_ref="m-1",
        order_ref="1",
        split=SplitCalculator().split(Money(10000), Decimal("0.05")),
        expires_in_seconds=1800,
    )


class TestHttpApi:

    def test_sends_bearer_token(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"ok": True})

        assert _api(handler, api_key="secret").request("GET", "/ping") == {"ok": True}
        assert seen["auth"] == "Bearer secret"

    def test_server_error_is_transient(self):
        api = _api(lambda request: httpx.Response(503), retry_after=4)
        with pytest.raises(TransientError) as exc_info:
            api.request("GET", "/ping")
        assert exc_info.value.retry_after == 4

    def test_rate_limit_honours_retry_after_header(self):
        api = _api(lambda request: httpx.Response(429, headers={"Retry-After": "12"}))
        with pytest.raises(TransientError) as exc_info:
            api.request("GET", "/ping")
        assert exc_info.value.retry_after == 12

    def test_connection_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransientError, match="refused"):
            _api(handler).request("GET", "/ping")

    def test_non_json_success_body_is_transient(self):
        api = _api(
            lambda request: httpx.Response(200, text="<html>gateway</html>"), retry_after=6
        )
        with pytest.raises(TransientError, match="non-JSON body") as exc_info:
            api.request("POST", "/contracts/x/tokens")
        assert exc_info.value.retry_after == 6


class TestHttpInstantPaymentProvider:

    def test_create_charge_sends_split_receivers(self):
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                201, json={"id": "ch_1", "status": "pending", "expires_at": "2030-01-01T00:00:00Z"}
            )

        provider = HttpInstantPaymentProvider(_api(handler), platform_payout_key="platform@pix")
        charge = provider.create_charge(_charge_request())

        assert charge.charge_id == "ch_1"
        assert charge.status == ChargeStatus.PENDING
        assert charge.expires_at.year == 2030
        assert captured["body"]["amount"] == 10000
        assert captured["body"]["splits"] == [
            {"payout_key": "arena@pix", "amount": 9500},
            {"payout_key": "platform@pix", "amount": 500},
        ]

    def test_rejection_is_payment_failed(self):
        provider = HttpInstantPaymentProvider(
            _api(lambda request: httpx.Response(422, json={"error": "invalid payout key"})),
            platform_payout_key="platform@pix",
        )
        with pytest.raises(PaymentFailedError, match="invalid payout key"):
            provider.create_charge(_charge_request())

    def test_charge_status(self):
        provider = HttpInstantPaymentProvider(
            _api(lambda request: httpx.Response(200, json={"status": "COMPLETED"})),
            platform_payout_key="p",
        )
        assert provider.charge_status("ch_1") == ChargeStatus.COMPLETED

    def test_refund_posts_amount(self):
        captured = {}

        def handler(request):
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(204)

        HttpInstantPaymentProvider(_api(handler), "p").refund("ch_1", Money(2500))
        assert captured == {"path": "/charges/ch_1/refunds", "body": {"amount": 2500, "currency": "BRL"}}


class TestHttpOnChainPaymentGateway:

    def test_returns_transaction_hash(self):
        gateway = HttpOnChainPaymentGateway(
            _api(lambda request: httpx.Response(200, json={"transaction_hash": "0xabc"}))
        )
        tx = gateway.submit_transfer(
            TransferRequest(WALLET, CONTRACT, Decimal("10"), "USDC", "1")
        )
        assert tx == "0xabc"

    def test_rejected_transfer(self):
        gateway = HttpOnChainPaymentGateway(
            _api(lambda request: httpx.Response(400, json={"message": "insufficient funds"}))
        )
        with pytest.raises(PaymentFailedError, match="insufficient funds"):
            gateway.submit_transfer(TransferRequest(WALLET, CONTRACT, Decimal("10"), "USDC", "1"))


class TestHttpNFTMintingService:

    def test_mint_success(self):
        service = HttpNFTMintingService(
            _api(lambda request: httpx.Response(
                200, json={"token_id": 42, "transaction_hash": "0xmint"}
            ))
        )
        result = service.mint(CONTRACT, WALLET, TokenMetadata("Pass", "", ""))
        assert result.success
        assert result.token_id == "42"
        assert result.contract_ref == CONTRACT

    def test_mint_rejection_is_failed_result(self):
        service = HttpNFTMintingService(
            _api(lambda request: httpx.Response(409, json={"error": "contract paused"}))
        )
        result = service.mint(CONTRACT, WALLET, TokenMetadata("Pass", "", ""))
        assert not result.success
        assert result.error == "contract paused"

    def test_tokens_owned_by(self):
        payload = {
            "tokens": [
                {"token_id": "1", "balance": 1, "metadata": {"attributes": []}},
                {"token_id": "2", "balance": 3},
            ]
        }
        service = HttpNFTMintingService(_api(lambda request: httpx.Response(200, json=payload)))
        owned = service.tokens_owned_by(WALLET, CONTRACT)
        assert [(t.token_id, t.balance) for t in owned] == [("1", 1), ("2", 3)]

    def test_unknown_wallet_owns_nothing(self):
        service = HttpNFTMintingService(_api(lambda request: httpx.Response(404)))
        assert service.tokens_owned_by(WALLET, CONTRACT) == []
        assert service.token_metadata(CONTRACT, "1") is None


class TestHttpWalletSignatureVerifier:

    def test_valid(self):
        verifier = HttpWalletSignatureVerifier(
            _api(lambda request: httpx.Response(200, json={"valid": True}))
        )
        assert verifier.verify(WALLET, "nonce", "0xsig")

    def test_rejected(self):
        verifier = HttpWalletSignatureVerifier(
            _api(lambda request: httpx.Response(400, json={"error": "bad signature"}))
        )
        assert not verifier.verify(WALLET, "nonce", "0xsig")
