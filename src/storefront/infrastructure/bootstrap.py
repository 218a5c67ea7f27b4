"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.

Repositories are cached so that every handler in a process shares one
instance per file, and therefore one lock for ``save_if_status``.
"""

from __future__ import annotations

from functools import lru_cache

from storefront.application.confirm_payment import ConfirmPaymentHandler
from storefront.application.mint_tokens import MintOrderTokensHandler
from storefront.application.process_payment import PaymentPolicy, ProcessPaymentHandler
from storefront.application.validate_access import ValidateAccessHandler
from storefront.infrastructure.config import Settings, get_settings
from storefront.infrastructure.gateways.http_api import HttpApi
from storefront.infrastructure.gateways.instant_payment_client import (
    HttpInstantPaymentProvider,
)
from storefront.infrastructure.gateways.nft_minting_client import HttpNFTMintingService
from storefront.infrastructure.gateways.onchain_payment_client import (
    HttpOnChainPaymentGateway,
)
from storefront.infrastructure.gateways.wallet_signature_client import (
    HttpWalletSignatureVerifier,
)
from storefront.infrastructure.persistence.json_access_audit_log import JsonAccessAuditLog
from storefront.infrastructure.persistence.json_merchant_directory import (
    JsonMerchantDirectory,
)
from storefront.infrastructure.persistence.json_order_repository import (
    JsonOrderRepository,
)
from storefront.infrastructure.persistence.json_product_catalog import JsonProductCatalog


# --- Repositories -------------------------------------------------------------


@lru_cache(maxsize=1)
def order_repository() -> JsonOrderRepository:
    return JsonOrderRepository(get_settings().data_dir / "orders.json")


@lru_cache(maxsize=1)
def product_catalog() -> JsonProductCatalog:
    return JsonProductCatalog(get_settings().data_dir / "products.json")


@lru_cache(maxsize=1)
def merchant_directory() -> JsonMerchantDirectory:
    return JsonMerchantDirectory(get_settings().data_dir / "merchants.json")


@lru_cache(maxsize=1)
def access_audit_log() -> JsonAccessAuditLog:
    return JsonAccessAuditLog(get_settings().data_dir / "access_audit.json")


# --- External collaborators ---------------------------------------------------


def _api(settings: Settings, base_url: str, api_key: str | None = None) -> HttpApi:
    return HttpApi(
        base_url,
        api_key=api_key,
        timeout=settings.http_timeout_seconds,
        retry_after=settings.transient_retry_after_seconds,
    )


def instant_payment_provider() -> HttpInstantPaymentProvider:
    settings = get_settings()
    return HttpInstantPaymentProvider(
        _api(settings, settings.instant_payment_api_url, settings.instant_payment_api_key),
        platform_payout_key=settings.platform_payout_key,
    )


def onchain_gateway() -> HttpOnChainPaymentGateway:
    settings = get_settings()
    return HttpOnChainPaymentGateway(_api(settings, settings.chain_api_url))


def minting_service() -> HttpNFTMintingService:
    settings = get_settings()
    return HttpNFTMintingService(_api(settings, settings.nft_api_url))


def signature_verifier() -> HttpWalletSignatureVerifier:
    settings = get_settings()
    return HttpWalletSignatureVerifier(_api(settings, settings.wallet_api_url))


# --- Handlers -----------------------------------------------------------------


def payment_policy() -> PaymentPolicy:
    settings = get_settings()
    return PaymentPolicy(
        default_split_percentage=settings.default_split_percentage,
        expiry_minutes=settings.payment_expiry_minutes,
        crypto_rate=settings.crypto_rate,
    )


@lru_cache(maxsize=1)
def mint_tokens_handler() -> MintOrderTokensHandler:
    return MintOrderTokensHandler(
        order_repo=order_repository(),
        minting_service=minting_service(),
        max_workers=get_settings().mint_max_workers,
    )


def process_payment_handler() -> ProcessPaymentHandler:
    return ProcessPaymentHandler(
        order_repo=order_repository(),
        merchant_directory=merchant_directory(),
        instant_provider=instant_payment_provider(),
        onchain_gateway=onchain_gateway(),
        fulfillment=mint_tokens_handler(),
        policy=payment_policy(),
    )


def confirm_payment_handler() -> ConfirmPaymentHandler:
    return ConfirmPaymentHandler(
        order_repo=order_repository(),
        merchant_directory=merchant_directory(),
        instant_provider=instant_payment_provider(),
        fulfillment=mint_tokens_handler(),
    )


def validate_access_handler() -> ValidateAccessHandler:
    return ValidateAccessHandler(
        merchant_directory=merchant_directory(),
        minting_service=minting_service(),
        signature_verifier=signature_verifier(),
        audit_log=access_audit_log(),
    )
