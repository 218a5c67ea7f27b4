"""In-memory fakes for testing.

These implement the same abstract interfaces as the JSON repositories
and HTTP clients but keep everything in memory. No file I/O, no network.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any

from storefront.domain.gateway.instant_payment import (
    Charge,
    ChargeRequest,
    ChargeStatus,
    InstantPaymentProvider,
    PaymentReference,
)
from storefront.domain.gateway.nft_minting import NFTMintingService
from storefront.domain.gateway.onchain_payment import OnChainPaymentGateway, TransferRequest
from storefront.domain.gateway.wallet_signature import WalletSignatureVerifier
from storefront.domain.model.merchant import Merchant
from storefront.domain.model.order import Order, OrderStatus
from storefront.domain.model.product import Product
from storefront.domain.model.token import (
    PRODUCT_ID_TRAIT,
    AuditRecord,
    MintResult,
    OwnedToken,
    TokenMetadata,
)
from storefront.domain.model.value_objects import Money
from storefront.domain.repository.access_audit_log import AccessAuditLog
from storefront.domain.repository.merchant_directory import MerchantDirectory
from storefront.domain.repository.order_repository import OrderRepository
from storefront.domain.repository.product_catalog import ProductCatalog

WALLET = "0x" + "a1" * 20
OTHER_WALLET = "0x" + "b2" * 20
CONTRACT = "0x" + "c3" * 20


# --- Repositories -------------------------------------------------------------


class FakeOrderRepository(OrderRepository):

    def __init__(self) -> None:
        self._store: dict[str, Order] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        return str(self._next_id)

    def get_by_id(self, order_id: str) -> Order | None:
        return self._store.get(order_id)

    def save(self, order: Order) -> Order:
        with self._lock:
            if order.id is None:
                order = order.with_id(self.next_id())
                self._next_id += 1
            self._store[order.id] = order
        return order

    def save_if_status(self, order: Order, expected: OrderStatus) -> bool:
        with self._lock:
            current = self._store.get(order.id)  # type: ignore[arg-type]
            if current is None or current.status != expected:
                return False
            self._store[order.id] = order  # type: ignore[index]
            return True


class FakeProductCatalog(ProductCatalog):

    def __init__(self, products: list[Product] | None = None) -> None:
        self._store: dict[str, Product] = {}
        for p in products or []:
            self._store[p.id] = p

    def get_by_id(self, product_id: str) -> Product | None:
        return self._store.get(product_id)

    def list_all(self, merchant_id: str | None = None) -> list[Product]:
        return [
            p for p in self._store.values() if merchant_id is None or p.merchant_id == merchant_id
        ]

    def save(self, product: Product) -> None:
        self._store[product.id] = product


class FakeMerchantDirectory(MerchantDirectory):

    def __init__(self, merchants: list[Merchant] | None = None) -> None:
        self._store: dict[str, Merchant] = {m.id: m for m in merchants or []}

    def get_by_id(self, merchant_id: str) -> Merchant | None:
        return self._store.get(merchant_id)

    def get_by_contract_ref(self, contract_ref: str) -> Merchant | None:
        for m in self._store.values():
            if m.contract_ref.lower() == contract_ref.lower():
                return m
        return None

    def save(self, merchant: Merchant) -> None:
        self._store[merchant.id] = merchant


class FakeAccessAuditLog(AccessAuditLog):

    def __init__(self) -> None:
        self.entries: list[AuditRecord] = []

    def record(self, entry: AuditRecord) -> None:
        self.entries.append(entry)

    def history(self, wallet: str, contract_ref: str | None = None) -> list[AuditRecord]:
        return [
            e
            for e in self.entries
            if e.wallet.lower() == wallet.lower()
            and (contract_ref is None or e.contract_ref == contract_ref)
        ]


# --- Gateways -----------------------------------------------------------------


class FakeInstantPaymentProvider(InstantPaymentProvider):
    """Records charges; ``error`` is raised from ``create_charge`` when set."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.requests: list[ChargeRequest] = []
        self.statuses: dict[str, ChargeStatus] = {}
        self.refunds: list[tuple[str, Money]] = []

    def create_charge(self, request: ChargeRequest) -> Charge:
        if self.error is not None:
            raise self.error
        self.requests.append(request)
        charge_id = f"charge-{len(self.requests)}"
        self.statuses[charge_id] = ChargeStatus.PENDING
        return Charge(
            charge_id=charge_id,
            status=ChargeStatus.PENDING,
            expires_at=datetime.now(timezone.utc)
            + timedelta(seconds=request.expires_in_seconds),
        )

    def payment_reference(self, charge: Charge, request: ChargeRequest) -> PaymentReference:
        text = f"pix://{request.payout_key}/{request.amount.amount_minor_units}/{charge.charge_id}"
        return PaymentReference(qr_code=f"data:image/png;base64,{charge.charge_id}", qr_code_text=text)

    def charge_status(self, charge_id: str) -> ChargeStatus:
        return self.statuses[charge_id]

    def refund(self, charge_id: str, amount: Money) -> None:
        self.refunds.append((charge_id, amount))


class FakeOnChainGateway(OnChainPaymentGateway):

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.transfers: list[TransferRequest] = []

    def submit_transfer(self, request: TransferRequest) -> str:
        if self.error is not None:
            raise self.error
        self.transfers.append(request)
        return f"0xtx{len(self.transfers):04d}"


class FakeMintingService(NFTMintingService):
    """Thread-safe minting fake.

    ``reject`` maps a product id to the error message of a failed mint;
    ``raise_for`` maps a product id to an exception raised by ``mint``.
    ``owned`` maps ``(wallet, contract)`` to the tokens it holds;
    ``metadata`` maps a token id to the document ``token_metadata`` serves.
    """

    def __init__(
        self,
        reject: dict[str, str] | None = None,
        raise_for: dict[str, Exception] | None = None,
        owned: dict[tuple[str, str], list[OwnedToken]] | None = None,
        ownership_error: Exception | None = None,
        metadata: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self.reject = reject or {}
        self.raise_for = raise_for or {}
        self.owned = {(w.lower(), c): tokens for (w, c), tokens in (owned or {}).items()}
        self.ownership_error = ownership_error
        self.metadata = metadata or {}
        self.metadata_calls: list[tuple[str, str]] = []
        self.calls: list[tuple[str, str, TokenMetadata]] = []
        self._lock = threading.Lock()
        self._counter = 0

    def mint(self, contract_ref: str, recipient: str, metadata: TokenMetadata) -> MintResult:
        product_id = _product_id(metadata)
        with self._lock:
            self.calls.append((contract_ref, recipient, metadata))
            self._counter += 1
            token_id = str(self._counter)
        if product_id in self.raise_for:
            raise self.raise_for[product_id]
        if product_id in self.reject:
            return MintResult(success=False, contract_ref=contract_ref, error=self.reject[product_id])
        return MintResult(
            success=True,
            token_id=token_id,
            contract_ref=contract_ref,
            transaction_hash=f"0xmint{token_id}",
        )

    def tokens_owned_by(self, wallet: str, contract_ref: str) -> list[OwnedToken]:
        if self.ownership_error is not None:
            raise self.ownership_error
        return list(self.owned.get((wallet.lower(), contract_ref), []))

    def token_metadata(self, contract_ref: str, token_id: str) -> dict[str, Any] | None:
        self.metadata_calls.append((contract_ref, token_id))
        if token_id in self.metadata:
            return self.metadata[token_id]
        for (_, contract), tokens in self.owned.items():
            for token in tokens:
                if contract == contract_ref and token.token_id == token_id:
                    return dict(token.metadata)
        return None


class FakeSignatureVerifier(WalletSignatureVerifier):

    def __init__(self, valid: bool = True, error: Exception | None = None) -> None:
        self.valid = valid
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    def verify(self, wallet: str, challenge: str, signature: str) -> bool:
        self.calls.append((wallet, challenge, signature))
        if self.error is not None:
            raise self.error
        return self.valid


def _product_id(metadata: TokenMetadata) -> str | None:
    for attr in metadata.attributes:
        if attr.trait_type == PRODUCT_ID_TRAIT:
            return str(attr.value)
    return None

