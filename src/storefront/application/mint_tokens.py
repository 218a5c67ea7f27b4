"""Application service: Mint access-credential tokens for a paid order.

One token is minted per unit of every NFT-eligible line.  The mint calls
run concurrently but are joined before anything is committed: either
every mint succeeds and the order becomes ``completed`` with the full
token list, or the order is left untouched and the first failure (in
line order) is raised.

Within one process minting is at most once: the ``minted_tokens`` check
runs again under a per-order claim that refuses a second concurrent
caller.  Across processes the repository's ``save_if_status``
compare-and-swap lets only one commit win, but two processes racing on
the same order may both reach the minting backend; the losing batch is
logged as ``order_completion_conflict`` with its token ids.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

import structlog

from storefront.domain.exceptions import (
    AlreadyMintedError,
    DomainException,
    InvalidStateError,
    MintingError,
    NotFoundError,
    RepositoryError,
    ValidationError,
)
from storefront.domain.gateway.nft_minting import NFTMintingService
from storefront.domain.model.order import Order, OrderLineItem, OrderStatus
from storefront.domain.model.token import (
    ACCESS_LEVEL_TRAIT,
    PRODUCT_ID_TRAIT,
    MintResult,
    MintSummary,
    TokenAttribute,
    TokenMetadata,
)
from storefront.domain.model.value_objects import WalletAddress
from storefront.domain.repository.order_repository import OrderRepository

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class _MintJob:
    item: OrderLineItem
    unit: int
    contract_ref: str
    metadata: TokenMetadata

    @property
    def label(self) -> str:
        return f"{self.item.product_name} (unit {self.unit}/{self.item.quantity.value})"


@dataclass(frozen=True)
class FulfillmentOutcome:
    order: Order
    summary: MintSummary | None = None
    error: str | None = None


class MintOrderTokensHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        minting_service: NFTMintingService,
        max_workers: int = 4,
    ) -> None:
        self._order_repo = order_repo
        self._minting = minting_service
        self._max_workers = max(1, max_workers)
        self._claims: set[str] = set()
        self._claims_lock = threading.Lock()

    def handle(self, order_id: str, buyer_wallet: str, contract_ref: str) -> MintSummary:
        if not order_id or not buyer_wallet or not contract_ref:
            raise ValidationError(
                "Order ID, buyer wallet, and contract reference are required"
            )
        recipient = WalletAddress(buyer_wallet)

        self._load_mintable(order_id)
        with self._claim(order_id):
            # Re-read: a previous holder of the claim may have committed
            order = self._load_mintable(order_id)
            jobs = self._plan(order, contract_ref)
            results = self._mint_all(jobs, str(recipient))
            summary = MintSummary(order_id=order_id, contract_ref=contract_ref, results=results)
            self._commit(order.complete(summary.token_ids))

        log.info(
            "tokens_minted",
            order_id=order_id,
            contract_ref=contract_ref,
            count=len(summary.token_ids),
        )
        return summary

    def fulfil_after_payment(
        self, order: Order, buyer_wallet: str | None, contract_ref: str
    ) -> FulfillmentOutcome:
        """Advance a freshly paid order; minting failures are reported, not raised.

        Payment is durable once accepted, so a failed mint leaves the order
        ``paid`` and can be retried later through ``handle``.
        """
        if not order.has_nft_items:
            completed = order.complete()
            self._commit(completed)
            return FulfillmentOutcome(order=completed)

        if not buyer_wallet:
            error = "No buyer wallet on order; tokens were not minted"
            log.warning("token_minting_skipped", order_id=order.id, reason=error)
            return FulfillmentOutcome(order=order, error=error)

        try:
            summary = self.handle(order.id, buyer_wallet, contract_ref)  # type: ignore[arg-type]
        except DomainException as exc:
            log.warning(
                "token_minting_failed_after_payment",
                order_id=order.id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return FulfillmentOutcome(order=order, error=str(exc))
        except Exception as exc:
            log.exception(
                "token_minting_failed_after_payment",
                order_id=order.id,
                error_type=type(exc).__name__,
            )
            return FulfillmentOutcome(order=order, error=f"Token minting failed: {exc}")

        try:
            stored = self._order_repo.get_by_id(order.id)  # type: ignore[arg-type]
        except RepositoryError:
            log.exception("completed_order_not_reloaded", order_id=order.id)
            stored = None
        return FulfillmentOutcome(
            order=stored or order.complete(summary.token_ids), summary=summary
        )

    # --- Internal helpers -----------------------------------------------------

    def _load_mintable(self, order_id: str) -> Order:
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        # Checked before status: a completed order with tokens is a repeat call
        if order.minted_tokens:
            raise AlreadyMintedError(f"Tokens already minted for order {order_id}")
        if order.status != OrderStatus.PAID:
            raise InvalidStateError(
                f"Order must be paid to mint tokens. Current status: {order.status.value}"
            )
        return order

    @contextmanager
    def _claim(self, order_id: str) -> Iterator[None]:
        """Hold the per-order minting claim; a concurrent caller is refused."""
        with self._claims_lock:
            if order_id in self._claims:
                raise AlreadyMintedError(f"Tokens are already being minted for order {order_id}")
            self._claims.add(order_id)
        try:
            yield
        finally:
            with self._claims_lock:
                self._claims.discard(order_id)

    def _plan(self, order: Order, contract_ref: str) -> list[_MintJob]:
        jobs: list[_MintJob] = []
        for item in order.nft_eligible_items:
            target = item.nft.collection_ref or contract_ref
            for unit in range(1, item.quantity.value + 1):
                jobs.append(
                    _MintJob(
                        item=item,
                        unit=unit,
                        contract_ref=target,
                        metadata=build_token_metadata(order, item, unit),
                    )
                )
        return jobs

    def _mint_all(self, jobs: list[_MintJob], recipient: str) -> tuple[MintResult, ...]:
        if not jobs:
            return ()

        outcomes: list[MintResult | Exception] = []
        workers = min(self._max_workers, len(jobs))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self._minting.mint, job.contract_ref, recipient, job.metadata)
                for job in jobs
            ]
            # Join every call before deciding anything.
            for future in futures:
                try:
                    outcomes.append(future.result())
                except Exception as exc:
                    outcomes.append(exc)

        results: list[MintResult] = []
        for job, outcome in zip(jobs, outcomes):
            if isinstance(outcome, DomainException):
                raise outcome
            if isinstance(outcome, Exception):
                raise MintingError(
                    f"Failed to mint token for {job.label}: {outcome}"
                ) from outcome
            if not outcome.success or not outcome.token_id:
                reason = outcome.error or "no token id returned"
                raise MintingError(f"Failed to mint token for {job.label}: {reason}")
            results.append(outcome)
        return tuple(results)

    def _commit(self, order: Order) -> None:
        """Persist the completed order.  Best effort: minting already happened."""
        try:
            stored = self._order_repo.save_if_status(order, expected=OrderStatus.PAID)
        except RepositoryError:
            log.exception("order_completion_not_persisted", order_id=order.id)
            return
        if not stored:
            log.error(
                "order_completion_conflict",
                order_id=order.id,
                minted_tokens=list(order.minted_tokens),
            )


def build_token_metadata(order: Order, item: OrderLineItem, unit: int) -> TokenMetadata:
    nft = item.nft
    attributes = [
        TokenAttribute("Order ID", order.id),
        TokenAttribute(PRODUCT_ID_TRAIT, item.product_id),
        TokenAttribute("Merchant ID", order.merchant_id),
        TokenAttribute("Purchase Date", order.created_at.isoformat(), display_type="date"),
        TokenAttribute("Token Standard", nft.token_standard),
        TokenAttribute("Unit", f"{unit}/{item.quantity.value}"),
    ]
    if nft.access_level:
        attributes.append(TokenAttribute(ACCESS_LEVEL_TRAIT, nft.access_level))
    for key, value in item.product_attributes.items():
        attributes.append(TokenAttribute(key, _scalar(value)))

    return TokenMetadata(
        name=f"{item.product_name} - Order #{order.id}",
        description=f"Access credential for {item.product_name} purchased in order {order.id}",
        image=item.image,
        attributes=tuple(attributes),
    )


def _scalar(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
