"""HTTP client for the instant-payment provider."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from storefront.domain.exceptions import PaymentFailedError
from storefront.domain.gateway.instant_payment import (
    Charge,
    ChargeRequest,
    ChargeStatus,
    InstantPaymentProvider,
    PaymentReference,
)
from storefront.domain.model.value_objects import Money
from storefront.infrastructure.gateways.http_api import HttpApi, RequestRejected


class HttpInstantPaymentProvider(InstantPaymentProvider):
    """Creates split charges: the merchant's payout key receives the
    merchant share and the platform payout key receives the platform cut."""

    def __init__(self, api: HttpApi, platform_payout_key: str) -> None:
        self._api = api
        self._platform_payout_key = platform_payout_key

    def create_charge(self, request: ChargeRequest) -> Charge:
        body = {
            "amount": request.amount.amount_minor_units,
            "currency": request.amount.currency,
            "description": request.description,
            "merchant_ref": request.merchant_ref,
            "correlation_id": request.order_ref,
            "expires_in": request.expires_in_seconds,
            "splits": [
                {
                    "payout_key": request.payout_key,
                    "amount": request.split.merchant_amount.amount_minor_units,
                },
                {
                    "payout_key": self._platform_payout_key,
                    "amount": request.split.platform_amount.amount_minor_units,
                },
            ],
        }
        payload = self._call("POST", "/charges", body)
        charge_id = payload.get("id")
        if not charge_id:
            raise PaymentFailedError(f"Provider response has no charge id: {payload}")
        return Charge(
            charge_id=str(charge_id),
            status=_status(payload.get("status")),
            expires_at=_expires_at(payload, request.expires_in_seconds),
        )

    def payment_reference(self, charge: Charge, request: ChargeRequest) -> PaymentReference:
        payload = self._call("GET", f"/charges/{charge.charge_id}/qr-code")
        qr_code = payload.get("qr_code") or payload.get("image")
        qr_code_text = payload.get("qr_code_text") or payload.get("brcode")
        if not qr_code or not qr_code_text:
            raise PaymentFailedError(f"Provider returned no QR code for {charge.charge_id}")
        return PaymentReference(qr_code=str(qr_code), qr_code_text=str(qr_code_text))

    def charge_status(self, charge_id: str) -> ChargeStatus:
        payload = self._call("GET", f"/charges/{charge_id}")
        return _status(payload.get("status"))

    def refund(self, charge_id: str, amount: Money) -> None:
        self._call(
            "POST",
            f"/charges/{charge_id}/refunds",
            {"amount": amount.amount_minor_units, "currency": amount.currency},
        )

    def _call(self, method: str, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            return self._api.request(method, path, json_body=body)
        except RequestRejected as exc:
            raise PaymentFailedError(exc.detail) from exc


def _status(raw: Any) -> ChargeStatus:
    try:
        return ChargeStatus(str(raw or "pending").lower())
    except ValueError:
        raise PaymentFailedError(f"Unknown charge status: {raw!r}") from None


def _expires_at(payload: dict[str, Any], fallback_seconds: int) -> datetime:
    raw = payload.get("expires_at")
    if raw:
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) + timedelta(seconds=fallback_seconds)
