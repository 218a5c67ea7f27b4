"""JSON-file-backed implementation of MerchantDirectory."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

from storefront.domain.model.merchant import Merchant
from storefront.domain.repository.merchant_directory import MerchantDirectory
from storefront.infrastructure.persistence.json_store import JsonFile


class JsonMerchantDirectory(MerchantDirectory):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path, empty=[])

    def get_by_id(self, merchant_id: str) -> Merchant | None:
        for raw in self._file.load():
            if raw["id"] == merchant_id:
                return self._to_domain(raw)
        return None

    def get_by_contract_ref(self, contract_ref: str) -> Merchant | None:
        for raw in self._file.load():
            if raw["contract_ref"].lower() == contract_ref.lower():
                return self._to_domain(raw)
        return None

    def save(self, merchant: Merchant) -> None:
        with self._file.locked():
            records = self._file.load()
            for i, raw in enumerate(records):
                if raw["id"] == merchant.id:
                    records[i] = self._to_raw(merchant)
                    break
            else:
                records.append(self._to_raw(merchant))
            self._file.persist(records)

    @staticmethod
    def _to_raw(merchant: Merchant) -> dict[str, Any]:
        return {
            "id": merchant.id,
            "name": merchant.name,
            "contract_ref": merchant.contract_ref,
            "payout_key": merchant.payout_key,
            "split_percentage": (
                None if merchant.split_percentage is None else str(merchant.split_percentage)
            ),
            "active": merchant.active,
        }

    @staticmethod
    def _to_domain(raw: dict[str, Any]) -> Merchant:
        split = raw.get("split_percentage")
        return Merchant(
            id=raw["id"],
            name=raw.get("name", ""),
            contract_ref=raw["contract_ref"],
            payout_key=raw.get("payout_key", ""),
            split_percentage=None if split is None else Decimal(str(split)),
            active=raw.get("active", True),
        )
