"""JSON-file-backed implementation of AccessAuditLog."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from storefront.domain.model.token import AuditAction, AuditRecord
from storefront.domain.repository.access_audit_log import AccessAuditLog
from storefront.infrastructure.persistence.json_store import JsonFile


class JsonAccessAuditLog(AccessAuditLog):

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path, empty=[])

    def record(self, entry: AuditRecord) -> None:
        with self._file.locked():
            records = self._file.load()
            records.append(self._to_raw(entry))
            self._file.persist(records)

    def history(self, wallet: str, contract_ref: str | None = None) -> list[AuditRecord]:
        wallet = wallet.lower()
        entries = []
        for raw in self._file.load():
            if raw["wallet"].lower() != wallet:
                continue
            if contract_ref is not None and raw.get("contract_ref") != contract_ref:
                continue
            entries.append(self._to_domain(raw))
        return entries

    @staticmethod
    def _to_raw(entry: AuditRecord) -> dict[str, Any]:
        return {
            "wallet": entry.wallet,
            "action": entry.action.value,
            "timestamp": entry.timestamp.isoformat(),
            "contract_ref": entry.contract_ref,
            "reason": entry.reason,
            "matched_metadata": [dict(m) for m in entry.matched_metadata],
        }

    @staticmethod
    def _to_domain(raw: dict[str, Any]) -> AuditRecord:
        return AuditRecord(
            wallet=raw["wallet"],
            action=AuditAction(raw["action"]),
            timestamp=datetime.fromisoformat(raw["timestamp"]),
            contract_ref=raw.get("contract_ref"),
            reason=raw.get("reason"),
            matched_metadata=tuple(raw.get("matched_metadata", [])),
        )
