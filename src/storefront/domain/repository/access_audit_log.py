"""Append-only audit trail of access checks."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.token import AuditRecord


class AccessAuditLog(ABC):

    @abstractmethod
    def record(self, entry: AuditRecord) -> None:
        """Append one audit record."""

    @abstractmethod
    def history(self, wallet: str, contract_ref: str | None = None) -> list[AuditRecord]:
        """Return records for a wallet (case-insensitive), oldest first."""
