"""Scan history accessors."""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from food_scanner.domain.products import ScannedProduct


class HistoryRepository(Protocol):
    """Persistence interface for the per-user recency list."""

    def upsert_entry(
        self, user_id: UUID, product_id: UUID, scanned_at: datetime
    ) -> None:
        """Insert or refresh the entry for (user_id, product_id)."""

    def list_entries(self, user_id: UUID, limit: int | None) -> list[ScannedProduct]:
        """Return entries joined with products, most recent first."""

    def delete_entry(self, user_id: UUID, product_id: UUID) -> None:
        """Delete an entry if present."""


@dataclass
class HistoryService:
    """Read and delete operations over scan history."""

    repository: HistoryRepository
    default_limit: int = 50

    def list_history(
        self, user_id: UUID, limit: int | None = None
    ) -> list[ScannedProduct]:
        """Return the most recent scans, bounded by the display limit."""
        bound = self.default_limit if limit is None else min(limit, self.default_limit)
        if bound <= 0:
            return []
        return self.repository.list_entries(user_id, bound)

    def remove(self, user_id: UUID, product_id: UUID) -> None:
        """Remove a product from the user's history."""
        self.repository.delete_entry(user_id, product_id)
