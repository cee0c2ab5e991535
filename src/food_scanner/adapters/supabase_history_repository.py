"""Supabase implementation for scan history."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from food_scanner.adapters.supabase_product_repository import (
    parse_product,
    parse_timestamp,
)
from food_scanner.domain.products import ScannedProduct
from food_scanner.services.history import HistoryRepository

HISTORY_TABLE = "scan_history"


@dataclass
class SupabaseHistoryRepository(HistoryRepository):
    """Supabase-backed repository for the recency list."""

    client: Client

    def upsert_entry(
        self, user_id: UUID, product_id: UUID, scanned_at: datetime
    ) -> None:
        """Insert or refresh the history entry keyed by (user_id, product_id)."""
        self.client.table(HISTORY_TABLE).upsert(
            {
                "user_id": str(user_id),
                "product_id": str(product_id),
                "scanned_at": scanned_at.isoformat(),
            },
            on_conflict="user_id,product_id",
        ).execute()

    def list_entries(self, user_id: UUID, limit: int | None) -> list[ScannedProduct]:
        """Return history rows joined with products, most recent first."""
        query = (
            self.client.table(HISTORY_TABLE)
            .select("scanned_at, products(*)")
            .eq("user_id", str(user_id))
            .order("scanned_at", desc=True)
        )
        if limit is not None:
            query = query.limit(limit)
        response = query.execute()
        entries: list[ScannedProduct] = []
        for row in response.data or []:
            product_row = row.get("products")
            scanned_at = parse_timestamp(row.get("scanned_at"))
            if not product_row or scanned_at is None:
                continue
            entries.append(
                ScannedProduct(
                    product=parse_product(product_row), scanned_at=scanned_at
                )
            )
        return entries

    def delete_entry(self, user_id: UUID, product_id: UUID) -> None:
        """Delete a history entry."""
        self.client.table(HISTORY_TABLE).delete().eq("user_id", str(user_id)).eq(
            "product_id", str(product_id)
        ).execute()
