"""Supabase implementation for favorites."""

import logging
from dataclasses import dataclass
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client

from food_scanner.adapters.supabase_product_repository import (
    parse_product,
    parse_timestamp,
)
from food_scanner.domain.products import FavoriteProduct
from food_scanner.services.favorites import FavoritesRepository

FAVORITES_TABLE = "favorites"
_UNIQUE_VIOLATION = "23505"

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseFavoritesRepository(FavoritesRepository):
    """Supabase-backed repository for favorite products."""

    client: Client

    def add_favorite(self, user_id: UUID, product_id: UUID) -> None:
        """Insert a favorite; an existing row counts as success."""
        try:
            self.client.table(FAVORITES_TABLE).insert(
                {"user_id": str(user_id), "product_id": str(product_id)}
            ).execute()
        except APIError as exc:
            if exc.code != _UNIQUE_VIOLATION:
                raise
            _logger.info(
                "Favorite already present: user=%s product=%s", user_id, product_id
            )

    def remove_favorite(self, user_id: UUID, product_id: UUID) -> None:
        """Delete a favorite if it exists."""
        self.client.table(FAVORITES_TABLE).delete().eq("user_id", str(user_id)).eq(
            "product_id", str(product_id)
        ).execute()

    def is_favorite(self, user_id: UUID, product_id: UUID) -> bool:
        """Return whether the product is in the user's favorites."""
        response = (
            self.client.table(FAVORITES_TABLE)
            .select("id")
            .eq("user_id", str(user_id))
            .eq("product_id", str(product_id))
            .limit(1)
            .execute()
        )
        return bool(response.data)

    def list_favorites(self, user_id: UUID) -> list[FavoriteProduct]:
        """Return favorites joined with products, newest first."""
        response = (
            self.client.table(FAVORITES_TABLE)
            .select("created_at, products(*)")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .execute()
        )
        favorites: list[FavoriteProduct] = []
        for row in response.data or []:
            product_row = row.get("products")
            created_at = parse_timestamp(row.get("created_at"))
            if not product_row or created_at is None:
                continue
            favorites.append(
                FavoriteProduct(
                    product=parse_product(product_row), favorited_at=created_at
                )
            )
        return favorites
