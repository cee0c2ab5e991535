"""Favorite product accessors."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from food_scanner.domain.products import FavoriteProduct


class FavoritesRepository(Protocol):
    """Persistence interface for favorite products."""

    def add_favorite(self, user_id: UUID, product_id: UUID) -> None:
        """Insert a favorite, treating an existing one as success."""

    def remove_favorite(self, user_id: UUID, product_id: UUID) -> None:
        """Delete a favorite if present."""

    def is_favorite(self, user_id: UUID, product_id: UUID) -> bool:
        """Return whether a favorite exists."""

    def list_favorites(self, user_id: UUID) -> list[FavoriteProduct]:
        """Return favorites joined with products, newest first."""


@dataclass
class FavoritesService:
    """Key-based favorite operations."""

    repository: FavoritesRepository

    def add(self, user_id: UUID, product_id: UUID) -> bool:
        """Add a product to favorites. Repeated adds succeed."""
        self.repository.add_favorite(user_id, product_id)
        return True

    def remove(self, user_id: UUID, product_id: UUID) -> bool:
        """Remove a product from favorites. Removing a missing one succeeds."""
        self.repository.remove_favorite(user_id, product_id)
        return True

    def is_favorite(self, user_id: UUID, product_id: UUID) -> bool:
        """Return whether the product is a favorite."""
        return self.repository.is_favorite(user_id, product_id)

    def list_favorites(self, user_id: UUID) -> list[FavoriteProduct]:
        """Return favorites ordered by when they were added, newest first."""
        return self.repository.list_favorites(user_id)
