"""Supabase-backed product repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from food_scanner.domain.analysis import coerce_points, coerce_strings
from food_scanner.domain.products import Nutriments, ProductRecord
from food_scanner.services.resolution import ProductRepository

PRODUCTS_TABLE = "products"


@dataclass
class SupabaseProductRepository(ProductRepository):
    """Supabase implementation for product records."""

    client: Client

    def find_by_barcode(
        self, user_id: UUID, barcode: str, *, visually_analyzed: bool
    ) -> ProductRecord | None:
        """Return the user's record for a barcode, if present."""
        response = (
            self.client.table(PRODUCTS_TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .eq("barcode", barcode)
            .eq("is_visually_analyzed", visually_analyzed)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_product(response.data[0])

    def get_product(self, product_id: UUID) -> ProductRecord | None:
        """Return a record by id, if present."""
        response = (
            self.client.table(PRODUCTS_TABLE)
            .select("*")
            .eq("id", str(product_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return parse_product(response.data[0])

    def upsert_product(
        self, user_id: UUID, payload: dict[str, object]
    ) -> ProductRecord:
        """Insert or update the record keyed by (user_id, barcode).

        Only the columns present in the payload are written on conflict.
        """
        now = datetime.now(tz=UTC).isoformat()
        response = (
            self.client.table(PRODUCTS_TABLE)
            .upsert(
                {"user_id": str(user_id), **payload, "updated_at": now},
                on_conflict="user_id,barcode",
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to upsert product")
        return parse_product(response.data[0])

    def update_analysis(
        self, product_id: UUID, user_id: UUID, payload: dict[str, object]
    ) -> None:
        """Write AI columns on an existing record."""
        response = (
            self.client.table(PRODUCTS_TABLE)
            .update({**payload, "updated_at": datetime.now(tz=UTC).isoformat()})
            .eq("id", str(product_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to store product analysis")


def parse_product(row: dict[str, object]) -> ProductRecord:
    """Parse a product row into a domain record."""
    return ProductRecord(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        barcode=str(row.get("barcode", "")),
        product_name=row.get("product_name"),
        brand=row.get("brand"),
        product_image=row.get("product_image"),
        ingredients=row.get("ingredients"),
        nutrition_grade=row.get("nutrition_grade"),
        ecoscore_grade=row.get("ecoscore_grade"),
        ecoscore_score=_optional_float(row.get("ecoscore_score")),
        nova_group=_optional_int(row.get("nova_group")),
        origins=row.get("origins"),
        packaging=row.get("packaging"),
        categories=row.get("categories"),
        labels=row.get("labels"),
        nutriments=Nutriments(
            energy_kcal_100g=_optional_float(row.get("energy_kcal_100g")),
            fat_100g=_optional_float(row.get("fat_100g")),
            saturated_fat_100g=_optional_float(row.get("saturated_fat_100g")),
            carbohydrates_100g=_optional_float(row.get("carbohydrates_100g")),
            sugars_100g=_optional_float(row.get("sugars_100g")),
            fiber_100g=_optional_float(row.get("fiber_100g")),
            proteins_100g=_optional_float(row.get("proteins_100g")),
            salt_100g=_optional_float(row.get("salt_100g")),
        ),
        is_visually_analyzed=bool(row.get("is_visually_analyzed", False)),
        health_score=_optional_int(row.get("health_score")),
        sustainability_score=_optional_int(row.get("sustainability_score")),
        health_analysis=row.get("health_analysis"),
        health_pros=coerce_points(row.get("health_pros")),
        health_cons=coerce_points(row.get("health_cons")),
        health_recommendations=coerce_strings(row.get("health_recommendations")),
        sustainability_analysis=row.get("sustainability_analysis"),
        sustainability_pros=coerce_points(row.get("sustainability_pros")),
        sustainability_cons=coerce_points(row.get("sustainability_cons")),
        sustainability_recommendations=coerce_strings(
            row.get("sustainability_recommendations")
        ),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
    )


def parse_timestamp(raw: object) -> datetime | None:
    """Parse an ISO timestamp column."""
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return None


def _optional_float(raw: object) -> float | None:
    if raw is None or raw == "":
        return None
    return float(raw)


def _optional_int(raw: object) -> int | None:
    if raw is None or raw == "":
        return None
    return int(float(raw))
