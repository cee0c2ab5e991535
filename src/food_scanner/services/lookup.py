"""Product lookup service backed by Open Food Facts."""

import logging
from dataclasses import dataclass

from food_scanner.adapters.openfoodfacts_client import OpenFoodFactsClient
from food_scanner.domain.products import (
    Nutriments,
    RawProductData,
    is_visual_code,
    placeholder_raw_data,
)

_logger = logging.getLogger(__name__)


@dataclass
class ProductLookupService:
    """Normalizes barcode lookups into raw product data."""

    client: OpenFoodFactsClient

    async def lookup(self, barcode: str) -> RawProductData | None:
        """Return raw data for a barcode, or None when no usable product exists.

        Visual-scan codes never reach the external API.
        """
        if is_visual_code(barcode):
            return placeholder_raw_data(barcode)

        payload = await self.client.get_product(barcode)
        product = payload.get("product")
        if payload.get("status") == 0 or not isinstance(product, dict):
            _logger.info("Product not found: barcode=%s", barcode)
            return None
        name = _clean(product.get("product_name"))
        if not name:
            _logger.info("Product without a usable name: barcode=%s", barcode)
            return None
        return _to_raw_data(str(payload.get("code") or barcode), name, product)


def _to_raw_data(code: str, name: str, product: dict) -> RawProductData:
    nutriments = product.get("nutriments") or {}
    return RawProductData(
        code=code,
        product_name=name,
        brands=_clean(product.get("brands")),
        image_url=_clean(product.get("image_url")),
        ingredients_text=_clean(product.get("ingredients_text")),
        nutrition_grade=_grade(
            product.get("nutrition_grades") or product.get("nutriscore_grade")
        ),
        ecoscore_grade=_grade(product.get("ecoscore_grade")),
        ecoscore_score=_number(product.get("ecoscore_score")),
        nova_group=_integer(product.get("nova_group")),
        origins=_clean(product.get("origins")),
        packaging=_clean(product.get("packaging")),
        categories=_clean(product.get("categories")),
        labels=_clean(product.get("labels")),
        nutriments=Nutriments(
            energy_kcal_100g=_number(nutriments.get("energy-kcal_100g")),
            fat_100g=_number(nutriments.get("fat_100g")),
            saturated_fat_100g=_number(nutriments.get("saturated-fat_100g")),
            carbohydrates_100g=_number(nutriments.get("carbohydrates_100g")),
            sugars_100g=_number(nutriments.get("sugars_100g")),
            fiber_100g=_number(nutriments.get("fiber_100g")),
            proteins_100g=_number(nutriments.get("proteins_100g")),
            salt_100g=_number(nutriments.get("salt_100g")),
        ),
    )


def _clean(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _grade(value: object) -> str | None:
    """Keep only A-E letter grades, lowercased."""
    cleaned = _clean(value)
    if cleaned is None or cleaned.lower() not in {"a", "b", "c", "d", "e"}:
        return None
    return cleaned.lower()


def _number(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _integer(value: object) -> int | None:
    number = _number(value)
    return int(number) if number is not None else None
