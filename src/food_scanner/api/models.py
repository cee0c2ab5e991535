"""Pydantic request and response models for the HTTP API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from food_scanner.domain.analysis import AiAnalysisResult, AnalysisPoint
from food_scanner.domain.products import (
    FavoriteProduct,
    ProcessedProductInfo,
    ProductRecord,
    RawProductData,
    ScannedProduct,
)
from food_scanner.domain.stats import ScanStats


class ApiModel(BaseModel):
    """Base model with camelCase wire names."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class BarcodeScanRequest(ApiModel):
    """Barcode or manually entered code."""

    code: str = Field(min_length=1, max_length=64)


class PhotoScanRequest(ApiModel):
    """Product photo, base64 encoded, optionally as a data URL."""

    image_base64: str = Field(min_length=1)
    name_hint: str | None = None


class NutrimentsOut(ApiModel):
    """Nutrient values per 100g."""

    energy_kcal_100g: float | None = None
    fat_100g: float | None = None
    saturated_fat_100g: float | None = None
    carbohydrates_100g: float | None = None
    sugars_100g: float | None = None
    fiber_100g: float | None = None
    proteins_100g: float | None = None
    salt_100g: float | None = None


class RawProductOut(ApiModel):
    """External product data."""

    code: str
    product_name: str | None
    brands: str | None
    image_url: str | None
    ingredients_text: str | None
    nutrition_grade: str | None
    ecoscore_grade: str | None
    ecoscore_score: float | None
    nova_group: int | None
    origins: str | None
    packaging: str | None
    categories: str | None
    labels: str | None
    nutriments: NutrimentsOut


class ProductOut(ApiModel):
    """Stored product record."""

    id: UUID
    barcode: str
    product_name: str | None
    brand: str | None
    product_image: str | None
    ingredients: str | None
    nutrition_grade: str | None
    ecoscore_grade: str | None
    ecoscore_score: float | None
    nova_group: int | None
    origins: str | None
    packaging: str | None
    categories: str | None
    labels: str | None
    nutriments: NutrimentsOut
    is_visually_analyzed: bool
    health_score: int | None
    sustainability_score: int | None
    health_analysis: str | None
    health_pros: list[AnalysisPoint]
    health_cons: list[AnalysisPoint]
    health_recommendations: list[str]
    sustainability_analysis: str | None
    sustainability_pros: list[AnalysisPoint]
    sustainability_cons: list[AnalysisPoint]
    sustainability_recommendations: list[str]
    created_at: datetime | None
    updated_at: datetime | None


class ScanResponse(ApiModel):
    """Tagged outcome of a scan."""

    source: str
    product: ProductOut | None = None
    raw_data: RawProductOut | None = None
    ai_analysis: AiAnalysisResult | None = None
    message: str | None = None

    @classmethod
    def from_info(cls, info: ProcessedProductInfo) -> "ScanResponse":
        """Build a response from a resolution outcome."""
        return cls(
            source=info.source.value,
            product=_product_out(info.product),
            raw_data=_raw_out(info.raw_data),
            ai_analysis=info.ai_analysis,
            message=info.message,
        )


class ProductDetailResponse(ApiModel):
    """Product with its stored verdict and favorite flag."""

    product: ProductOut
    ai_analysis: AiAnalysisResult | None
    is_favorite: bool


class AnalysisResponse(ApiModel):
    """AI verdict, or null when none could be produced."""

    analysis: AiAnalysisResult | None


class HistoryItemOut(ApiModel):
    """History entry with its product."""

    product: ProductOut
    scanned_at: datetime

    @classmethod
    def from_entry(cls, entry: ScannedProduct) -> "HistoryItemOut":
        """Build from a history entry."""
        return cls(product=_product_out(entry.product), scanned_at=entry.scanned_at)


class FavoriteItemOut(ApiModel):
    """Favorite entry with its product."""

    product: ProductOut
    favorited_at: datetime

    @classmethod
    def from_entry(cls, entry: FavoriteProduct) -> "FavoriteItemOut":
        """Build from a favorite entry."""
        return cls(
            product=_product_out(entry.product), favorited_at=entry.favorited_at
        )


class FavoriteStatusOut(ApiModel):
    """Favorite membership flag."""

    is_favorite: bool


class StatsOut(ApiModel):
    """Scan statistics."""

    total_scanned: int
    favorite_nutrition_grade: str | None
    most_scanned_brand: str | None
    last_scan_at: datetime | None
    average_health_score: float | None

    @classmethod
    def from_stats(cls, stats: ScanStats) -> "StatsOut":
        """Build from domain statistics."""
        return cls.model_validate(stats)


def _product_out(record: ProductRecord | None) -> ProductOut | None:
    if record is None:
        return None
    return ProductOut.model_validate(record)


def _raw_out(raw: RawProductData | None) -> RawProductOut | None:
    if raw is None:
        return None
    return RawProductOut.model_validate(raw)
