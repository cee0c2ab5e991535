"""Product domain models and the mappings between raw and stored shapes."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from food_scanner.domain.analysis import AiAnalysisResult, AnalysisPoint

VISUAL_SCAN_PREFIX = "visual_"
VISUAL_PLACEHOLDER_NAME = "Visually analyzed product"


def is_visual_code(code: str) -> bool:
    """Return True when the code is a synthetic visual-scan identifier."""
    return code.startswith(VISUAL_SCAN_PREFIX)


class ScanKind(Enum):
    """How a scan event was produced."""

    BARCODE = "barcode"
    PHOTO = "photo"


class ResolutionSource(str, Enum):
    """Tag describing how a scan was resolved."""

    DATABASE = "database"
    DATABASE_NO_AI = "database_no_ai"
    NEW_SCAN_OFF_ONLY = "new_scan_off_only"
    NOT_FOUND_OFF = "not_found_off"
    VISUAL_SCAN = "visual_scan"
    ERROR = "error"


@dataclass(frozen=True)
class ScanEvent:
    """A single barcode, manual entry or photo action from a client."""

    user_id: UUID
    kind: ScanKind
    code: str = ""
    image: bytes | None = None
    name_hint: str | None = None


@dataclass(frozen=True)
class Nutriments:
    """Nutrient values per 100g as reported by the lookup source."""

    energy_kcal_100g: float | None = None
    fat_100g: float | None = None
    saturated_fat_100g: float | None = None
    carbohydrates_100g: float | None = None
    sugars_100g: float | None = None
    fiber_100g: float | None = None
    proteins_100g: float | None = None
    salt_100g: float | None = None


@dataclass(frozen=True)
class RawProductData:
    """External view of a product, before it is persisted."""

    code: str
    product_name: str | None
    brands: str | None = None
    image_url: str | None = None
    ingredients_text: str | None = None
    nutrition_grade: str | None = None
    ecoscore_grade: str | None = None
    ecoscore_score: float | None = None
    nova_group: int | None = None
    origins: str | None = None
    packaging: str | None = None
    categories: str | None = None
    labels: str | None = None
    nutriments: Nutriments = field(default_factory=Nutriments)


@dataclass(frozen=True)
class ProductRecord:
    """Persisted product scanned by a user, keyed by (user_id, barcode)."""

    id: UUID
    user_id: UUID
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
    nutriments: Nutriments
    is_visually_analyzed: bool
    health_score: int | None = None
    sustainability_score: int | None = None
    health_analysis: str | None = None
    health_pros: list[AnalysisPoint] = field(default_factory=list)
    health_cons: list[AnalysisPoint] = field(default_factory=list)
    health_recommendations: list[str] = field(default_factory=list)
    sustainability_analysis: str | None = None
    sustainability_pros: list[AnalysisPoint] = field(default_factory=list)
    sustainability_cons: list[AnalysisPoint] = field(default_factory=list)
    sustainability_recommendations: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_analysis(self) -> bool:
        """Whether an AI verdict has been stored for this record."""
        return self.health_score is not None


@dataclass(frozen=True)
class ScannedProduct:
    """History row joined with its product."""

    product: ProductRecord
    scanned_at: datetime


@dataclass(frozen=True)
class FavoriteProduct:
    """Favorite row joined with its product."""

    product: ProductRecord
    favorited_at: datetime


@dataclass(frozen=True)
class ProcessedProductInfo:
    """Outcome of resolving a scan, tagged by source."""

    source: ResolutionSource
    product: ProductRecord | None = None
    raw_data: RawProductData | None = None
    ai_analysis: AiAnalysisResult | None = None
    message: str | None = None


_NUTRIMENT_COLUMNS = (
    "energy_kcal_100g",
    "fat_100g",
    "saturated_fat_100g",
    "carbohydrates_100g",
    "sugars_100g",
    "fiber_100g",
    "proteins_100g",
    "salt_100g",
)


def placeholder_raw_data(code: str) -> RawProductData:
    """Return the minimal raw data used for visual-scan codes."""
    return RawProductData(code=code, product_name=VISUAL_PLACEHOLDER_NAME)


def raw_from_record(record: ProductRecord) -> RawProductData:
    """Rebuild the raw product view from a stored record."""
    return RawProductData(
        code=record.barcode,
        product_name=record.product_name,
        brands=record.brand,
        image_url=record.product_image,
        ingredients_text=record.ingredients,
        nutrition_grade=record.nutrition_grade,
        ecoscore_grade=record.ecoscore_grade,
        ecoscore_score=record.ecoscore_score,
        nova_group=record.nova_group,
        origins=record.origins,
        packaging=record.packaging,
        categories=record.categories,
        labels=record.labels,
        nutriments=record.nutriments,
    )


def record_payload_from_raw(
    raw: RawProductData, *, visually_analyzed: bool
) -> dict[str, object]:
    """Flatten raw data into product columns, leaving AI columns out."""
    payload: dict[str, object] = {
        "barcode": raw.code,
        "product_name": raw.product_name,
        "brand": raw.brands,
        "product_image": raw.image_url,
        "ingredients": raw.ingredients_text,
        "nutrition_grade": raw.nutrition_grade,
        "ecoscore_grade": raw.ecoscore_grade,
        "ecoscore_score": raw.ecoscore_score,
        "nova_group": raw.nova_group,
        "origins": raw.origins,
        "packaging": raw.packaging,
        "categories": raw.categories,
        "labels": raw.labels,
        "is_visually_analyzed": visually_analyzed,
    }
    for column in _NUTRIMENT_COLUMNS:
        payload[column] = getattr(raw.nutriments, column)
    return payload


def analysis_payload(analysis: AiAnalysisResult) -> dict[str, object]:
    """Return the AI columns for a stored product."""
    return {
        "health_score": analysis.health_score,
        "sustainability_score": analysis.sustainability_score,
        "health_analysis": analysis.health_analysis,
        "health_pros": [point.model_dump() for point in analysis.health_pros],
        "health_cons": [point.model_dump() for point in analysis.health_cons],
        "health_recommendations": list(analysis.health_recommendations),
        "sustainability_analysis": analysis.sustainability_analysis,
        "sustainability_pros": [
            point.model_dump() for point in analysis.sustainability_pros
        ],
        "sustainability_cons": [
            point.model_dump() for point in analysis.sustainability_cons
        ],
        "sustainability_recommendations": list(
            analysis.sustainability_recommendations
        ),
    }


def analysis_from_record(record: ProductRecord) -> AiAnalysisResult | None:
    """Reconstruct the stored AI verdict, or None when the record has none."""
    if record.health_score is None:
        return None
    return AiAnalysisResult(
        health_score=record.health_score,
        sustainability_score=record.sustainability_score or 0,
        health_analysis=record.health_analysis or "",
        health_pros=list(record.health_pros),
        health_cons=list(record.health_cons),
        health_recommendations=list(record.health_recommendations),
        sustainability_analysis=record.sustainability_analysis or "",
        sustainability_pros=list(record.sustainability_pros),
        sustainability_cons=list(record.sustainability_cons),
        sustainability_recommendations=list(record.sustainability_recommendations),
    )
