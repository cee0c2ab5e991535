"""Models for AI health and sustainability verdicts."""

import json

from pydantic import BaseModel, ConfigDict, Field


class AnalysisPoint(BaseModel):
    """Single pro or con with a short title and an explanation."""

    title: str
    detail: str = ""


class AiAnalysisResult(BaseModel):
    """Structured health and sustainability verdict for a product.

    Field aliases match the JSON keys the model is asked to produce and the
    keys returned to API clients.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    health_score: int = Field(ge=0, le=100, alias="healthScore")
    sustainability_score: int = Field(ge=0, le=100, alias="sustainabilityScore")
    health_analysis: str = Field(default="", alias="analysis")
    health_pros: list[AnalysisPoint] = Field(default_factory=list, alias="pros")
    health_cons: list[AnalysisPoint] = Field(default_factory=list, alias="cons")
    health_recommendations: list[str] = Field(
        default_factory=list, alias="recommendations"
    )
    sustainability_analysis: str = Field(default="", alias="sustainabilityAnalysis")
    sustainability_pros: list[AnalysisPoint] = Field(
        default_factory=list, alias="sustainabilityPros"
    )
    sustainability_cons: list[AnalysisPoint] = Field(
        default_factory=list, alias="sustainabilityCons"
    )
    sustainability_recommendations: list[str] = Field(
        default_factory=list, alias="sustainabilityRecommendations"
    )
    product_name_from_vision: str | None = Field(
        default=None, alias="productNameFromVision"
    )
    brand_from_vision: str | None = Field(default=None, alias="brandFromVision")


def coerce_points(value: object) -> list[AnalysisPoint]:
    """Normalize stored or model-produced pro/con items into analysis points.

    Accepts a list of dicts, a list of JSON-encoded dicts, a JSON-encoded list,
    or plain strings. Unreadable entries become a point with the raw text as
    title.
    """
    if value is None:
        return []
    if isinstance(value, str):
        decoded = _decode_json(value)
        if isinstance(decoded, list):
            return coerce_points(decoded)
        if isinstance(decoded, dict):
            return [_point_from_mapping(decoded)]
        return [AnalysisPoint(title=value)] if value.strip() else []
    if not isinstance(value, list):
        return []
    points: list[AnalysisPoint] = []
    for item in value:
        if isinstance(item, AnalysisPoint):
            points.append(item)
        elif isinstance(item, dict):
            points.append(_point_from_mapping(item))
        elif isinstance(item, str):
            decoded = _decode_json(item)
            if isinstance(decoded, dict):
                points.append(_point_from_mapping(decoded))
            elif item.strip():
                points.append(AnalysisPoint(title=item))
    return points


def coerce_strings(value: object) -> list[str]:
    """Normalize a recommendation list to plain strings."""
    if isinstance(value, str):
        decoded = _decode_json(value)
        if isinstance(decoded, list):
            return coerce_strings(decoded)
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


def _point_from_mapping(data: dict) -> AnalysisPoint:
    title = data.get("title") or data.get("name") or ""
    detail = data.get("detail") or data.get("description") or ""
    return AnalysisPoint(title=str(title), detail=str(detail))


def _decode_json(raw: str) -> object:
    stripped = raw.strip()
    if not stripped or stripped[0] not in "[{":
        return None
    try:
        return json.loads(stripped)
    except ValueError:
        return None
