"""Health and sustainability analysis using LLMs."""

import base64
import json
import logging
import re
from dataclasses import dataclass
from typing import Protocol

from food_scanner.domain.analysis import (
    AiAnalysisResult,
    coerce_points,
    coerce_strings,
)
from food_scanner.domain.products import RawProductData

FALLBACK_SCORE = 50
FALLBACK_TEXT = "A detailed analysis could not be generated."

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_HEALTH_SCORE = re.compile(r'healthScore["\s:]+(\d+)')
_SUSTAINABILITY_SCORE = re.compile(r'sustainabilityScore["\s:]+(\d+)')

_logger = logging.getLogger(__name__)

_RESPONSE_FORMAT = """\
Reply with a single JSON object and nothing else, using these keys:
{
  "healthScore": integer 0-100,
  "sustainabilityScore": integer 0-100,
  "analysis": short health assessment,
  "pros": [{"title": ..., "detail": ...}] health positives,
  "cons": [{"title": ..., "detail": ...}] health negatives,
  "recommendations": [string] health recommendations,
  "sustainabilityAnalysis": short environmental assessment,
  "sustainabilityPros": [{"title": ..., "detail": ...}],
  "sustainabilityCons": [{"title": ..., "detail": ...}],
  "sustainabilityRecommendations": [string]%s
}"""

_SCORING_RULES = """\
Scores must be deterministic: the same product always gets the same scores.
Health: start from the Nutri-Score (A 80-100, B 60-79, C 40-59, D 20-39,
E 1-19) and adjust within the band for additives, sugars, salt, saturated fat,
fiber and protein balance.
Sustainability: start from the Eco-Score with the same bands. Without an
Eco-Score weigh packaging, ingredient origin, certifications and product type
equally. Penalize palm oil and other high-impact ingredients.
When data is missing make reasonable, consistent assumptions."""


class AnalysisClient(Protocol):
    """Interface for LLM text and vision generation."""

    async def generate(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        image_data_url: str | None = None,
    ) -> str:
        """Return the model's reply text."""


@dataclass
class AnalysisService:
    """Builds analysis prompts and parses model replies into verdicts."""

    client: AnalysisClient
    model: str
    reasoning_effort: str | None
    store: bool

    async def analyze(self, product: RawProductData) -> AiAnalysisResult:
        """Analyze a product from its label data."""
        reply = await self.client.generate(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            prompt=build_product_prompt(product),
        )
        return parse_analysis(reply)

    async def analyze_image(
        self, image_bytes: bytes, name_hint: str | None = None
    ) -> AiAnalysisResult:
        """Identify and analyze a product from a photo."""
        reply = await self.client.generate(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            prompt=build_image_prompt(name_hint),
            image_data_url=to_data_url(image_bytes),
        )
        return parse_analysis(reply)


def build_product_prompt(product: RawProductData) -> str:
    """Build the text-mode prompt from label and nutrition data."""
    nutriments = product.nutriments
    lines = [
        "Assess this food product and give two separate scores from 0 to 100:",
        "a health score and an environmental sustainability score.",
        "",
        "PRODUCT",
        f"Name: {product.product_name}",
        f"Brand: {_or_unknown(product.brands)}",
        f"Nutri-Score: {_or_unknown(product.nutrition_grade)}",
        f"Eco-Score: {_or_unknown(product.ecoscore_grade)}",
        f"NOVA group: {_or_unknown(product.nova_group)}",
        f"Ingredients: {_or_unknown(product.ingredients_text)}",
        f"Origins: {_or_unknown(product.origins)}",
        f"Packaging: {_or_unknown(product.packaging)}",
        f"Categories: {_or_unknown(product.categories)}",
        f"Labels: {_or_unknown(product.labels)}",
        "",
        "NUTRITION PER 100g",
        f"Energy: {_or_unknown(nutriments.energy_kcal_100g)} kcal",
        f"Fat: {_or_unknown(nutriments.fat_100g)} g",
        f"Saturated fat: {_or_unknown(nutriments.saturated_fat_100g)} g",
        f"Carbohydrates: {_or_unknown(nutriments.carbohydrates_100g)} g",
        f"Sugars: {_or_unknown(nutriments.sugars_100g)} g",
        f"Fiber: {_or_unknown(nutriments.fiber_100g)} g",
        f"Protein: {_or_unknown(nutriments.proteins_100g)} g",
        f"Salt: {_or_unknown(nutriments.salt_100g)} g",
        "",
        _SCORING_RULES,
        "",
        _RESPONSE_FORMAT % "",
    ]
    return "\n".join(lines)


def build_image_prompt(name_hint: str | None) -> str:
    """Build the vision-mode prompt."""
    hint = (
        f"The user says the product is: {name_hint}."
        if name_hint
        else "The user gave no name for the product."
    )
    vision_keys = (
        ',\n  "productNameFromVision": product name read from the image,'
        '\n  "brandFromVision": brand read from the image or null'
    )
    return "\n".join(
        [
            "Identify the food product in the photo from its packaging and"
            " estimate its nutrition and environmental profile.",
            hint,
            "",
            _SCORING_RULES,
            "",
            _RESPONSE_FORMAT % vision_keys,
        ]
    )


def parse_analysis(reply: str) -> AiAnalysisResult:
    """Parse a model reply, falling back to a low-confidence verdict."""
    data = _extract_json_object(reply)
    if data is None or not (
        _is_number(data.get("healthScore"))
        and _is_number(data.get("sustainabilityScore"))
    ):
        _logger.warning("Model reply is not a valid analysis, using fallback")
        return fallback_analysis(reply)
    return AiAnalysisResult(
        health_score=_clamp(data["healthScore"]),
        sustainability_score=_clamp(data["sustainabilityScore"]),
        health_analysis=str(data.get("analysis") or ""),
        health_pros=coerce_points(data.get("pros")),
        health_cons=coerce_points(data.get("cons")),
        health_recommendations=coerce_strings(data.get("recommendations")),
        sustainability_analysis=str(data.get("sustainabilityAnalysis") or ""),
        sustainability_pros=coerce_points(data.get("sustainabilityPros")),
        sustainability_cons=coerce_points(data.get("sustainabilityCons")),
        sustainability_recommendations=coerce_strings(
            data.get("sustainabilityRecommendations")
        ),
        product_name_from_vision=_optional_text(data.get("productNameFromVision")),
        brand_from_vision=_optional_text(data.get("brandFromVision")),
    )


def fallback_analysis(reply: str) -> AiAnalysisResult:
    """Synthesize a placeholder verdict, keeping any scores found in the text."""
    health = _HEALTH_SCORE.search(reply)
    sustainability = _SUSTAINABILITY_SCORE.search(reply)
    unavailable = [{"title": "Not available", "detail": FALLBACK_TEXT}]
    return AiAnalysisResult(
        health_score=_clamp(health.group(1)) if health else FALLBACK_SCORE,
        sustainability_score=(
            _clamp(sustainability.group(1)) if sustainability else FALLBACK_SCORE
        ),
        health_analysis=FALLBACK_TEXT,
        health_pros=coerce_points(unavailable),
        health_cons=coerce_points(unavailable),
        health_recommendations=["Not available"],
        sustainability_analysis=FALLBACK_TEXT,
        sustainability_pros=coerce_points(unavailable),
        sustainability_cons=coerce_points(unavailable),
        sustainability_recommendations=["Not available"],
    )


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


def _extract_json_object(reply: str) -> dict | None:
    match = _JSON_OBJECT.search(reply)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _clamp(value: object) -> int:
    return max(0, min(100, round(float(value))))


def _optional_text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _or_unknown(value: object) -> object:
    return "unknown" if value is None or value == "" else value
