"""Scan statistics models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ScanStats:
    """Aggregate figures over a user's scan history."""

    total_scanned: int
    favorite_nutrition_grade: str | None
    most_scanned_brand: str | None
    last_scan_at: datetime | None
    average_health_score: float | None
