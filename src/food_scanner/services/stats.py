"""Statistics over a user's scan history."""

from collections import Counter
from dataclasses import dataclass
from uuid import UUID

from food_scanner.domain.products import ScannedProduct
from food_scanner.domain.stats import ScanStats
from food_scanner.services.history import HistoryRepository


@dataclass
class StatsService:
    """Computes profile statistics from the full history."""

    repository: HistoryRepository

    def get_stats(self, user_id: UUID) -> ScanStats:
        """Return aggregate statistics for a user."""
        return summarize(self.repository.list_entries(user_id, None))


def summarize(entries: list[ScannedProduct]) -> ScanStats:
    """Aggregate history entries into scan statistics."""
    grades = Counter(
        entry.product.nutrition_grade.upper()
        for entry in entries
        if entry.product.nutrition_grade
    )
    brands = Counter(entry.product.brand for entry in entries if entry.product.brand)
    scores = [
        entry.product.health_score
        for entry in entries
        if entry.product.health_score is not None
    ]
    return ScanStats(
        total_scanned=len(entries),
        favorite_nutrition_grade=_most_common(grades),
        most_scanned_brand=_most_common(brands),
        last_scan_at=max((entry.scanned_at for entry in entries), default=None),
        average_health_score=round(sum(scores) / len(scores), 1) if scores else None,
    )


def _most_common(counter: Counter) -> str | None:
    if not counter:
        return None
    return counter.most_common(1)[0][0]
