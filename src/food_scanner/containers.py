"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from food_scanner.adapters.openai_analysis_client import OpenAIAnalysisClient
from food_scanner.adapters.openfoodfacts_client import HttpxOpenFoodFactsClient
from food_scanner.adapters.supabase_favorites_repository import (
    SupabaseFavoritesRepository,
)
from food_scanner.adapters.supabase_history_repository import (
    SupabaseHistoryRepository,
)
from food_scanner.adapters.supabase_image_storage import SupabaseImageStorage
from food_scanner.adapters.supabase_product_repository import (
    SupabaseProductRepository,
)
from food_scanner.config import Settings
from food_scanner.services.analysis import AnalysisService
from food_scanner.services.favorites import FavoritesService
from food_scanner.services.history import HistoryService
from food_scanner.services.lookup import ProductLookupService
from food_scanner.services.resolution import ResolutionService
from food_scanner.services.stats import StatsService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    resolution_service: ResolutionService
    history_service: HistoryService
    favorites_service: FavoritesService
    stats_service: StatsService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    product_repository = SupabaseProductRepository(supabase_client)
    history_repository = SupabaseHistoryRepository(supabase_client)
    favorites_repository = SupabaseFavoritesRepository(supabase_client)
    image_storage = SupabaseImageStorage(
        client=supabase_client, bucket=resolved_settings.product_images_bucket
    )
    openfoodfacts_client = HttpxOpenFoodFactsClient.create(
        base_url=resolved_settings.openfoodfacts_base_url,
        user_agent=resolved_settings.openfoodfacts_user_agent,
    )
    analysis_service = AnalysisService(
        client=OpenAIAnalysisClient.create(resolved_settings.openai_api_key),
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    resolution_service = ResolutionService(
        products=product_repository,
        history=history_repository,
        lookup=ProductLookupService(openfoodfacts_client),
        analysis=analysis_service,
        images=image_storage,
    )

    async def close_resources() -> None:
        await openfoodfacts_client.close()

    return AppContainer(
        settings=resolved_settings,
        resolution_service=resolution_service,
        history_service=HistoryService(
            history_repository, default_limit=resolved_settings.history_limit
        ),
        favorites_service=FavoritesService(favorites_repository),
        stats_service=StatsService(history_repository),
        close_resources=close_resources,
    )
