"""FastAPI application factory."""

import asyncio
import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, Request, status

from food_scanner.api.deps import UserSession, current_session, get_container
from food_scanner.api.models import (
    AnalysisResponse,
    BarcodeScanRequest,
    FavoriteItemOut,
    FavoriteStatusOut,
    HistoryItemOut,
    PhotoScanRequest,
    ProductDetailResponse,
    ProductOut,
    ScanResponse,
    StatsOut,
)
from food_scanner.app_logging import configure_logging
from food_scanner.containers import AppContainer
from food_scanner.domain.products import (
    ProductRecord,
    ResolutionSource,
    ScanEvent,
    ScanKind,
    analysis_from_record,
)

_DEFERRED_ANALYSIS = {
    ResolutionSource.DATABASE_NO_AI,
    ResolutionSource.NEW_SCAN_OFF_ONLY,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/scans/barcode")
    async def scan_barcode(
        payload: BarcodeScanRequest,
        request: Request,
        session: UserSession = Depends(current_session),
    ) -> ScanResponse:
        """Resolve a barcode and queue analysis when the record has none."""
        state_container = get_container(request)
        resolution = state_container.resolution_service
        info = await resolution.resolve(
            ScanEvent(
                user_id=session.user_id,
                kind=ScanKind.BARCODE,
                code=payload.code.strip(),
            )
        )
        if (
            state_container.settings.background_analysis
            and info.product is not None
            and info.source in _DEFERRED_ANALYSIS
        ):
            resolution.schedule_ai_analysis(
                info.product.id, session.user_id, info.raw_data
            )
        logger.info("Barcode scan resolved: source=%s", info.source.value)
        return ScanResponse.from_info(info)

    @app.post("/scans/photo")
    async def scan_photo(
        payload: PhotoScanRequest,
        request: Request,
        session: UserSession = Depends(current_session),
    ) -> ScanResponse:
        """Identify and analyze a product from a photo."""
        image = _decode_image(payload.image_base64)
        info = await get_container(request).resolution_service.resolve(
            ScanEvent(
                user_id=session.user_id,
                kind=ScanKind.PHOTO,
                image=image,
                name_hint=payload.name_hint,
            )
        )
        logger.info("Photo scan resolved: source=%s", info.source.value)
        return ScanResponse.from_info(info)

    @app.get("/products/{product_id}")
    async def product_detail(
        product_id: UUID,
        request: Request,
        session: UserSession = Depends(current_session),
    ) -> ProductDetailResponse:
        """Return a stored product with its verdict and favorite flag."""
        state_container = get_container(request)
        record = _owned_product(state_container, product_id, session)
        return ProductDetailResponse(
            product=ProductOut.model_validate(record),
            ai_analysis=analysis_from_record(record),
            is_favorite=state_container.favorites_service.is_favorite(
                session.user_id, product_id
            ),
        )

    @app.post("/products/{product_id}/analysis")
    async def product_analysis(
        product_id: UUID,
        request: Request,
        session: UserSession = Depends(current_session),
    ) -> AnalysisResponse:
        """Return the product verdict, joining or starting its generation."""
        state_container = get_container(request)
        _owned_product(state_container, product_id, session)
        resolution = state_container.resolution_service
        pending = resolution.pending_analysis(product_id)
        if pending is not None:
            analysis = await asyncio.shield(pending)
        else:
            analysis = await resolution.fetch_or_generate_ai_analysis(
                product_id, session.user_id
            )
        return AnalysisResponse(analysis=analysis)

    @app.get("/history")
    async def list_history(
        request: Request,
        limit: int | None = None,
        session: UserSession = Depends(current_session),
    ) -> list[HistoryItemOut]:
        """Return recent scans, newest first."""
        entries = get_container(request).history_service.list_history(
            session.user_id, limit
        )
        return [HistoryItemOut.from_entry(entry) for entry in entries]

    @app.delete("/history/{product_id}")
    async def delete_history_entry(
        product_id: UUID,
        request: Request,
        session: UserSession = Depends(current_session),
    ) -> dict[str, str]:
        """Remove a product from the scan history."""
        get_container(request).history_service.remove(session.user_id, product_id)
        return {"status": "ok"}

    @app.get("/favorites")
    async def list_favorites(
        request: Request,
        session: UserSession = Depends(current_session),
    ) -> list[FavoriteItemOut]:
        """Return favorites, most recently added first."""
        favorites = get_container(request).favorites_service.list_favorites(
            session.user_id
        )
        return [FavoriteItemOut.from_entry(entry) for entry in favorites]

    @app.get("/favorites/{product_id}")
    async def favorite_status(
        product_id: UUID,
        request: Request,
        session: UserSession = Depends(current_session),
    ) -> FavoriteStatusOut:
        """Return whether the product is a favorite."""
        return FavoriteStatusOut(
            is_favorite=get_container(request).favorites_service.is_favorite(
                session.user_id, product_id
            )
        )

    @app.put("/favorites/{product_id}")
    async def add_favorite(
        product_id: UUID,
        request: Request,
        session: UserSession = Depends(current_session),
    ) -> dict[str, str]:
        """Add a product to favorites."""
        state_container = get_container(request)
        _owned_product(state_container, product_id, session)
        state_container.favorites_service.add(session.user_id, product_id)
        return {"status": "ok"}

    @app.delete("/favorites/{product_id}")
    async def remove_favorite(
        product_id: UUID,
        request: Request,
        session: UserSession = Depends(current_session),
    ) -> dict[str, str]:
        """Remove a product from favorites."""
        get_container(request).favorites_service.remove(session.user_id, product_id)
        return {"status": "ok"}

    @app.get("/stats")
    async def scan_stats(
        request: Request,
        session: UserSession = Depends(current_session),
    ) -> StatsOut:
        """Return scan statistics for the caller."""
        stats = get_container(request).stats_service.get_stats(session.user_id)
        return StatsOut.from_stats(stats)

    return app


def _owned_product(
    container: AppContainer, product_id: UUID, session: UserSession
) -> ProductRecord:
    """Return the caller's product or raise 404."""
    record = container.resolution_service.get_product(product_id, session.user_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return record


def _decode_image(encoded: str) -> bytes:
    """Decode a base64 image, accepting a data URL prefix."""
    _, _, data = encoded.rpartition(",")
    try:
        image = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid image data"
        ) from exc
    if not image:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Empty image"
        )
    return image
