"""Scan resolution: turns barcode and photo scans into persisted, analyzed products.

Every external call (store, lookup, model, blob storage) is wrapped so that
failures come back to the caller as a tagged outcome instead of an exception.
Steps inside one resolution run strictly in sequence. Concurrent resolutions
of the same (user, barcode) rely on the store's upsert keys; AI generation for
one record is serialized per process by a per-product lock.
"""

import asyncio
import functools
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from food_scanner.domain.analysis import AiAnalysisResult
from food_scanner.domain.products import (
    VISUAL_PLACEHOLDER_NAME,
    VISUAL_SCAN_PREFIX,
    ProcessedProductInfo,
    ProductRecord,
    RawProductData,
    ResolutionSource,
    ScanEvent,
    ScanKind,
    analysis_from_record,
    analysis_payload,
    is_visual_code,
    raw_from_record,
    record_payload_from_raw,
)
from food_scanner.services.analysis import AnalysisService, detect_mime_type
from food_scanner.services.history import HistoryRepository
from food_scanner.services.lookup import ProductLookupService

_logger = logging.getLogger(__name__)


class ProductRepository(Protocol):
    """Persistence interface for product records."""

    def find_by_barcode(
        self, user_id: UUID, barcode: str, *, visually_analyzed: bool
    ) -> ProductRecord | None:
        """Return the user's record for a barcode, if present."""

    def get_product(self, product_id: UUID) -> ProductRecord | None:
        """Return a record by id, if present."""

    def upsert_product(
        self, user_id: UUID, payload: dict[str, object]
    ) -> ProductRecord:
        """Insert or update the record keyed by (user_id, barcode)."""

    def update_analysis(
        self, product_id: UUID, user_id: UUID, payload: dict[str, object]
    ) -> None:
        """Write AI columns on an existing record."""


@dataclass(frozen=True)
class StoredImage:
    """Location of an uploaded product image."""

    path: str
    public_url: str


class ImageStorage(Protocol):
    """Blob storage for product photos."""

    def upload_product_image(
        self, user_id: UUID, barcode: str, image_bytes: bytes, mime_type: str
    ) -> StoredImage:
        """Upload an image under the user's folder."""

    def delete_product_image(self, path: str) -> None:
        """Delete an uploaded image."""


def generate_visual_barcode() -> str:
    """Return a synthetic identifier for a photo-only product."""
    return f"{VISUAL_SCAN_PREFIX}{int(time.time() * 1000)}_{secrets.token_hex(4)}"


@dataclass
class ResolutionService:
    """Coordinates lookup, analysis and persistence for scan events."""

    products: ProductRepository
    history: HistoryRepository
    lookup: ProductLookupService
    analysis: AnalysisService
    images: ImageStorage
    _ai_locks: dict[UUID, asyncio.Lock] = field(default_factory=dict, repr=False)
    _ai_waiters: dict[UUID, int] = field(default_factory=dict, repr=False)
    _pending: dict[UUID, asyncio.Task] = field(default_factory=dict, repr=False)

    async def resolve(self, event: ScanEvent) -> ProcessedProductInfo:
        """Resolve a scan event through the barcode or photo path."""
        if event.kind is ScanKind.BARCODE:
            return await self.resolve_barcode_scan(event.code, event.user_id)
        if not event.image:
            return ProcessedProductInfo(
                source=ResolutionSource.ERROR, message="Photo scan without an image."
            )
        record = await self.resolve_visual_scan(
            event.user_id, event.image, event.name_hint
        )
        if record is None:
            return ProcessedProductInfo(
                source=ResolutionSource.ERROR,
                message="The photo could not be analyzed. Please try again.",
            )
        return ProcessedProductInfo(
            source=ResolutionSource.VISUAL_SCAN,
            product=record,
            raw_data=raw_from_record(record),
            ai_analysis=analysis_from_record(record),
        )

    async def resolve_barcode_scan(
        self, code: str, user_id: UUID
    ) -> ProcessedProductInfo:
        """Resolve a barcode to a stored product without waiting on analysis."""
        try:
            existing = self.products.find_by_barcode(
                user_id, code, visually_analyzed=is_visual_code(code)
            )
        except Exception:
            _logger.exception("Product lookup in store failed: barcode=%s", code)
            return ProcessedProductInfo(
                source=ResolutionSource.ERROR,
                message="Could not read saved products. Please try again.",
            )

        if existing is not None:
            self._touch_history(user_id, existing.id)
            stored_analysis = analysis_from_record(existing)
            return ProcessedProductInfo(
                source=(
                    ResolutionSource.DATABASE
                    if stored_analysis
                    else ResolutionSource.DATABASE_NO_AI
                ),
                product=existing,
                raw_data=raw_from_record(existing),
                ai_analysis=stored_analysis,
            )

        try:
            raw = await self.lookup.lookup(code)
        except Exception:
            _logger.exception("External product lookup failed: barcode=%s", code)
            return ProcessedProductInfo(
                source=ResolutionSource.ERROR,
                message="The product database is unreachable. Please try again.",
            )
        if raw is None:
            return ProcessedProductInfo(
                source=ResolutionSource.NOT_FOUND_OFF,
                message="Product not found. Take a photo to analyze it instead.",
            )

        try:
            saved = self.products.upsert_product(
                user_id,
                record_payload_from_raw(
                    raw, visually_analyzed=is_visual_code(raw.code)
                ),
            )
        except Exception:
            _logger.exception("Saving scanned product failed: barcode=%s", code)
            return ProcessedProductInfo(
                source=ResolutionSource.ERROR,
                raw_data=raw,
                message="The product was found but could not be saved.",
            )

        self._touch_history(user_id, saved.id)
        _logger.info("New product saved: barcode=%s id=%s", code, saved.id)
        return ProcessedProductInfo(
            source=ResolutionSource.NEW_SCAN_OFF_ONLY,
            product=saved,
            raw_data=raw,
        )

    async def fetch_or_generate_ai_analysis(
        self,
        product_id: UUID,
        user_id: UUID,
        raw_data: RawProductData | None = None,
    ) -> AiAnalysisResult | None:
        """Return the stored verdict, generating and storing it if missing.

        Returns None when the record is missing, the input has no product name,
        or the model call fails. A failed write still returns the new verdict.
        """
        lock = self._ai_locks.setdefault(product_id, asyncio.Lock())
        self._ai_waiters[product_id] = self._ai_waiters.get(product_id, 0) + 1
        try:
            async with lock:
                return await self._fetch_or_generate(product_id, user_id, raw_data)
        finally:
            self._ai_waiters[product_id] -= 1
            if not self._ai_waiters[product_id]:
                self._ai_waiters.pop(product_id, None)
                self._ai_locks.pop(product_id, None)

    def get_product(self, product_id: UUID, user_id: UUID) -> ProductRecord | None:
        """Return a product by id when it belongs to the user."""
        record = self.products.get_product(product_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    def schedule_ai_analysis(
        self,
        product_id: UUID,
        user_id: UUID,
        raw_data: RawProductData | None = None,
    ) -> asyncio.Task:
        """Run analysis in the background, reusing a pending task for the product."""
        pending = self._pending.get(product_id)
        if pending is not None and not pending.done():
            return pending
        task = asyncio.create_task(
            self.fetch_or_generate_ai_analysis(product_id, user_id, raw_data),
            name=f"ai-analysis:{product_id}",
        )
        self._pending[product_id] = task
        task.add_done_callback(functools.partial(self._forget_pending, product_id))
        return task

    def _forget_pending(self, product_id: UUID, task: asyncio.Task) -> None:
        if self._pending.get(product_id) is task:
            del self._pending[product_id]

    def pending_analysis(self, product_id: UUID) -> asyncio.Task | None:
        """Return the in-flight background analysis for a product, if any."""
        task = self._pending.get(product_id)
        if task is None or task.done():
            return None
        return task

    async def resolve_visual_scan(
        self, user_id: UUID, image: bytes, name_hint: str | None = None
    ) -> ProductRecord | None:
        """Analyze a product photo and persist it under a synthetic barcode."""
        barcode = generate_visual_barcode()
        try:
            analysis = await self.analysis.analyze_image(image, name_hint)
        except Exception:
            _logger.exception("Image analysis failed: barcode=%s", barcode)
            return None
        if analysis is None:
            return None

        try:
            stored_image = self.images.upload_product_image(
                user_id, barcode, image, detect_mime_type(image)
            )
        except Exception:
            _logger.exception("Image upload failed: barcode=%s", barcode)
            return None

        raw = RawProductData(
            code=barcode,
            product_name=(
                analysis.product_name_from_vision
                or name_hint
                or VISUAL_PLACEHOLDER_NAME
            ),
            brands=analysis.brand_from_vision,
            image_url=stored_image.public_url,
        )
        payload = {
            **record_payload_from_raw(raw, visually_analyzed=True),
            **analysis_payload(analysis),
        }
        try:
            saved = self.products.upsert_product(user_id, payload)
        except Exception:
            _logger.exception("Saving visual scan failed: barcode=%s", barcode)
            self._discard_image(stored_image)
            return None

        self._touch_history(user_id, saved.id)
        _logger.info("Visual scan saved: barcode=%s id=%s", barcode, saved.id)
        return saved

    async def _fetch_or_generate(
        self,
        product_id: UUID,
        user_id: UUID,
        raw_data: RawProductData | None,
    ) -> AiAnalysisResult | None:
        try:
            record = self.products.get_product(product_id)
        except Exception:
            _logger.exception("Reading product failed: id=%s", product_id)
            return None
        if record is None or record.user_id != user_id:
            return None

        stored = analysis_from_record(record)
        if stored is not None:
            return stored

        source = raw_data or raw_from_record(record)
        if not source.product_name:
            _logger.info("Skipping analysis without product name: id=%s", product_id)
            return None

        try:
            analysis = await self.analysis.analyze(source)
        except Exception:
            _logger.exception("Product analysis failed: id=%s", product_id)
            return None
        if analysis is None:
            return None

        try:
            self.products.update_analysis(
                product_id, user_id, analysis_payload(analysis)
            )
        except Exception:
            _logger.exception("Storing product analysis failed: id=%s", product_id)
        return analysis

    def _touch_history(self, user_id: UUID, product_id: UUID) -> None:
        try:
            self.history.upsert_entry(user_id, product_id, datetime.now(tz=UTC))
        except Exception:
            _logger.exception("Updating scan history failed: product=%s", product_id)

    def _discard_image(self, stored_image: StoredImage) -> None:
        try:
            self.images.delete_product_image(stored_image.path)
        except Exception:
            _logger.exception(
                "Removing orphan image failed: path=%s", stored_image.path
            )
