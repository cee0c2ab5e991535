"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from postgrest.exceptions import APIError

from food_scanner.adapters.supabase_favorites_repository import (
    SupabaseFavoritesRepository,
)
from food_scanner.adapters.supabase_history_repository import (
    SupabaseHistoryRepository,
)
from food_scanner.adapters.supabase_image_storage import SupabaseImageStorage
from food_scanner.adapters.supabase_product_repository import (
    SupabaseProductRepository,
    parse_product,
)


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {
            "select": [],
            "insert": [],
            "upsert": [],
            "update": [],
            "delete": [],
        }
    )
    last_payload: object | None = None
    last_options: dict[str, object] = field(default_factory=dict)
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    error: Exception | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def upsert(self, payload, **options) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "upsert"
        self.last_payload = payload
        self.last_options = options
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, _column: str, desc: bool = False) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        if self.error is not None:
            raise self.error
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeBucket:
    files: dict[str, bytes] = field(default_factory=dict)
    options: dict[str, object] = field(default_factory=dict)
    removed: list[str] = field(default_factory=list)

    def upload(
        self, path: str, file: bytes, file_options: dict[str, str]
    ) -> None:
        self.files[path] = file
        self.options = file_options

    def get_public_url(self, path: str) -> str:
        return f"https://storage.test/public/{path}"

    def remove(self, paths: list[str]) -> None:
        self.removed.extend(paths)


@dataclass
class FakeStorage:
    buckets: dict[str, FakeBucket] = field(default_factory=dict)

    def from_(self, name: str) -> FakeBucket:
        return self.buckets.setdefault(name, FakeBucket())


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)
    storage: FakeStorage = field(default_factory=FakeStorage)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def _product_row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": str(uuid4()),
        "user_id": str(uuid4()),
        "barcode": "123",
        "product_name": "Pasta X",
        "brand": "Barilla",
        "nova_group": "1",
        "fat_100g": "2.5",
        "is_visually_analyzed": False,
        "created_at": "2026-01-01T10:00:00+00:00",
        "updated_at": "2026-01-01T10:00:00+00:00",
    }
    row.update(overrides)
    return row


def test_parse_product_normalizes_columns() -> None:
    row = _product_row(
        health_score=72,
        health_pros=['{"title": "Low fat", "detail": "2g"}'],
        health_cons='[{"title": "Refined", "detail": "Low fiber"}]',
        health_recommendations=["Pair with vegetables"],
    )

    record = parse_product(row)

    assert record.nova_group == 1
    assert record.nutriments.fat_100g == 2.5
    assert record.health_pros[0].title == "Low fat"
    assert record.health_cons[0].detail == "Low fiber"
    assert record.health_recommendations == ["Pair with vegetables"]
    assert record.has_analysis is True
    assert record.created_at is not None


def test_product_repository_find_by_barcode() -> None:
    client = FakeSupabaseClient()
    products = client.table("products")
    row = _product_row()
    products.queue("select", [row])

    repository = SupabaseProductRepository(client)
    user_id = uuid4()
    found = repository.find_by_barcode(user_id, "123", visually_analyzed=False)
    missing = repository.find_by_barcode(user_id, "456", visually_analyzed=False)

    assert found is not None
    assert found.product_name == "Pasta X"
    assert missing is None
    assert ("user_id", str(user_id)) in products.last_filters
    assert ("is_visually_analyzed", False) in products.last_filters


def test_product_repository_upsert_uses_user_barcode_key() -> None:
    client = FakeSupabaseClient()
    products = client.table("products")
    user_id = uuid4()
    products.queue("upsert", [_product_row(user_id=str(user_id))])

    repository = SupabaseProductRepository(client)
    record = repository.upsert_product(user_id, {"barcode": "123"})

    assert record.user_id == user_id
    assert products.last_options == {"on_conflict": "user_id,barcode"}
    assert isinstance(products.last_payload, dict)
    assert products.last_payload["user_id"] == str(user_id)
    assert "updated_at" in products.last_payload


def test_product_repository_upsert_without_rows_raises() -> None:
    repository = SupabaseProductRepository(FakeSupabaseClient())

    with pytest.raises(RuntimeError):
        repository.upsert_product(uuid4(), {"barcode": "123"})


def test_product_repository_update_analysis_scopes_to_owner() -> None:
    client = FakeSupabaseClient()
    products = client.table("products")
    products.queue("update", [_product_row()])
    product_id = uuid4()
    user_id = uuid4()

    repository = SupabaseProductRepository(client)
    repository.update_analysis(product_id, user_id, {"health_score": 80})

    assert ("id", str(product_id)) in products.last_filters
    assert ("user_id", str(user_id)) in products.last_filters
    assert isinstance(products.last_payload, dict)
    assert products.last_payload["health_score"] == 80


def test_history_repository_upsert_and_list() -> None:
    client = FakeSupabaseClient()
    history = client.table("scan_history")
    history.queue(
        "select",
        [
            {"scanned_at": "2026-01-02T10:00:00+00:00", "products": _product_row()},
            {"scanned_at": "2026-01-01T10:00:00+00:00", "products": None},
        ],
    )

    repository = SupabaseHistoryRepository(client)
    user_id = uuid4()
    product_id = uuid4()
    repository.upsert_entry(user_id, product_id, datetime(2026, 1, 2, tzinfo=UTC))
    entries = repository.list_entries(user_id, 10)

    assert history.last_options == {"on_conflict": "user_id,product_id"}
    assert len(entries) == 1
    assert entries[0].product.product_name == "Pasta X"


def test_favorites_repository_duplicate_insert_is_success() -> None:
    client = FakeSupabaseClient()
    favorites = client.table("favorites")
    favorites.error = APIError({"code": "23505", "message": "duplicate key"})

    repository = SupabaseFavoritesRepository(client)
    repository.add_favorite(uuid4(), uuid4())


def test_favorites_repository_propagates_other_errors() -> None:
    client = FakeSupabaseClient()
    favorites = client.table("favorites")
    favorites.error = APIError({"code": "42501", "message": "permission denied"})

    repository = SupabaseFavoritesRepository(client)
    with pytest.raises(APIError):
        repository.add_favorite(uuid4(), uuid4())


def test_favorites_repository_membership_and_list() -> None:
    client = FakeSupabaseClient()
    favorites = client.table("favorites")
    favorites.queue("select", [{"id": str(uuid4())}])
    favorites.queue("select", [])
    favorites.queue(
        "select",
        [{"created_at": "2026-01-03T09:00:00+00:00", "products": _product_row()}],
    )

    repository = SupabaseFavoritesRepository(client)
    user_id = uuid4()

    assert repository.is_favorite(user_id, uuid4()) is True
    assert repository.is_favorite(user_id, uuid4()) is False
    listed = repository.list_favorites(user_id)
    assert len(listed) == 1
    assert listed[0].product.brand == "Barilla"


def test_image_storage_uploads_under_user_folder() -> None:
    client = FakeSupabaseClient()
    storage = SupabaseImageStorage(client=client, bucket="product-images")
    user_id = uuid4()

    stored = storage.upload_product_image(
        user_id, "visual_1_abcd", b"\x89PNG\r\n\x1a\n", "image/png"
    )
    storage.delete_product_image(stored.path)

    bucket = client.storage.buckets["product-images"]
    assert stored.path == f"{user_id}/visual_1_abcd.png"
    assert stored.public_url.endswith(stored.path)
    assert bucket.options["content-type"] == "image/png"
    assert bucket.removed == [stored.path]
