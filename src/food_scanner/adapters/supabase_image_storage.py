"""Supabase Storage backend for product images."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from food_scanner.services.resolution import ImageStorage, StoredImage

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


@dataclass
class SupabaseImageStorage(ImageStorage):
    """Stores product photos in a Supabase Storage bucket under the user's folder."""

    client: Client
    bucket: str

    def upload_product_image(
        self, user_id: UUID, barcode: str, image_bytes: bytes, mime_type: str
    ) -> StoredImage:
        """Upload an image and return its path and public URL."""
        extension = _EXTENSIONS.get(mime_type, "jpg")
        path = f"{user_id}/{barcode}.{extension}"
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            path=path,
            file=image_bytes,
            file_options={"content-type": mime_type, "upsert": "true"},
        )
        public_url = bucket.get_public_url(path)
        if not public_url:
            raise RuntimeError("Failed to resolve public URL for uploaded image")
        return StoredImage(path=path, public_url=public_url)

    def delete_product_image(self, path: str) -> None:
        """Remove a previously uploaded image."""
        self.client.storage.from_(self.bucket).remove([path])
