"""Image uploads to Supabase Storage (curation-images / profile-images buckets)."""
import logging
import os
import uuid
from typing import Optional

from supabase import Client

from curated_discoveries.config import settings
from curated_discoveries.core.exceptions import RemoteServiceError, ValidationError
from curated_discoveries.modules.storage.schemas import BUCKET_KINDS, ImageBucket, ImageKind, UploadResponse

logger = logging.getLogger(__name__)

CACHE_CONTROL_SECONDS = "3600"


class StorageService:
    def __init__(self, supabase: Client, max_upload_bytes: Optional[int] = None):
        self.supabase = supabase
        self.max_upload_bytes = max_upload_bytes or settings.max_upload_bytes

    def upload_image(
        self,
        bucket: ImageBucket,
        user_id: str,
        filename: str,
        content: bytes,
        content_type: Optional[str],
        kind: ImageKind,
    ) -> UploadResponse:
        """Validate and store an image, returning its public URL"""
        if kind not in BUCKET_KINDS[bucket]:
            raise ValidationError("kind", f"{bucket.value} does not accept {kind.value} images")
        if not content_type or not content_type.startswith("image/"):
            raise ValidationError("file", "Please upload an image file")
        if not content:
            raise ValidationError("file", "The uploaded file is empty")
        if len(content) > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes // (1024 * 1024)
            raise ValidationError("file", f"File size should be less than {limit_mb}MB")

        extension = os.path.splitext(filename or "")[1].lower() or ".img"
        path = f"{kind.value}s/{user_id}-{kind.value}-{uuid.uuid4().hex}{extension}"

        logger.info(f"Uploading {len(content)} bytes to {bucket.value}/{path}")
        try:
            storage = self.supabase.storage.from_(bucket.value)
            storage.upload(
                path,
                content,
                file_options={
                    "content-type": content_type,
                    "cache-control": CACHE_CONTROL_SECONDS,
                    "upsert": "true",
                },
            )
            public_url = storage.get_public_url(path)
        except Exception as e:
            logger.error(f"Supabase Storage upload failed: {str(e)}")
            raise RemoteServiceError("upload_image")
        return UploadResponse(bucket=bucket, path=path, public_url=public_url)

    def delete_image(self, bucket: ImageBucket, path: str, user_id: str) -> bool:
        """Remove an image the user uploaded. Paths embed the uploader id."""
        if not os.path.basename(path).startswith(f"{user_id}-"):
            raise ValidationError("path", "You can only delete your own images")
        try:
            self.supabase.storage.from_(bucket.value).remove([path])
        except Exception as e:
            logger.error(f"Failed to delete {bucket.value}/{path}: {e}")
            raise RemoteServiceError("delete_image")
        return True
