"""
Back Office — Product image storage on MinIO / S3
"""
import logging
import os
import re
import uuid
from datetime import datetime, timedelta, timezone
from io import BytesIO

from minio import Minio
from starlette.concurrency import run_in_threadpool

from backoffice.core.config import Settings, get_settings
from backoffice.core.exceptions import InvalidOperation

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
ALLOWED_EXTENSIONS = {"jpeg", "jpg", "png", "gif", "webp"}


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", value.lower()).strip("_") or "product"


def build_object_name(product_name: str, filename: str, now: datetime | None = None) -> str:
    stem, ext = os.path.splitext(os.path.basename(filename))
    stamp = int((now or datetime.now(tz=timezone.utc)).timestamp() * 1000)
    return f"products/{slugify(product_name)}/{slugify(stem)}_{stamp}_{uuid.uuid4().hex[:8]}{ext.lower()}"


def validate_image(filename: str, content_type: str | None, size: int, max_bytes: int) -> None:
    ext = os.path.splitext(filename)[1].lstrip(".").lower()
    if ext not in ALLOWED_EXTENSIONS or (content_type and content_type.lower() not in ALLOWED_CONTENT_TYPES):
        raise InvalidOperation(f"'{filename}' is not an accepted image type (jpeg, png, gif, webp).")
    if size == 0:
        raise InvalidOperation(f"'{filename}' is empty.")
    if size > max_bytes:
        raise InvalidOperation(f"'{filename}' exceeds the {max_bytes // (1024 * 1024)} MB limit.")


class ImageStorage:
    def __init__(self, client: Minio, settings: Settings | None = None):
        self.client = client
        self.settings = settings or get_settings()
        self.bucket = self.settings.MINIO_BUCKET
        self._bucket_checked = False

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ImageStorage":
        settings = settings or get_settings()
        client = Minio(
            endpoint=settings.MINIO_ENDPOINT,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_SECURE,
        )
        return cls(client, settings)

    def _ensure_bucket(self) -> None:
        if self._bucket_checked:
            return
        if not self.client.bucket_exists(bucket_name=self.bucket):
            self.client.make_bucket(bucket_name=self.bucket)
            logger.info("Created bucket %s", self.bucket)
        self._bucket_checked = True

    def _put(self, object_name: str, data: bytes, content_type: str) -> None:
        self._ensure_bucket()
        self.client.put_object(
            bucket_name=self.bucket,
            object_name=object_name,
            data=BytesIO(data),
            length=len(data),
            content_type=content_type,
        )

    async def upload(self, product_name: str, filename: str, content_type: str | None, data: bytes) -> str:
        validate_image(filename, content_type, len(data), self.settings.IMAGE_MAX_BYTES)
        object_name = build_object_name(product_name, filename)
        await run_in_threadpool(self._put, object_name, data, content_type or "application/octet-stream")
        logger.info("Stored image %s (%d bytes)", object_name, len(data))
        return object_name

    async def upload_all(self, product_name: str, files: list[tuple[str, str | None, bytes]]) -> list[str]:
        """
        Store a batch of (filename, content_type, data) images. Every file is
        validated before the first one is written, and a failed write removes
        the objects already stored for this batch.
        """
        for filename, content_type, data in files:
            validate_image(filename, content_type, len(data), self.settings.IMAGE_MAX_BYTES)
        stored: list[str] = []
        try:
            for filename, content_type, data in files:
                stored.append(await self.upload(product_name, filename, content_type, data))
        except Exception:
            logger.warning("Upload batch for %s failed; removing %d stored image(s)", product_name, len(stored))
            for object_name in stored:
                await self.delete(object_name)
            raise
        return stored

    async def delete(self, object_name: str) -> None:
        await run_in_threadpool(self.client.remove_object, bucket_name=self.bucket, object_name=object_name)
        logger.info("Removed image %s", object_name)

    async def presigned_url(self, object_name: str) -> str:
        return await run_in_threadpool(
            self.client.presigned_get_object,
            bucket_name=self.bucket,
            object_name=object_name,
            expires=timedelta(hours=self.settings.IMAGE_URL_EXPIRY_HOURS),
        )
