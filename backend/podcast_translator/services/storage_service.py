"""
Object storage gateway for original and translated podcast audio.

Two backends share one async interface: Google Cloud Storage for
deployments and a local directory (served back through signed links)
for development and tests.
"""

import hashlib
import hmac
import os
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, urlencode

import aiofiles
from google.api_core import exceptions as google_exceptions
from google.cloud import storage
from starlette.concurrency import run_in_threadpool

from podcast_translator.config import get_settings
from podcast_translator.utils.google_credentials import load_google_credentials, google_project_id
from podcast_translator.utils.logger import get_logger

logger = get_logger(__name__)


class StorageError(Exception):
    """Raised when an object storage operation fails."""
    pass


class StorageBackend(ABC):
    """Operations the application needs from an object store."""

    @abstractmethod
    async def upload(self, bucket: str, path: str, data: bytes,
                     content_type: str, upsert: bool = False) -> str:
        """Store ``data`` at ``bucket/path`` and return the path."""

    @abstractmethod
    async def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        """Return a time-limited read URL for a private object."""

    @abstractmethod
    async def remove(self, bucket: str, paths: List[str]) -> None:
        """Delete objects; paths that do not exist are ignored."""

    @abstractmethod
    def get_public_url(self, bucket: str, path: str) -> str:
        """Return the stable URL of an object."""

    @abstractmethod
    def recognition_uri(self, bucket: str, path: str) -> str:
        """Return the URI a speech-to-text provider reads the object from."""


class LocalStorageBackend(StorageBackend):
    """
    Filesystem storage rooted at ``root``.

    Signed URLs point at the application's own storage route and carry an
    HMAC-SHA256 signature over bucket, path and expiry.
    """

    def __init__(self, root: str, base_url: str, signing_secret: str) -> None:
        self.root: Path = Path(root)
        self.base_url: str = base_url.rstrip("/")
        self.signing_secret: bytes = signing_secret.encode("utf-8")

    def resolve_path(self, bucket: str, path: str) -> Path:
        """Map an object key to a file, refusing keys that escape the bucket."""
        if ".." in Path(path).parts or ".." in Path(bucket).parts:
            raise StorageError(f"Invalid object path: {path}")
        bucket_root = (self.root / bucket).resolve()
        target = (bucket_root / path).resolve()
        if bucket_root not in target.parents:
            raise StorageError(f"Invalid object path: {path}")
        return target

    async def upload(self, bucket: str, path: str, data: bytes,
                     content_type: str, upsert: bool = False) -> str:
        target = self.resolve_path(bucket, path)
        if target.exists() and not upsert:
            raise StorageError(f"Object already exists: {bucket}/{path}")

        try:
            os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error("Local storage write failed", bucket=bucket, path=path, error=str(e))
            raise StorageError(f"Failed to store {bucket}/{path}: {str(e)}")

        logger.info("Stored object", backend="local", bucket=bucket, path=path,
                    size_bytes=len(data), content_type=content_type)
        return path

    def _signature(self, bucket: str, path: str, expires: int) -> str:
        message = f"{bucket}/{path}:{expires}".encode("utf-8")
        return hmac.new(self.signing_secret, message, hashlib.sha256).hexdigest()

    async def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        if not self.resolve_path(bucket, path).exists():
            raise StorageError(f"Object not found: {bucket}/{path}")
        expires = int(time.time()) + ttl_seconds
        query = urlencode({"expires": expires, "signature": self._signature(bucket, path, expires)})
        return f"{self.get_public_url(bucket, path)}?{query}"

    def verify_signature(self, bucket: str, path: str, expires: int, signature: str) -> bool:
        """Check a signed link produced by ``create_signed_url``."""
        if expires < int(time.time()):
            return False
        return hmac.compare_digest(self._signature(bucket, path, expires), signature)

    async def remove(self, bucket: str, paths: List[str]) -> None:
        for path in paths:
            target = self.resolve_path(bucket, path)
            try:
                target.unlink(missing_ok=True)
            except OSError as e:
                logger.error("Local storage delete failed", bucket=bucket, path=path, error=str(e))
                raise StorageError(f"Failed to remove {bucket}/{path}: {str(e)}")
            logger.info("Removed object", backend="local", bucket=bucket, path=path)

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/api/storage/{quote(bucket)}/{quote(path)}"

    def recognition_uri(self, bucket: str, path: str) -> str:
        return self.get_public_url(bucket, path)


class GCSStorageBackend(StorageBackend):
    """Google Cloud Storage backend; blocking client calls run in the threadpool."""

    def __init__(self, client: Optional[storage.Client] = None) -> None:
        if client is None:
            credentials = load_google_credentials()
            client = storage.Client(project=google_project_id(credentials), credentials=credentials)
        self.client: storage.Client = client

    async def upload(self, bucket: str, path: str, data: bytes,
                     content_type: str, upsert: bool = False) -> str:
        blob = self.client.bucket(bucket).blob(path)
        # generation 0 only matches when no live object exists
        if_generation_match = None if upsert else 0

        try:
            await run_in_threadpool(
                blob.upload_from_string,
                data,
                content_type=content_type,
                if_generation_match=if_generation_match,
            )
        except google_exceptions.PreconditionFailed:
            raise StorageError(f"Object already exists: {bucket}/{path}")
        except google_exceptions.GoogleAPIError as e:
            logger.error("GCS upload failed", bucket=bucket, path=path, error=str(e))
            raise StorageError(f"Failed to store {bucket}/{path}: {str(e)}")

        logger.info("Stored object", backend="gcs", bucket=bucket, path=path,
                    size_bytes=len(data), content_type=content_type)
        return path

    async def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        blob = self.client.bucket(bucket).blob(path)
        try:
            return await run_in_threadpool(
                blob.generate_signed_url,
                version="v4",
                expiration=timedelta(seconds=ttl_seconds),
                method="GET",
            )
        except (google_exceptions.GoogleAPIError, ValueError) as e:
            logger.error("GCS signed URL failed", bucket=bucket, path=path, error=str(e))
            raise StorageError(f"Failed to sign {bucket}/{path}: {str(e)}")

    async def remove(self, bucket: str, paths: List[str]) -> None:
        gcs_bucket = self.client.bucket(bucket)
        for path in paths:
            try:
                await run_in_threadpool(gcs_bucket.blob(path).delete)
            except google_exceptions.NotFound:
                logger.info("Object already absent", bucket=bucket, path=path)
            except google_exceptions.GoogleAPIError as e:
                logger.error("GCS delete failed", bucket=bucket, path=path, error=str(e))
                raise StorageError(f"Failed to remove {bucket}/{path}: {str(e)}")

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"https://storage.googleapis.com/{quote(bucket)}/{quote(path)}"

    def recognition_uri(self, bucket: str, path: str) -> str:
        return f"gs://{bucket}/{path}"


@lru_cache()
def get_storage_backend() -> StorageBackend:
    """FastAPI dependency returning the configured storage backend."""
    settings = get_settings()
    if settings.storage_backend == "gcs":
        logger.info("Using Google Cloud Storage backend")
        return GCSStorageBackend()

    logger.info("Using local storage backend", storage_path=settings.storage_path)
    return LocalStorageBackend(
        root=settings.storage_path,
        base_url=settings.public_base_url,
        signing_secret=settings.storage_signing_secret,
    )
