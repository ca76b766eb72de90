from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when an object cannot be written to the object store."""


class StorageBackend(ABC):
    @abstractmethod
    async def save(self, file: BinaryIO, filename: str) -> str: ...

    @abstractmethod
    async def delete(self, filename: str) -> bool: ...

    @abstractmethod
    async def get_url(self, filename: str) -> str: ...

    async def aclose(self) -> None:
        """Release any network resources held by the backend."""


def object_name_from_url(url: str) -> str | None:
    """Return the stored object name, i.e. the last path segment of its URL."""
    name = urlparse(url).path.rstrip("/").rsplit("/", 1)[-1]
    return name or None


_CONTENT_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".avif": "image/avif",
}


def guess_content_type(filename: str) -> str:
    suffix = Path(filename).suffix.lower()
    return _CONTENT_TYPES.get(suffix, "application/octet-stream")


class LocalStorage(StorageBackend):
    """Images on local disk, served by the app under ``/media``."""

    def __init__(self, base_path: Path, base_url: str):
        self.base_path = base_path
        self.base_url = base_url.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    async def save(self, file: BinaryIO, filename: str) -> str:
        path = self.base_path / filename
        try:
            path.write_bytes(file.read())
        except OSError as exc:
            raise StorageError(f"Could not write {filename}: {exc}") from exc
        return await self.get_url(filename)

    async def delete(self, filename: str) -> bool:
        p = self.base_path / filename
        try:
            if p.exists():
                p.unlink()
                return True
        except OSError:
            logger.exception("Failed to delete %s", p)
        return False

    async def get_url(self, filename: str) -> str:
        return f"{self.base_url}/media/{filename}"


class S3MediaStorage(StorageBackend):
    """S3 storage backend for images served via CloudFront CDN."""

    def __init__(
        self,
        bucket_name: str,
        cdn_base_url: str,
        region: str = "us-east-1",
        prefix: str = "blog-images",
    ):
        import boto3

        self.bucket_name = bucket_name
        self.cdn_base_url = cdn_base_url.rstrip("/")
        self.prefix = prefix
        self.client = boto3.client("s3", region_name=region)

    async def save(self, file: BinaryIO, filename: str) -> str:
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=f"{self.prefix}/{filename}",
                Body=file.read(),
                ContentType=guess_content_type(filename),
            )
        except Exception as exc:
            raise StorageError(f"S3 upload failed for {filename}: {exc}") from exc
        return await self.get_url(filename)

    async def delete(self, filename: str) -> bool:
        try:
            self.client.delete_object(
                Bucket=self.bucket_name,
                Key=f"{self.prefix}/{filename}",
            )
            return True
        except Exception:
            logger.exception("Failed to delete %s/%s", self.prefix, filename)
            return False

    async def get_url(self, filename: str) -> str:
        return f"{self.cdn_base_url}/{self.prefix}/{filename}"


class SupabaseStorage(StorageBackend):
    """Supabase Storage bucket with public object URLs."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        bucket: str = "blog-images",
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.client = client or httpx.AsyncClient(
            timeout=60.0,
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
        )

    async def save(self, file: BinaryIO, filename: str) -> str:
        try:
            response = await self.client.post(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{filename}",
                content=file.read(),
                headers={"Content-Type": guess_content_type(filename)},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise StorageError(f"Supabase upload failed for {filename}: {exc}") from exc
        return await self.get_url(filename)

    async def delete(self, filename: str) -> bool:
        try:
            response = await self.client.request(
                "DELETE",
                f"{self.base_url}/storage/v1/object/{self.bucket}",
                json={"prefixes": [filename]},
            )
            response.raise_for_status()
            return True
        except httpx.HTTPError:
            logger.exception("Failed to delete %s/%s", self.bucket, filename)
            return False

    async def get_url(self, filename: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{filename}"

    async def aclose(self) -> None:
        await self.client.aclose()
