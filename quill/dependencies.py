"""FastAPI dependencies for the shared, startup-built services."""

from __future__ import annotations

from pathlib import Path

from fastapi import Request

from quill.config import Settings
from quill.database import (
    build_async_engine,
    build_async_session_factory,
    init_async_database,
)
from quill.services.post_service import PostService
from quill.services.post_store import PostStore, SQLAlchemyPostStore, SupabasePostStore
from quill.services.storage import (
    LocalStorage,
    S3MediaStorage,
    StorageBackend,
    SupabaseStorage,
)


async def build_post_store(settings: Settings) -> PostStore:
    if settings.post_backend == "supabase":
        if not settings.supabase_configured:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
        return SupabasePostStore(
            settings.supabase_url, settings.supabase_key, table=settings.posts_table
        )
    engine = build_async_engine(settings.store_database_url, echo=settings.db_echo)
    await init_async_database(engine)
    return SQLAlchemyPostStore(build_async_session_factory(engine), engine)


def build_storage(settings: Settings) -> StorageBackend:
    if settings.storage_backend == "supabase":
        if not settings.supabase_configured:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
        return SupabaseStorage(
            settings.supabase_url, settings.supabase_key, bucket=settings.images_bucket
        )
    if settings.storage_backend == "s3":
        if not settings.media_bucket_name:
            raise RuntimeError("MEDIA_BUCKET_NAME must be set for S3 storage")
        return S3MediaStorage(
            bucket_name=settings.media_bucket_name,
            cdn_base_url=f"https://{settings.media_cdn_domain}",
            region=settings.aws_region,
            prefix=settings.images_bucket,
        )
    return LocalStorage(Path(settings.media_dir), settings.base_url)


async def build_post_service(settings: Settings) -> PostService:
    """Construct the data client and object store once, at process start."""
    return PostService(await build_post_store(settings), build_storage(settings))


def get_post_service(request: Request) -> PostService:
    return request.app.state.post_service
