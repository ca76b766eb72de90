"""Application settings for the blog and its storage backends."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration entrypoint for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True

    # Server
    base_url: str = "http://127.0.0.1:8000"

    # Observability
    log_level: str = "INFO"

    # Posts table
    post_backend: Literal["sqlalchemy", "supabase"] = "sqlalchemy"
    posts_table: str = "blog_posts"
    database_url: str = Field(
        default="sqlite:///./data/quill.db",
        validation_alias=AliasChoices("DATABASE_URL"),
    )
    # e.g. postgresql+asyncpg://...; derived from DATABASE_URL for SQLite
    async_database_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ASYNC_DATABASE_URL"),
    )
    db_echo: bool = Field(
        default=False,
        validation_alias=AliasChoices("DB_ECHO", "SQL_ECHO"),
    )

    # Supabase (hosted table and object store)
    supabase_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    supabase_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "SUPABASE_KEY", "SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"
        ),
    )

    # Featured images
    storage_backend: Literal["local", "s3", "supabase"] = "local"
    images_bucket: str = "blog-images"
    media_dir: str = "data/media"
    media_bucket_name: str = ""
    media_cdn_domain: str = ""
    aws_region: str = "us-east-1"
    image_upload_max_mb: int = 5

    # Security
    csrf_secret: str = Field(
        default="dev-csrf-secret-change-me",
        validation_alias=AliasChoices("CSRF_SECRET", "CSRF_SECRET_KEY"),
    )

    # Presentation
    excerpt_length: int = 120

    @property
    def is_production(self) -> bool:
        """Return True when running in production."""
        return self.environment == "production"

    @property
    def store_database_url(self) -> str:
        """Async driver URL for the post store; Alembic uses ``database_url``."""
        if self.async_database_url:
            return self.async_database_url
        if self.database_url.startswith("sqlite:///"):
            return self.database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return self.database_url

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


settings = Settings()
