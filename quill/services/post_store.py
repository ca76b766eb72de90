"""Data-access layer for blog posts.

``PostStore`` is the single interface the rest of the app talks to. Two
implementations exist: a local SQLAlchemy table and a hosted Supabase
(PostgREST) table. Lookups that may legitimately miss return a
``PostLookup`` variant instead of raising; everything else raises
``PostStoreError`` on failure.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import ValidationError
from sqlalchemy import desc, select
from sqlalchemy.exc import MultipleResultsFound, NoResultFound, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from quill.models.post import BlogPost
from quill.schemas.post import (
    Found,
    NotFound,
    Post,
    PostCreate,
    PostLookup,
    PostStatus,
    PostUpdate,
    TransportError,
)

logger = logging.getLogger(__name__)


class PostStoreError(RuntimeError):
    """Raised when the backing table cannot be queried or written."""


class PostStore(ABC):
    @abstractmethod
    async def list_published(self) -> list[Post]: ...

    @abstractmethod
    async def list_all(self) -> list[Post]: ...

    @abstractmethod
    async def get_published_by_slug(self, slug: str) -> PostLookup: ...

    @abstractmethod
    async def get_by_id(self, post_id: str) -> PostLookup: ...

    @abstractmethod
    async def insert(self, payload: PostCreate) -> Post: ...

    @abstractmethod
    async def update(self, post_id: str, payload: PostUpdate) -> Post: ...

    async def aclose(self) -> None:
        """Release connections held by the store."""

class SQLAlchemyPostStore(PostStore):
    """Post store backed by the local ``blog_posts`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        engine: AsyncEngine | None = None,
    ):
        self.session_factory = session_factory
        self.engine = engine

    async def _list(self, *criteria) -> list[Post]:
        stmt = select(BlogPost).where(*criteria).order_by(desc(BlogPost.created_at))
        try:
            async with self.session_factory() as db:
                rows = (await db.scalars(stmt)).all()
                return [Post.model_validate(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PostStoreError(str(exc)) from exc
        except ValidationError as exc:
            raise PostStoreError(f"Malformed post row: {exc}") from exc

    async def list_published(self) -> list[Post]:
        return await self._list(BlogPost.status == PostStatus.PUBLISHED.value)

    async def list_all(self) -> list[Post]:
        return await self._list()

    async def _lookup(self, *criteria) -> PostLookup:
        try:
            async with self.session_factory() as db:
                row = (await db.scalars(select(BlogPost).where(*criteria))).one()
                return Found(Post.model_validate(row))
        except NoResultFound:
            return NotFound()
        except MultipleResultsFound:
            return TransportError("Multiple rows matched a single-row lookup")
        except (SQLAlchemyError, ValidationError) as exc:
            logger.exception("Post lookup failed")
            return TransportError(str(exc))

    async def get_published_by_slug(self, slug: str) -> PostLookup:
        return await self._lookup(
            BlogPost.slug == slug,
            BlogPost.status == PostStatus.PUBLISHED.value,
        )

    async def get_by_id(self, post_id: str) -> PostLookup:
        return await self._lookup(BlogPost.id == post_id)

    async def insert(self, payload: PostCreate) -> Post:
        try:
            async with self.session_factory() as db:
                row = BlogPost(**payload.model_dump())
                db.add(row)
                await db.commit()
                await db.refresh(row)
                return Post.model_validate(row)
        except SQLAlchemyError as exc:
            raise PostStoreError(str(exc)) from exc

    async def update(self, post_id: str, payload: PostUpdate) -> Post:
        try:
            async with self.session_factory() as db:
                row = await db.get(BlogPost, post_id)
                if row is None:
                    raise PostStoreError(f"Post {post_id} does not exist")
                for field, value in payload.model_dump(exclude_unset=True).items():
                    setattr(row, field, value)
                await db.commit()
                await db.refresh(row)
                return Post.model_validate(row)
        except SQLAlchemyError as exc:
            raise PostStoreError(str(exc)) from exc

    async def aclose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()


class SupabasePostStore(PostStore):
    """Post store backed by a hosted Supabase table through PostgREST."""

    NO_ROWS_CODE = "PGRST116"
    SINGLE_OBJECT = "application/vnd.pgrst.object+json"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = "blog_posts",
        client: httpx.AsyncClient | None = None,
    ):
        self.endpoint = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self.client = client or httpx.AsyncClient(
            timeout=30.0,
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
        )

    async def _request(self, method: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self.client.request(method, self.endpoint, **kwargs)
        except httpx.HTTPError as exc:
            raise PostStoreError(f"Supabase request failed: {exc}") from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if not isinstance(body, dict):
            return f"HTTP {response.status_code}"
        return body.get("message") or f"HTTP {response.status_code}"

    def _posts(self, response: httpx.Response) -> list[Post]:
        if response.is_error:
            raise PostStoreError(self._error_message(response))
        # JSONDecodeError and ValidationError are both ValueErrors
        try:
            return [Post.model_validate(row) for row in response.json()]
        except (ValueError, TypeError) as exc:
            raise PostStoreError(f"Malformed Supabase response: {exc}") from exc

    async def list_published(self) -> list[Post]:
        response = await self._request(
            "GET",
            params={
                "select": "*",
                "status": f"eq.{PostStatus.PUBLISHED.value}",
                "order": "created_at.desc",
            },
        )
        return self._posts(response)

    async def list_all(self) -> list[Post]:
        response = await self._request(
            "GET", params={"select": "*", "order": "created_at.desc"}
        )
        return self._posts(response)

    async def _single(self, params: dict[str, str]) -> PostLookup:
        try:
            response = await self._request(
                "GET",
                params={"select": "*", **params},
                headers={"Accept": self.SINGLE_OBJECT},
            )
        except PostStoreError as exc:
            logger.exception("Post lookup failed")
            return TransportError(str(exc))

        if response.is_success:
            try:
                return Found(Post.model_validate(response.json()))
            except ValueError as exc:
                logger.exception("Malformed post in lookup response")
                return TransportError(f"Malformed Supabase response: {exc}")

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return TransportError(f"HTTP {response.status_code}")
        # PGRST116 covers both "no rows" and "more than one row"
        if body.get("code") == self.NO_ROWS_CODE and "0 rows" in str(
            body.get("details", "")
        ):
            return NotFound()
        return TransportError(self._error_message(response))

    async def get_published_by_slug(self, slug: str) -> PostLookup:
        return await self._single(
            {"slug": f"eq.{slug}", "status": f"eq.{PostStatus.PUBLISHED.value}"}
        )

    async def get_by_id(self, post_id: str) -> PostLookup:
        return await self._single({"id": f"eq.{post_id}"})

    async def insert(self, payload: PostCreate) -> Post:
        response = await self._request(
            "POST",
            json=[payload.model_dump(mode="json")],
            headers={"Prefer": "return=representation"},
        )
        posts = self._posts(response)
        if not posts:
            raise PostStoreError("Insert returned no rows")
        return posts[0]

    async def update(self, post_id: str, payload: PostUpdate) -> Post:
        response = await self._request(
            "PATCH",
            params={"id": f"eq.{post_id}"},
            json=payload.model_dump(mode="json", exclude_unset=True),
            headers={"Prefer": "return=representation"},
        )
        posts = self._posts(response)
        if not posts:
            raise PostStoreError(f"Post {post_id} does not exist")
        return posts[0]

    async def aclose(self) -> None:
        await self.client.aclose()
