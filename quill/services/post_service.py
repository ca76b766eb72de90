"""Blog post service: slugs, image naming, retrieval and the admin write flows."""

from __future__ import annotations

import logging
import re
import secrets
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import BinaryIO

from slugify import slugify

from quill.schemas.post import (
    Found,
    NotFound,
    Post,
    PostCreate,
    PostForm,
    PostLookup,
    PostUpdate,
)
from quill.services.post_store import PostStore, PostStoreError
from quill.services.storage import StorageBackend, StorageError, object_name_from_url

logger = logging.getLogger(__name__)

_DISALLOWED_SLUG_CHARS = re.compile(r"[^a-z0-9 -]")
_SAFE_EXTENSION = re.compile(r"\.[a-z0-9]{1,10}")


class PostServiceError(RuntimeError):
    """Base class for failures surfaced to the admin as an alert."""


class ImageUploadError(PostServiceError):
    """The featured image could not be stored; nothing was written."""


class PostWriteError(PostServiceError):
    """The row insert or update failed."""


class PostNotFoundError(PostServiceError):
    """The post being edited does not exist."""


@dataclass(slots=True)
class ImageUpload:
    """A featured image selected on the admin form."""

    filename: str
    file: BinaryIO


def generate_slug(title: str) -> str:
    """Generate a URL-safe slug from a post title.

    Characters outside ``[a-z0-9 -]`` are dropped (not transliterated), then
    whitespace runs become single hyphens and edge hyphens are trimmed.

    Args:
        title: Post title

    Returns:
        Slug containing only lowercase letters, digits and single hyphens
    """
    filtered = _DISALLOWED_SLUG_CHARS.sub("", title.lower())
    return slugify(filtered)


def generate_image_name(original_filename: str) -> str:
    """Build a collision-resistant object name keeping the original extension.

    Extensions that would not survive in a URL path fall back to ``.bin``.
    """
    ext = Path(original_filename).suffix.lower()
    if not _SAFE_EXTENSION.fullmatch(ext):
        ext = ".bin"
    return f"{int(time.time() * 1000)}-{secrets.token_hex(5)}{ext}"


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def preview_text(post: Post, max_length: int = 120) -> str:
    """Listing card text: the excerpt, or the start of the content."""
    return truncate_text(post.excerpt or post.content, max_length)


def split_paragraphs(content: str) -> list[str]:
    """Split post content into paragraphs; every newline starts a new one."""
    return [line.strip() for line in content.splitlines() if line.strip()]


class PostService:
    """Service for blog post reads and admin writes."""

    def __init__(self, store: PostStore, storage: StorageBackend):
        self.store = store
        self.storage = storage

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def list_published(self) -> list[Post]:
        """Published posts, newest first. Failures yield an empty list."""
        try:
            return await self.store.list_published()
        except PostStoreError:
            logger.exception("Error fetching posts")
            return []

    async def list_all(self) -> list[Post]:
        return await self.store.list_all()

    async def get_published(self, slug: str) -> PostLookup:
        return await self.store.get_published_by_slug(slug)

    async def get_post(self, post_id: str) -> PostLookup:
        return await self.store.get_by_id(post_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def _upload_image(self, image: ImageUpload) -> tuple[str, str]:
        object_name = generate_image_name(image.filename)
        try:
            url = await self.storage.save(image.file, object_name)
        except StorageError as exc:
            logger.exception("Error uploading image %s", image.filename)
            raise ImageUploadError("Error uploading image!") from exc
        logger.info("Uploaded image %s as %s", image.filename, object_name)
        return url, object_name

    async def _delete_image(self, image_url: str) -> None:
        object_name = object_name_from_url(image_url)
        if not object_name:
            return
        try:
            deleted = await self.storage.delete(object_name)
        except Exception:
            logger.exception("Error deleting image %s", object_name)
            return
        if not deleted:
            logger.warning("Image %s was not deleted", object_name)

    async def create_post(
        self, form: PostForm, image: ImageUpload | None = None
    ) -> Post:
        """Upload the optional image, then insert the post.

        Args:
            form: Validated admin form
            image: Newly selected featured image, if any

        Returns:
            The inserted post

        Raises:
            ImageUploadError: The image upload failed; no insert was issued
            PostWriteError: The insert failed
        """
        image_url = image_name = None
        if image is not None:
            image_url, _ = await self._upload_image(image)
            image_name = image.filename

        payload = PostCreate(
            title=form.title,
            content=form.content,
            excerpt=form.excerpt,
            image_url=image_url,
            image_name=image_name,
            slug=generate_slug(form.title),
            status=form.status,
        )
        try:
            post = await self.store.insert(payload)
        except PostStoreError as exc:
            logger.exception("Database error while creating post")
            if image_url:
                await self._delete_image(image_url)
            raise PostWriteError(f"Error saving blog post: {exc}") from exc

        logger.info("Created post %s (%s)", post.id, post.slug)
        return post

    async def update_post(
        self, post_id: str, form: PostForm, image: ImageUpload | None = None
    ) -> Post:
        """Replace the optional image, then update the post by id.

        With a new image the previous object is deleted first (best-effort),
        then the new one is uploaded, then the row is updated.

        Raises:
            PostNotFoundError: No post has this id
            PostWriteError: The existing post could not be read, or the
                update failed
            ImageUploadError: The new image upload failed; no update was issued
        """
        lookup = await self.store.get_by_id(post_id)
        if isinstance(lookup, NotFound):
            raise PostNotFoundError("Post not found")
        if not isinstance(lookup, Found):
            raise PostWriteError(f"Error updating post: {lookup.reason}")
        existing = lookup.post

        image_url, image_name = existing.image_url, existing.image_name
        new_upload = False
        if image is not None:
            if existing.image_url:
                await self._delete_image(existing.image_url)
            image_url, _ = await self._upload_image(image)
            image_name = image.filename
            new_upload = True

        payload = PostUpdate(
            title=form.title,
            content=form.content,
            excerpt=form.excerpt,
            image_url=image_url,
            image_name=image_name,
            slug=generate_slug(form.title),
            status=form.status,
            updated_at=datetime.now(UTC),
        )
        try:
            post = await self.store.update(post_id, payload)
        except PostStoreError as exc:
            logger.exception("Database error while updating post %s", post_id)
            if new_upload and image_url:
                await self._delete_image(image_url)
            raise PostWriteError(f"Error updating post: {exc}") from exc

        logger.info("Updated post %s (%s)", post.id, post.slug)
        return post

    async def aclose(self) -> None:
        await self.store.aclose()
        await self.storage.aclose()
