"""Pydantic schemas and lookup results for blog posts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PostStatus(str, Enum):
    """Blog post visibility."""

    DRAFT = "draft"
    PUBLISHED = "published"


class Post(BaseModel):
    """A stored blog post as returned by any post store."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    excerpt: str | None = None
    image_url: str | None = None
    image_name: str | None = None
    slug: str
    status: PostStatus
    created_at: datetime
    updated_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: object) -> str:
        """Stores may hand back integer or UUID keys."""
        return str(value)


class PostForm(BaseModel):
    """Admin form input, validated before anything is written."""

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    excerpt: str | None = None
    status: PostStatus = PostStatus.PUBLISHED

    @field_validator("title", "content", mode="before")
    @classmethod
    def strip_required(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("excerpt", mode="before")
    @classmethod
    def blank_excerpt_is_none(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip() or None
        return value


class PostCreate(BaseModel):
    """Row payload for an insert; id and timestamps are store-assigned."""

    model_config = ConfigDict(use_enum_values=True)

    title: str
    content: str
    excerpt: str | None = None
    image_url: str | None = None
    image_name: str | None = None
    slug: str
    status: PostStatus


class PostUpdate(BaseModel):
    """Row payload for an update by id."""

    model_config = ConfigDict(use_enum_values=True)

    title: str | None = None
    content: str | None = None
    excerpt: str | None = None
    image_url: str | None = None
    image_name: str | None = None
    slug: str | None = None
    status: PostStatus | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Found:
    post: Post


@dataclass(frozen=True, slots=True)
class NotFound:
    pass


@dataclass(frozen=True, slots=True)
class TransportError:
    reason: str


PostLookup = Union[Found, NotFound, TransportError]
