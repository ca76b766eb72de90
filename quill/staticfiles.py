from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from quill.config import settings
from quill.services.post_service import preview_text, split_paragraphs

PACKAGE_ROOT = Path(__file__).parent


def format_date(value: datetime | None) -> str:
    """``January 1, 2024``"""
    if value is None:
        return ""
    return f"{value:%B} {value.day}, {value.year}"


def format_datetime(value: datetime | None) -> str:
    """``January 1, 2024 at 09:30 AM``"""
    if value is None:
        return ""
    return f"{format_date(value)} at {value:%I:%M %p}"


# Shared Jinja2 templates instance
templates = Jinja2Templates(directory=str(PACKAGE_ROOT / "templates"))
templates.env.globals["current_year"] = datetime.now(UTC).year
templates.env.filters["format_date"] = format_date
templates.env.filters["format_datetime"] = format_datetime
templates.env.filters["paragraphs"] = split_paragraphs
templates.env.filters["preview"] = lambda post: preview_text(
    post, settings.excerpt_length
)


class CachedStaticFiles(StaticFiles):
    def __init__(self, *args, cache_control: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.cache_control = cache_control or "public, max-age=86400"

    async def get_response(self, path: str, scope):
        response = await super().get_response(path, scope)
        if self.cache_control and response.status_code == 200:
            response.headers.setdefault("Cache-Control", self.cache_control)
        return response
