"""Public blog pages: the listing and single posts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse

from quill.dependencies import get_post_service
from quill.schemas.post import Found, NotFound
from quill.services.post_service import PostService
from quill.staticfiles import templates

router = APIRouter(prefix="/blog", tags=["blog"])


@router.get("", response_class=HTMLResponse, name="blog_index")
async def blog_index(
    request: Request,
    service: PostService = Depends(get_post_service),
):
    """Published posts, newest first."""
    posts = await service.list_published()
    return templates.TemplateResponse(
        "blog/index.html",
        {"request": request, "posts": posts},
    )


@router.get("/{slug}", response_class=HTMLResponse, name="blog_post")
async def blog_post(
    request: Request,
    slug: str,
    service: PostService = Depends(get_post_service),
):
    """Single published post looked up by slug."""
    lookup = await service.get_published(slug)

    if isinstance(lookup, Found):
        return templates.TemplateResponse(
            "blog/post.html",
            {"request": request, "post": lookup.post},
        )

    if isinstance(lookup, NotFound):
        message = "Blog post not found"
        status_code = status.HTTP_404_NOT_FOUND
    else:
        message = "Error loading blog post"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return templates.TemplateResponse(
        "blog/post_missing.html",
        {
            "request": request,
            "message": message,
            "not_found": isinstance(lookup, NotFound),
        },
        status_code=status_code,
    )
