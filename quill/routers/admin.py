from __future__ import annotations

import io
import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError

from quill.config import settings
from quill.dependencies import get_post_service
from quill.schemas.post import Found, NotFound, PostForm, PostStatus
from quill.security import issue_csrf_token, set_csrf_cookie, validate_csrf
from quill.services.post_service import (
    ImageUpload,
    PostNotFoundError,
    PostService,
    PostServiceError,
)
from quill.services.post_store import PostStoreError
from quill.staticfiles import templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

REQUIRED_FIELDS_MESSAGE = "Title and content are required!"


class InvalidImageError(ValueError):
    """The selected file is not an acceptable featured image."""


def _admin_page(
    request: Request,
    template: str,
    admin_page: str,
    status_code: int = status.HTTP_200_OK,
    **extra,
):
    """Render an admin page with CSRF token and cookie."""
    csrf_token = issue_csrf_token(request)
    ctx = {
        "request": request,
        "csrf_token": csrf_token,
        "admin_page": admin_page,
        "statuses": [s.value for s in PostStatus],
        **extra,
    }
    response = templates.TemplateResponse(template, ctx, status_code=status_code)
    set_csrf_cookie(response, csrf_token)
    return response


def _form_error_message(exc: ValidationError) -> str:
    fields = {str(err["loc"][0]) for err in exc.errors() if err["loc"]}
    if fields & {"title", "content"}:
        return REQUIRED_FIELDS_MESSAGE
    return "Invalid form input."


async def _read_image(upload: UploadFile | None) -> ImageUpload | None:
    """Turn the optional file input into an ``ImageUpload``.

    Raises:
        InvalidImageError: Wrong type or over the size limit
    """
    if upload is None or not upload.filename:
        return None
    content_type = upload.content_type or ""
    if not content_type.startswith("image/"):
        raise InvalidImageError(f"Unsupported file type: {content_type or 'unknown'}")
    content = await upload.read()
    max_bytes = settings.image_upload_max_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise InvalidImageError(
            f"Image must be under {settings.image_upload_max_mb} MB."
        )
    return ImageUpload(filename=upload.filename, file=io.BytesIO(content))


@router.get("", response_class=HTMLResponse, name="admin_index")
async def admin_index(
    request: Request,
    created: str | None = None,
    updated: str | None = None,
    service: PostService = Depends(get_post_service),
):
    """All posts, drafts included, with links to edit them."""
    error = None
    try:
        posts = await service.list_all()
    except PostStoreError:
        logger.exception("Error fetching posts for admin")
        posts, error = [], "Error loading posts"

    notice = None
    if created is not None:
        notice = "Blog post created successfully!"
    elif updated is not None:
        notice = "Post updated successfully!"

    return _admin_page(
        request, "admin/index.html", "posts", posts=posts, notice=notice, error=error
    )


@router.get("/add", response_class=HTMLResponse, name="admin_add")
def admin_add_form(request: Request):
    return _admin_page(
        request,
        "admin/post_form.html",
        "add",
        form={"status": PostStatus.PUBLISHED.value},
        post=None,
        action="/admin/add",
        error=None,
    )


@router.post("/add", response_class=HTMLResponse)
async def admin_add_post(
    request: Request,
    title: str = Form(""),
    content: str = Form(""),
    excerpt: str = Form(""),
    post_status: str = Form(PostStatus.PUBLISHED.value, alias="status"),
    image: UploadFile | None = File(None),
    csrf_token: str = Form(""),
    service: PostService = Depends(get_post_service),
):
    """Create a post.

    1. Validates CSRF token and the form
    2. Uploads the featured image, if one was selected
    3. Inserts the row and redirects to the admin listing
    """
    validate_csrf(request, csrf_token)
    submitted = {
        "title": title,
        "content": content,
        "excerpt": excerpt,
        "status": post_status,
    }

    def rerender(message: str, status_code: int):
        return _admin_page(
            request,
            "admin/post_form.html",
            "add",
            status_code=status_code,
            form=submitted,
            post=None,
            action="/admin/add",
            error=message,
        )

    try:
        form = PostForm(**submitted)
    except ValidationError as exc:
        return rerender(_form_error_message(exc), status.HTTP_400_BAD_REQUEST)

    try:
        upload = await _read_image(image)
    except InvalidImageError as exc:
        return rerender(str(exc), status.HTTP_400_BAD_REQUEST)

    try:
        post = await service.create_post(form, upload)
    except PostServiceError as exc:
        return rerender(str(exc), status.HTTP_502_BAD_GATEWAY)

    return RedirectResponse(
        f"/admin?created={post.slug}", status_code=status.HTTP_303_SEE_OTHER
    )


def _missing_post_page(request: Request, lookup) -> HTMLResponse:
    if isinstance(lookup, NotFound):
        message, status_code = "Post not found", status.HTTP_404_NOT_FOUND
    else:
        message = "Error loading post"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return _admin_page(
        request,
        "admin/post_missing.html",
        "edit",
        status_code=status_code,
        message=message,
    )


@router.get("/edit/{post_id}", response_class=HTMLResponse, name="admin_edit")
async def admin_edit_form(
    request: Request,
    post_id: str,
    service: PostService = Depends(get_post_service),
):
    """Edit form pre-filled from the stored post."""
    lookup = await service.get_post(post_id)
    if not isinstance(lookup, Found):
        return _missing_post_page(request, lookup)
    post = lookup.post
    return _admin_page(
        request,
        "admin/post_form.html",
        "edit",
        form={
            "title": post.title,
            "content": post.content,
            "excerpt": post.excerpt or "",
            "status": post.status.value,
        },
        post=post,
        action=f"/admin/edit/{post.id}",
        error=None,
    )


@router.post("/edit/{post_id}", response_class=HTMLResponse)
async def admin_edit_post(
    request: Request,
    post_id: str,
    title: str = Form(""),
    content: str = Form(""),
    excerpt: str = Form(""),
    post_status: str = Form(PostStatus.PUBLISHED.value, alias="status"),
    image: UploadFile | None = File(None),
    csrf_token: str = Form(""),
    service: PostService = Depends(get_post_service),
):
    """Update a post, replacing its featured image when a new one is selected."""
    validate_csrf(request, csrf_token)
    submitted = {
        "title": title,
        "content": content,
        "excerpt": excerpt,
        "status": post_status,
    }

    async def rerender(message: str, status_code: int):
        lookup = await service.get_post(post_id)
        return _admin_page(
            request,
            "admin/post_form.html",
            "edit",
            status_code=status_code,
            form=submitted,
            post=lookup.post if isinstance(lookup, Found) else None,
            action=f"/admin/edit/{post_id}",
            error=message,
        )

    try:
        form = PostForm(**submitted)
    except ValidationError as exc:
        return await rerender(_form_error_message(exc), status.HTTP_400_BAD_REQUEST)

    try:
        upload = await _read_image(image)
    except InvalidImageError as exc:
        return await rerender(str(exc), status.HTTP_400_BAD_REQUEST)

    try:
        post = await service.update_post(post_id, form, upload)
    except PostNotFoundError:
        return _missing_post_page(request, NotFound())
    except PostServiceError as exc:
        return await rerender(str(exc), status.HTTP_502_BAD_GATEWAY)

    return RedirectResponse(
        f"/admin?updated={post.slug}", status_code=status.HTTP_303_SEE_OTHER
    )
