"""
FastAPI Application - Quill blog
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from quill.config import settings
from quill.dependencies import build_post_service
from quill.observability.logging import configure_logging
from quill.routers.admin import router as admin_router
from quill.routers.blog import router as blog_router
from quill.staticfiles import PACKAGE_ROOT, CachedStaticFiles, templates

logger = logging.getLogger(__name__)

configure_logging(settings.log_level.upper(), json_logs=not settings.debug)
IS_PROD = settings.is_production


# ==========================================
# Application Lifespan
# ==========================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Starting application",
        extra={
            "post_backend": settings.post_backend,
            "storage_backend": settings.storage_backend,
        },
    )
    app.state.post_service = await build_post_service(settings)
    yield
    logger.info("Shutting down application")
    await app.state.post_service.aclose()


# ==========================================
# Exception handlers
# ==========================================
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render HTML error pages for browsers, JSON for everything else."""
    accepts_html = "text/html" in request.headers.get("accept", "").lower()

    if exc.status_code == 404 and accepts_html:
        return templates.TemplateResponse(
            "404.html",
            {"request": request},
            status_code=status.HTTP_404_NOT_FOUND,
        )

    if exc.status_code == 503 and accepts_html:
        return templates.TemplateResponse(
            "503.html",
            {"request": request},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return JSONResponse(
        {"detail": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


# ==========================================
# FastAPI Application
# ==========================================
app = FastAPI(
    title="Quill",
    description="Minimal blog with an admin editor",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if IS_PROD else "/docs",
    redoc_url=None if IS_PROD else "/redoc",
    openapi_url=None if IS_PROD else "/openapi.json",
)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)

app.mount(
    "/static",
    CachedStaticFiles(directory=str(PACKAGE_ROOT / "static")),
    name="static",
)
if settings.storage_backend == "local":
    app.mount(
        "/media",
        CachedStaticFiles(directory=settings.media_dir, check_dir=False),
        name="media",
    )


@app.get("/", include_in_schema=False)
async def home() -> RedirectResponse:
    return RedirectResponse("/blog")


@app.get("/healthz", tags=["system"], summary="Health check", response_model=dict)
async def health_check() -> dict:
    if IS_PROD:
        return {"status": "healthy"}
    return {
        "status": "healthy",
        "post_backend": settings.post_backend,
        "storage_backend": settings.storage_backend,
        "version": app.version,
    }


# ==========================================
# Routers
# ==========================================
app.include_router(blog_router)
app.include_router(admin_router)


if __name__ == "__main__":
    uvicorn.run(
        "quill.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
