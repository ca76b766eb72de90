"""Tests for the admin create and edit pages."""

from __future__ import annotations

from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from quill.dependencies import get_post_service
from quill.main import app
from quill.models.post import BlogPost
from quill.schemas.post import Found, Post, TransportError
from quill.security.csrf import CSRF_COOKIE_NAME
from quill.services.post_service import (
    ImageUploadError,
    PostService,
    PostWriteError,
)
from quill.services.post_store import PostStoreError
from quill.services.storage import object_name_from_url

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def mock_service():
    service = MagicMock(spec=PostService)
    app.dependency_overrides[get_post_service] = lambda: service
    yield service
    app.dependency_overrides.pop(get_post_service, None)


def _posts(db_session) -> list[BlogPost]:
    db_session.expire_all()
    return list(db_session.scalars(select(BlogPost)).all())


class TestAdminIndex:
    def test_lists_drafts_and_published(self, client: TestClient, seed_post):
        seed_post(title="Visible", slug="visible")
        seed_post(title="Work In Progress", slug="wip", status="draft")

        response = client.get("/admin")

        assert response.status_code == 200
        assert "Visible" in response.text
        assert "Work In Progress" in response.text
        assert "badge-draft" in response.text

    def test_created_notice(self, client: TestClient, db_session):
        response = client.get("/admin?created=hello")
        assert "Blog post created successfully!" in response.text

    def test_store_failure_shows_error(self, client: TestClient, mock_service):
        mock_service.list_all.side_effect = PostStoreError("timeout")
        response = client.get("/admin")
        assert response.status_code == 200
        assert "Error loading posts" in response.text


class TestAdminAdd:
    def test_form_renders_and_sets_csrf_cookie(self, client: TestClient):
        response = client.get("/admin/add")
        assert response.status_code == 200
        assert "Add New Blog Post" in response.text
        assert 'name="csrf_token"' in response.text
        assert CSRF_COOKIE_NAME in response.cookies

    def test_missing_csrf_is_rejected(self, client: TestClient, db_session):
        client.cookies.delete(CSRF_COOKIE_NAME)
        response = client.post(
            "/admin/add", data={"title": "T", "content": "C", "csrf_token": "x"}
        )
        assert response.status_code == 403
        assert _posts(db_session) == []

    def test_mismatched_csrf_is_rejected(self, csrf_client: TestClient, db_session):
        response = csrf_client.post(
            "/admin/add",
            data={"title": "T", "content": "C", "csrf_token": "forged.token"},
        )
        assert response.status_code == 403

    def test_create_without_image(
        self, csrf_client: TestClient, csrf_token, db_session
    ):
        response = csrf_client.post(
            "/admin/add",
            data={
                "title": "  Hello, World!  ",
                "content": "Body text",
                "excerpt": "",
                "status": "draft",
                "csrf_token": csrf_token,
            },
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"] == "/admin?created=hello-world"
        [post] = _posts(db_session)
        assert post.title == "Hello, World!"
        assert post.slug == "hello-world"
        assert post.status == "draft"
        assert post.excerpt is None
        assert post.image_url is None

    def test_create_with_image(
        self, csrf_client: TestClient, csrf_token, db_session, media_dir
    ):
        response = csrf_client.post(
            "/admin/add",
            data={"title": "Cover Story", "content": "Body", "csrf_token": csrf_token},
            files={"image": ("Cover.PNG", BytesIO(PNG_BYTES), "image/png")},
            follow_redirects=False,
        )

        assert response.status_code == 303
        [post] = _posts(db_session)
        assert post.image_name == "Cover.PNG"
        stored = object_name_from_url(post.image_url)
        assert stored.endswith(".png")
        assert post.image_url.endswith(f"/media/{stored}")
        assert (media_dir / stored).read_bytes() == PNG_BYTES

    @pytest.mark.parametrize(
        "data",
        [
            {"title": "", "content": "Body"},
            {"title": "Title", "content": "   "},
        ],
    )
    def test_required_fields(
        self, csrf_client: TestClient, csrf_token, db_session, data
    ):
        response = csrf_client.post(
            "/admin/add", data={**data, "csrf_token": csrf_token}
        )
        assert response.status_code == 400
        assert "Title and content are required!" in response.text
        assert _posts(db_session) == []

    def test_rejects_non_image_upload(
        self, csrf_client: TestClient, csrf_token, db_session
    ):
        response = csrf_client.post(
            "/admin/add",
            data={"title": "T", "content": "C", "csrf_token": csrf_token},
            files={"image": ("notes.txt", BytesIO(b"text"), "text/plain")},
        )
        assert response.status_code == 400
        assert "Unsupported file type" in response.text
        assert _posts(db_session) == []

    def test_upload_failure_is_reported(
        self, csrf_client: TestClient, csrf_token, mock_service
    ):
        mock_service.create_post = AsyncMock(
            side_effect=ImageUploadError("Error uploading image!")
        )
        response = csrf_client.post(
            "/admin/add",
            data={"title": "T", "content": "C", "csrf_token": csrf_token},
            files={"image": ("a.png", BytesIO(PNG_BYTES), "image/png")},
        )
        assert response.status_code == 502
        assert "Error uploading image!" in response.text
        # Form input survives the failed submit
        assert 'value="T"' in response.text


class TestAdminEdit:
    def test_form_is_prefilled(self, client: TestClient, seed_post):
        post = seed_post(title="Existing", excerpt="Teaser", status="draft")

        response = client.get(f"/admin/edit/{post.id}")

        assert response.status_code == 200
        assert "Edit Post" in response.text
        assert 'value="Existing"' in response.text
        assert "Teaser" in response.text
        assert f'action="/admin/edit/{post.id}"' in response.text

    def test_unknown_id(self, client: TestClient, db_session):
        response = client.get("/admin/edit/missing-id")
        assert response.status_code == 404
        assert "Post not found" in response.text

    def test_lookup_failure(self, client: TestClient, mock_service):
        mock_service.get_post.return_value = TransportError("timeout")
        response = client.get("/admin/edit/any")
        assert response.status_code == 503
        assert "Error loading post" in response.text

    def test_update_keeps_image_and_rederives_slug(
        self, csrf_client: TestClient, csrf_token, seed_post, db_session
    ):
        post = seed_post(
            image_url="http://localhost:8000/media/keep.png", image_name="keep.png"
        )

        response = csrf_client.post(
            f"/admin/edit/{post.id}",
            data={
                "title": "Renamed Post",
                "content": "New body",
                "excerpt": "New teaser",
                "status": "published",
                "csrf_token": csrf_token,
            },
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"] == "/admin?updated=renamed-post"
        [updated] = _posts(db_session)
        assert updated.title == "Renamed Post"
        assert updated.slug == "renamed-post"
        assert updated.excerpt == "New teaser"
        assert updated.image_name == "keep.png"
        assert updated.updated_at is not None

    def test_update_replaces_image(
        self, csrf_client: TestClient, csrf_token, seed_post, db_session, media_dir
    ):
        (media_dir / "old.png").write_bytes(b"old")
        post = seed_post(
            image_url="http://localhost:8000/media/old.png", image_name="old.png"
        )

        response = csrf_client.post(
            f"/admin/edit/{post.id}",
            data={"title": "Test Post", "content": "Body", "csrf_token": csrf_token},
            files={"image": ("new.jpg", BytesIO(b"jpeg"), "image/jpeg")},
            follow_redirects=False,
        )

        assert response.status_code == 303
        [updated] = _posts(db_session)
        assert updated.image_name == "new.jpg"
        stored = object_name_from_url(updated.image_url)
        assert stored != "old.png"
        assert stored.endswith(".jpg")
        assert not (media_dir / "old.png").exists()
        assert (media_dir / stored).read_bytes() == b"jpeg"

    def test_update_missing_post(
        self, csrf_client: TestClient, csrf_token, db_session
    ):
        response = csrf_client.post(
            "/admin/edit/missing-id",
            data={"title": "T", "content": "C", "csrf_token": csrf_token},
        )
        assert response.status_code == 404
        assert "Post not found" in response.text

    def test_update_requires_fields(
        self, csrf_client: TestClient, csrf_token, seed_post, db_session
    ):
        post = seed_post()
        response = csrf_client.post(
            f"/admin/edit/{post.id}",
            data={"title": "", "content": "", "csrf_token": csrf_token},
        )
        assert response.status_code == 400
        assert "Title and content are required!" in response.text
        [unchanged] = _posts(db_session)
        assert unchanged.title == "Test Post"

    def test_update_write_failure_is_reported(
        self, csrf_client: TestClient, csrf_token, mock_service, seed_post
    ):
        post = seed_post()
        mock_service.get_post.return_value = Found(Post.model_validate(post))
        mock_service.update_post = AsyncMock(
            side_effect=PostWriteError("Error updating post: timeout")
        )
        response = csrf_client.post(
            f"/admin/edit/{post.id}",
            data={"title": "T", "content": "C", "csrf_token": csrf_token},
        )
        assert response.status_code == 502
        assert "Error updating post: timeout" in response.text
