"""
Integration tests for media endpoints.

Tests cover:
- Multipart upload through the storage gateway
- Approval on arrival for admins, moderation queue for guests
- Upload checks (file type, size)
- Visibility rules for guests
- Moderation and deletion permissions
- Public tenant gallery
"""

from __future__ import annotations

import uuid
from unittest.mock import Mock

import pytest

from app.core.auth import Identity
from app.core.database import get_session_context
from app.core.errors import ValidationError
from app.models.media import Media
from app.services import media as media_service
from app.services.media import media_type_for, storage_public_id
from weddingshare_shared.schemas.common import MediaType, Role

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 64


async def _upload(client, wedding_id, filename="first-dance.jpg", content=JPEG, content_type="image/jpeg", **form):
    return await client.post(
        "/api/v1/media/upload",
        files={"file": (filename, content, content_type)},
        data={"wedding_id": str(wedding_id), **form},
    )


async def _add_media(wedding_id, uploader_id, *, approved=True, public_id="weddings/seed/pic") -> Media:
    async with get_session_context() as session:
        media = Media(
            wedding_id=wedding_id,
            uploaded_by=uploader_id,
            type="image",
            url=f"https://res.cloudinary.com/demo-cloud/image/upload/{public_id}",
            public_id=public_id,
            filename="pic.jpg",
            size=1024,
            mime_type="image/jpeg",
            is_approved=approved,
        )
        session.add(media)
    return media


@pytest.fixture
async def setup(make_user, make_wedding):
    owner = await make_user(role=Role.SUPER_ADMIN)
    wedding = await make_wedding(owner)
    guest = await make_user(role=Role.GUEST)
    return owner, wedding, guest


# ---------------------------------------------------------------------------
# Unit tests
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_public_id_sanitizes_filename(self):
        assert storage_public_id("our day (1).JPG", now_ms=1700000000000) == "1700000000000_our_day__1__JPG"

    @pytest.mark.parametrize(
        "content_type,expected",
        [("video/mp4", MediaType.VIDEO), ("image/png", MediaType.IMAGE), (None, MediaType.IMAGE)],
    )
    def test_media_type(self, content_type, expected):
        assert media_type_for(content_type) is expected

    def test_check_upload_rejects_extension(self, media_gateway):
        with pytest.raises(ValidationError, match="File type not allowed"):
            media_gateway.check_upload("notes.pdf", 10)

    def test_thumbnail_url(self, media_gateway):
        url = media_gateway.thumbnail_url("weddings/abc/pic")
        assert url.startswith("https://res.cloudinary.com/demo-cloud/image/upload/")
        assert "w_300" in url and "h_300" in url
        assert url.endswith("weddings/abc/pic")


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

class TestUpload:
    @pytest.mark.asyncio
    async def test_admin_upload_is_approved(self, client, login, setup, media_gateway):
        owner, wedding, _ = setup
        resp = await _upload(login(owner), wedding.id, description="First dance")
        assert resp.status_code == 201
        media = resp.json()["media"]
        assert media["is_approved"] is True
        assert media["approved_by"] == str(owner.id)
        assert media["type"] == "image"
        assert media["tags"] == ["First dance"]
        assert media["thumbnail_url"] is not None

        [upload] = media_gateway.uploads
        assert upload["folder"] == f"weddings/{wedding.id}"
        assert upload["public_id"].endswith("_first_dance_jpg")
        assert upload["size"] == len(JPEG)

    @pytest.mark.asyncio
    async def test_guest_upload_waits_for_approval(self, client, login, setup):
        _, wedding, guest = setup
        resp = await _upload(login(guest), wedding.id, filename="clip.mp4", content_type="video/mp4")
        assert resp.status_code == 201
        media = resp.json()["media"]
        assert media["is_approved"] is False
        assert media["approved_by"] is None
        assert media["type"] == "video"

    @pytest.mark.asyncio
    async def test_disallowed_type(self, client, login, setup, media_gateway):
        owner, wedding, _ = setup
        resp = await _upload(login(owner), wedding.id, filename="menu.pdf", content_type="application/pdf")
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("File type not allowed")
        assert media_gateway.uploads == []

    @pytest.mark.asyncio
    async def test_too_large(self, client, login, setup):
        owner, wedding, _ = setup
        resp = await _upload(login(owner), wedding.id, content=b"\x00" * (1024 * 1024 + 1))
        assert resp.status_code == 400
        assert resp.json()["message"] == "File is too large. Maximum size is 1MB"

    @pytest.mark.asyncio
    async def test_oversize_stream_is_never_read(self, setup, media_gateway):
        owner, wedding, _ = setup
        stream = Mock()
        with pytest.raises(ValidationError, match="File is too large"):
            async with get_session_context() as session:
                await media_service.upload_media(
                    wedding_id=wedding.id,
                    filename="huge.mp4",
                    content_type="video/mp4",
                    stream=stream,
                    size=50 * 1024 * 1024,
                    description=None,
                    identity=Identity.from_user(owner, source="signed"),
                    session=session,
                    gateway=media_gateway,
                )
        stream.read.assert_not_called()
        assert media_gateway.uploads == []

    @pytest.mark.asyncio
    async def test_outsider_admin_forbidden(self, client, login, make_user, setup):
        _, wedding, _ = setup
        resp = await _upload(login(await make_user(role=Role.ADMIN)), wedding.id)
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_wedding(self, client, login, setup):
        owner, _, _ = setup
        resp = await _upload(login(owner), uuid.uuid4())
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_session(self, client, setup):
        _, wedding, _ = setup
        resp = await _upload(client, wedding.id)
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Listing & reading
# ---------------------------------------------------------------------------

class TestVisibility:
    @pytest.mark.asyncio
    async def test_guest_sees_only_approved(self, client, login, setup):
        owner, wedding, guest = setup
        approved = await _add_media(wedding.id, owner.id, approved=True)
        pending = await _add_media(wedding.id, guest.id, approved=False, public_id="weddings/seed/pending")

        resp = await login(guest).get("/api/v1/media", params={"wedding_id": str(wedding.id)})
        assert [m["id"] for m in resp.json()["media"]] == [str(approved.id)]

        resp = await client.get(f"/api/v1/media/{pending.id}")
        assert resp.status_code == 200  # own upload

    @pytest.mark.asyncio
    async def test_guest_cannot_read_others_pending(self, client, login, make_user, setup):
        owner, wedding, _ = setup
        pending = await _add_media(wedding.id, owner.id, approved=False)
        resp = await login(await make_user(role=Role.GUEST)).get(f"/api/v1/media/{pending.id}")
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_manager_filters_by_status(self, client, login, setup):
        owner, wedding, guest = setup
        await _add_media(wedding.id, owner.id, approved=True)
        pending = await _add_media(wedding.id, guest.id, approved=False, public_id="weddings/seed/pending")

        resp = await login(owner).get(
            "/api/v1/media", params={"wedding_id": str(wedding.id), "status": "pending"}
        )
        assert [m["id"] for m in resp.json()["media"]] == [str(pending.id)]

        resp = await client.get("/api/v1/media", params={"wedding_id": str(wedding.id)})
        assert len(resp.json()["media"]) == 2

    @pytest.mark.asyncio
    async def test_missing_media(self, client, login, setup):
        owner, _, _ = setup
        resp = await login(owner).get(f"/api/v1/media/{uuid.uuid4()}")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Media not found"


# ---------------------------------------------------------------------------
# Moderation & deletion
# ---------------------------------------------------------------------------

class TestModeration:
    @pytest.mark.asyncio
    async def test_manager_approves(self, client, login, setup):
        owner, wedding, guest = setup
        pending = await _add_media(wedding.id, guest.id, approved=False)
        resp = await login(owner).put(f"/api/v1/media/{pending.id}", json={"is_approved": True})
        assert resp.status_code == 200
        media = resp.json()["media"]
        assert media["is_approved"] is True
        assert media["approved_by"] == str(owner.id)
        assert media["approved_at"] is not None

    @pytest.mark.asyncio
    async def test_guest_uploader_cannot_self_approve(self, client, login, setup):
        _, wedding, guest = setup
        pending = await _add_media(wedding.id, guest.id, approved=False)
        resp = await login(guest).put(f"/api/v1/media/{pending.id}", json={"is_approved": True})
        assert resp.status_code == 403
        assert resp.json()["message"] == "Only admins can change media approval status"

    @pytest.mark.asyncio
    async def test_guest_uploader_edits_description(self, client, login, setup):
        _, wedding, guest = setup
        pending = await _add_media(wedding.id, guest.id, approved=False)
        resp = await login(guest).put(f"/api/v1/media/{pending.id}", json={"description": "Cake!"})
        assert resp.status_code == 200
        assert resp.json()["media"]["description"] == "Cake!"

    @pytest.mark.asyncio
    async def test_other_guest_cannot_edit(self, client, login, make_user, setup):
        owner, wedding, _ = setup
        media = await _add_media(wedding.id, owner.id)
        resp = await login(await make_user(role=Role.GUEST)).put(
            f"/api/v1/media/{media.id}", json={"description": "mine now"}
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_destroys_asset(self, client, login, setup, media_gateway):
        owner, wedding, _ = setup
        media = await _add_media(wedding.id, owner.id, public_id="weddings/seed/gone")
        resp = await login(owner).delete(f"/api/v1/media/{media.id}")
        assert resp.status_code == 200
        assert media_gateway.destroyed == ["weddings/seed/gone"]

        resp = await client.get(f"/api/v1/media/{media.id}")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_survives_storage_failure(self, client, login, setup, media_gateway):
        owner, wedding, _ = setup
        media_gateway.fail_destroy = True
        media = await _add_media(wedding.id, owner.id)
        resp = await login(owner).delete(f"/api/v1/media/{media.id}")
        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Public gallery
# ---------------------------------------------------------------------------

    @pytest.mark.asyncio
    async def test_guest_cannot_send_unchanged_approval_flag(self, client, login, setup):
        _, wedding, guest = setup
        pending = await _add_media(wedding.id, guest.id, approved=False)
        resp = await login(guest).put(f"/api/v1/media/{pending.id}", json={"is_approved": False})
        assert resp.status_code == 403
        assert resp.json()["message"] == "Only admins can change media approval status"


class TestGallery:
    @pytest.mark.asyncio
    async def test_gallery_lists_approved_with_optimized_urls(self, client, make_user, make_wedding):
        owner = await make_user(role=Role.SUPER_ADMIN)
        wedding = await make_wedding(owner, subdomain="kim-and-lee")
        await _add_media(wedding.id, owner.id, approved=True, public_id="weddings/k/shown")
        await _add_media(wedding.id, owner.id, approved=False, public_id="weddings/k/hidden")

        resp = await client.get("/subdomain/kim-and-lee/media")
        assert resp.status_code == 200
        [item] = resp.json()["media"]
        assert "w_1200" in item["url"]
        assert item["url"].endswith("weddings/k/shown")
        assert "w_300" in item["thumbnail_url"]

    @pytest.mark.asyncio
    async def test_gallery_via_tenant_host(self, client, make_user, make_wedding):
        owner = await make_user(role=Role.SUPER_ADMIN)
        wedding = await make_wedding(owner, subdomain="kim-and-lee")
        await _add_media(wedding.id, owner.id, approved=True)

        resp = await client.get("/media", headers={"host": "kim-and-lee.weddingshare.com"})
        assert resp.status_code == 200
        assert len(resp.json()["media"]) == 1

    @pytest.mark.asyncio
    async def test_archived_wedding_has_no_gallery(self, client, make_user, make_wedding):
        owner = await make_user(role=Role.SUPER_ADMIN)
        await make_wedding(owner, subdomain="kim-and-lee", status="archived", is_active=False)
        resp = await client.get("/subdomain/kim-and-lee/media")
        assert resp.status_code == 404
