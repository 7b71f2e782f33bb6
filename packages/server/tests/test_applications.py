"""
Integration tests for super admin applications.

Covers:
- Public submission and duplicate detection
- Listing restricted to application admins, with status filter
- One-time review; approval provisions a super admin account
"""

from __future__ import annotations

import asyncio
import uuid

import pytest
from sqlmodel import select

from app.core.database import get_session_context
from app.models.user import User
from weddingshare_shared.schemas.common import Role

APPLICATION = {
    "business_name": "Vineyard Venue",
    "business_type": "venue",
    "contact_person": "Hannah",
    "email": "hannah@vineyard.example",
    "expected_weddings_per_month": 4,
}


async def _submit(client, **overrides) -> dict:
    resp = await client.post("/api/v1/applications", json={**APPLICATION, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()["application"]


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_is_public(self, client):
        application = await _submit(client)
        assert application["status"] == "pending"
        assert application["business_type"] == "venue"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client):
        await _submit(client)
        resp = await client.post("/api/v1/applications", json=APPLICATION)
        assert resp.status_code == 409
        assert resp.json()["message"] == "An application already exists for this email"

    @pytest.mark.asyncio
    async def test_missing_required_field(self, client):
        resp = await client.post("/api/v1/applications", json={"business_name": "X", "email": "x@example.com"})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_business_type(self, client):
        resp = await client.post("/api/v1/applications", json={**APPLICATION, "business_type": "castle"})
        assert resp.status_code == 400


class TestList:
    @pytest.mark.asyncio
    async def test_requires_application_admin(self, client, make_user, login):
        await _submit(client)
        resp = await login(await make_user(role=Role.SUPER_ADMIN)).get("/api/v1/applications")
        assert resp.status_code == 403
        assert resp.json()["message"] == "Access denied. Only application admins can view this data."

    @pytest.mark.asyncio
    async def test_unauthenticated(self, client, database):
        resp = await client.get("/api/v1/applications")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_list_and_filter(self, client, make_user, login):
        first = await _submit(client)
        await _submit(client, email="second@example.com")
        reviewer = await make_user(role=Role.APPLICATION_ADMIN)
        login(reviewer)
        await client.post(f"/api/v1/applications/{first['id']}/approve", json={"status": "rejected"})

        resp = await client.get("/api/v1/applications")
        assert resp.status_code == 200
        assert len(resp.json()["applications"]) == 2

        resp = await client.get("/api/v1/applications", params={"status": "pending"})
        [pending] = resp.json()["applications"]
        assert pending["email"] == "second@example.com"


class TestReview:
    @pytest.mark.asyncio
    async def test_approve_creates_super_admin(self, client, make_user, login):
        application = await _submit(client)
        reviewer = await make_user(role=Role.APPLICATION_ADMIN)
        resp = await login(reviewer).post(
            f"/api/v1/applications/{application['id']}/approve",
            json={"status": "approved", "payment_verified": True, "notes": "Paid annually"},
        )
        assert resp.status_code == 200
        reviewed = resp.json()["application"]
        assert reviewed["status"] == "approved"
        assert reviewed["reviewed_by"] == str(reviewer.id)
        assert reviewed["reviewed_at"] is not None
        assert reviewed["payment_verified"] is True
        assert reviewed["notes"] == "Paid annually"

        async with get_session_context() as session:
            result = await session.execute(select(User).where(User.email == APPLICATION["email"]))
            user = result.scalar_one()
        assert user.role == "super_admin"
        assert user.is_active is True
        assert user.name == "Hannah"

    @pytest.mark.asyncio
    async def test_approve_promotes_existing_user(self, client, make_user, login):
        await make_user(APPLICATION["email"], Role.ADMIN, is_active=False)
        application = await _submit(client)
        await login(await make_user(role=Role.APPLICATION_ADMIN)).post(
            f"/api/v1/applications/{application['id']}/approve", json={"status": "approved"}
        )
        async with get_session_context() as session:
            result = await session.execute(select(User).where(User.email == APPLICATION["email"]))
            user = result.scalar_one()
        assert user.role == "super_admin"
        assert user.is_active is True

    @pytest.mark.asyncio
    async def test_reject_creates_no_user(self, client, make_user, login):
        application = await _submit(client)
        resp = await login(await make_user(role=Role.APPLICATION_ADMIN)).post(
            f"/api/v1/applications/{application['id']}/approve", json={"status": "rejected"}
        )
        assert resp.json()["application"]["status"] == "rejected"
        async with get_session_context() as session:
            result = await session.execute(select(User).where(User.email == APPLICATION["email"]))
            assert result.scalar_one_or_none() is None

    @pytest.mark.asyncio
    async def test_review_only_once(self, client, make_user, login):
        application = await _submit(client)
        login(await make_user(role=Role.APPLICATION_ADMIN))
        url = f"/api/v1/applications/{application['id']}/approve"
        await client.post(url, json={"status": "rejected"})
        resp = await client.post(url, json={"status": "approved"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Application has already been processed"

    @pytest.mark.asyncio
    async def test_invalid_decision(self, client, make_user, login):
        application = await _submit(client)
        resp = await login(await make_user(role=Role.APPLICATION_ADMIN)).post(
            f"/api/v1/applications/{application['id']}/approve", json={"status": "pending"}
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == 'Status must be either "approved" or "rejected"'

    @pytest.mark.asyncio
    async def test_unknown_application(self, client, make_user, login):
        resp = await login(await make_user(role=Role.APPLICATION_ADMIN)).post(
            f"/api/v1/applications/{uuid.uuid4()}/approve", json={"status": "approved"}
        )
        assert resp.status_code == 404
        assert resp.json()["message"] == "Application not found"

    @pytest.mark.asyncio
    async def test_reviewer_capability_required(self, client, make_user, login):
        application = await _submit(client)
        resp = await login(await make_user(role=Role.ADMIN)).post(
            f"/api/v1/applications/{application['id']}/approve", json={"status": "approved"}
        )
        assert resp.status_code == 403
        assert resp.json()["message"] == "Access denied. Application admin required."

    @pytest.mark.asyncio
    async def test_concurrent_reviews_apply_once(self, client, make_user, login):
        application = await _submit(client)
        login(await make_user(role=Role.APPLICATION_ADMIN))
        url = f"/api/v1/applications/{application['id']}/approve"
        responses = await asyncio.gather(
            client.post(url, json={"status": "approved"}),
            client.post(url, json={"status": "rejected"}),
        )
        assert sorted(r.status_code for r in responses) == [200, 400]
        [refused] = [r for r in responses if r.status_code == 400]
        assert refused.json()["message"] == "Application has already been processed"


class TestOnboardingFlow:
    @pytest.mark.asyncio
    async def test_minimal_application_to_super_admin(self, client, make_user, login):
        resp = await client.post(
            "/api/v1/applications",
            json={"business_name": "Acme Venue", "contact_person": "Jo", "email": "jo@acme.test"},
        )
        assert resp.status_code == 201
        application = resp.json()["application"]
        assert application["business_type"] == "other"

        login(await make_user(role=Role.APPLICATION_ADMIN))
        resp = await client.get("/api/v1/applications")
        assert [a["email"] for a in resp.json()["applications"]] == ["jo@acme.test"]

        resp = await client.post(
            f"/api/v1/applications/{application['id']}/approve",
            json={"status": "approved", "payment_verified": True},
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "Application approved successfully"
        assert resp.json()["application"]["payment_verified"] is True

        async with get_session_context() as session:
            result = await session.execute(select(User).where(User.email == "jo@acme.test"))
            user = result.scalar_one()
        assert user.role == "super_admin"
        assert user.name == "Jo"
