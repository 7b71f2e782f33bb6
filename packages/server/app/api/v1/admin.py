"""
Platform administration endpoints (application admins only).

- GET  /super-admins   — super admins with usage statistics
- POST /super-admins   — provision a super admin account
- GET  /direct-users   — admins who signed up on their own
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Capability, Identity, require
from app.core.database import get_session
from app.core.identity import IdentityGateway, get_identity_gateway
from app.core.mailer import Mailer, get_mailer
from app.services import admin as admin_service
from weddingshare_shared.schemas.users import (
    DirectUserListEnvelope,
    SuperAdminCreateRequest,
    SuperAdminListEnvelope,
    UserEnvelope,
    UserResponse,
)

router = APIRouter()

require_platform_admin = require(
    Capability.MANAGE_PLATFORM_USERS, "Access denied. Only application admins can view this data."
)


@router.get("/super-admins", response_model=SuperAdminListEnvelope)
async def list_super_admins(
    identity: Identity = Depends(require_platform_admin),
    session: AsyncSession = Depends(get_session),
):
    return SuperAdminListEnvelope(data=await admin_service.super_admin_overview(session))


@router.post("/super-admins", response_model=UserEnvelope, status_code=201)
async def create_super_admin(
    body: SuperAdminCreateRequest,
    identity: Identity = Depends(
        require(Capability.MANAGE_PLATFORM_USERS, "Access denied. Application admin required.")
    ),
    session: AsyncSession = Depends(get_session),
    identity_gateway: IdentityGateway = Depends(get_identity_gateway),
    mailer: Mailer = Depends(get_mailer),
):
    user = await admin_service.create_super_admin(body, session, identity_gateway, mailer)
    return UserEnvelope(message="Super admin created successfully", user=UserResponse.model_validate(user))


@router.get("/direct-users", response_model=DirectUserListEnvelope)
async def list_direct_users(
    identity: Identity = Depends(require_platform_admin),
    session: AsyncSession = Depends(get_session),
):
    users, summary = await admin_service.direct_users(session)
    return DirectUserListEnvelope(users=users, summary=summary)
