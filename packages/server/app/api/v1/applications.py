"""
Super admin application endpoints.

- POST /               — public submission
- GET  /               — list (application admins)
- POST /{id}/approve   — approve or reject a pending application
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Capability, Identity, require
from app.core.database import get_session
from app.services import applications as application_service
from weddingshare_shared.schemas.applications import (
    ApplicationCreateRequest,
    ApplicationEnvelope,
    ApplicationListEnvelope,
    ApplicationResponse,
    ApplicationReviewRequest,
    ApplicationStatus,
)

router = APIRouter()

require_reviewer = require(
    Capability.REVIEW_APPLICATIONS, "Access denied. Only application admins can view this data."
)


@router.post("", response_model=ApplicationEnvelope, status_code=201)
async def submit_application(
    body: ApplicationCreateRequest,
    session: AsyncSession = Depends(get_session),
):
    application = await application_service.submit_application(body, session)
    return ApplicationEnvelope(
        message="Application submitted successfully",
        application=ApplicationResponse.model_validate(application),
    )


@router.get("", response_model=ApplicationListEnvelope)
async def list_applications(
    status: Optional[ApplicationStatus] = Query(default=None),
    identity: Identity = Depends(require_reviewer),
    session: AsyncSession = Depends(get_session),
):
    applications = await application_service.list_applications(session, status)
    return ApplicationListEnvelope(
        applications=[ApplicationResponse.model_validate(a) for a in applications]
    )


@router.post("/{application_id}/approve", response_model=ApplicationEnvelope)
async def review_application(
    application_id: uuid.UUID,
    body: ApplicationReviewRequest,
    identity: Identity = Depends(
        require(Capability.REVIEW_APPLICATIONS, "Access denied. Application admin required.")
    ),
    session: AsyncSession = Depends(get_session),
):
    application = await application_service.review_application(application_id, body, identity, session)
    return ApplicationEnvelope(
        message=f"Application {application.status} successfully",
        application=ApplicationResponse.model_validate(application),
    )
