"""
Super admin application service — submission and one-time review.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Identity
from app.core.errors import Conflict, NotFound, ValidationError
from app.models.application import SuperAdminApplication
from app.models.user import User
from weddingshare_shared.schemas.applications import (
    ApplicationCreateRequest,
    ApplicationReviewRequest,
    ApplicationStatus,
)
from weddingshare_shared.schemas.common import Role

log = structlog.get_logger()


async def submit_application(
    req: ApplicationCreateRequest, session: AsyncSession
) -> SuperAdminApplication:
    existing = await session.execute(
        select(SuperAdminApplication.id).where(SuperAdminApplication.email == req.email)
    )
    if existing.first() is not None:
        raise Conflict("An application already exists for this email")

    application = SuperAdminApplication(
        **req.model_dump(exclude={"business_type"}),
        business_type=req.business_type.value,
        status=ApplicationStatus.PENDING.value,
    )
    session.add(application)
    await session.flush()

    log.info("application.submitted", application_id=str(application.id), email=req.email)
    return application


async def list_applications(
    session: AsyncSession, status: Optional[ApplicationStatus] = None
) -> list[SuperAdminApplication]:
    query = select(SuperAdminApplication)
    if status is not None:
        query = query.where(SuperAdminApplication.status == status.value)
    result = await session.execute(query.order_by(SuperAdminApplication.submitted_at.desc()))
    return list(result.scalars().all())


async def _promote_applicant(application: SuperAdminApplication, session: AsyncSession) -> None:
    """Create or update the applicant's account as an active super admin."""
    result = await session.execute(select(User).where(User.email == application.email))
    user = result.scalar_one_or_none()
    if user is None:
        user = User(
            email=application.email,
            name=application.contact_person,
            role=Role.SUPER_ADMIN.value,
            is_active=True,
        )
    else:
        user.role = Role.SUPER_ADMIN.value
        user.is_active = True
    if application.trial_end_date:
        user.subscription_status = "trial"
        user.subscription_expires_at = application.trial_end_date
    session.add(user)
    await session.flush()
    log.info("application.user_promoted", user_id=str(user.id), email=user.email)


async def review_application(
    application_id: uuid.UUID,
    req: ApplicationReviewRequest,
    reviewer: Identity,
    session: AsyncSession,
) -> SuperAdminApplication:
    """Approve or reject a pending application. Applications leave ``pending`` once."""
    result = await session.execute(
        select(SuperAdminApplication).where(SuperAdminApplication.id == application_id)
    )
    application = result.scalar_one_or_none()
    if not application:
        raise NotFound("Application not found")

    values = {
        "status": req.status,
        "reviewed_at": datetime.now(timezone.utc),
        "reviewed_by": reviewer.id,
    }
    if req.notes is not None:
        values["notes"] = req.notes
    if req.status == ApplicationStatus.APPROVED.value:
        values["payment_verified"] = req.payment_verified
        if req.trial_end_date:
            values["trial_end_date"] = req.trial_end_date

    # Only a pending row matches; a concurrent review finds no row to update.
    result = await session.execute(
        update(SuperAdminApplication)
        .where(
            SuperAdminApplication.id == application_id,
            SuperAdminApplication.status == ApplicationStatus.PENDING.value,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ValidationError("Application has already been processed")
    await session.refresh(application)

    if req.status == ApplicationStatus.APPROVED.value:
        # Account provisioning never fails the review itself.
        try:
            async with session.begin_nested():
                await _promote_applicant(application, session)
        except SQLAlchemyError as exc:
            log.error("application.user_upsert_failed", application_id=str(application.id), error=str(exc))

    log.info(
        "application.reviewed",
        application_id=str(application.id),
        status=application.status,
        reviewer=str(reviewer.id),
    )
    return application
