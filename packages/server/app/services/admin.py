"""
Platform administration — super admin accounts and directly signed-up admins.
"""

from __future__ import annotations

import uuid
from collections import defaultdict

import structlog
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import UpstreamFailure, ValidationError
from app.core.identity import IdentityGateway
from app.core.mailer import Mailer
from app.models.media import Media
from app.models.planning import WeddingGuest
from app.models.user import User
from app.models.wedding import Wedding, WeddingMember
from app.services import notifications
from weddingshare_shared.schemas.common import MemberRole, Role
from weddingshare_shared.schemas.users import (
    DirectUser,
    DirectUserSummary,
    SuperAdminCreateRequest,
    SuperAdminListData,
    SuperAdminStats,
    SuperAdminSummary,
)

log = structlog.get_logger()

_MB = 1024 * 1024


def _to_mb(size: int) -> float:
    return round(size / _MB, 2)


async def super_admin_overview(session: AsyncSession) -> SuperAdminListData:
    """Per super admin: weddings owned, media stored in them, last upload."""
    result = await session.execute(
        select(User)
        .where(User.role == Role.SUPER_ADMIN.value)
        .order_by(User.created_at.desc())
    )
    admins = list(result.scalars().all())

    result = await session.execute(
        select(Wedding.super_admin_id, func.count(Wedding.id)).group_by(Wedding.super_admin_id)
    )
    wedding_counts = dict(result.all())

    result = await session.execute(
        select(
            Wedding.super_admin_id,
            func.count(Media.id),
            func.coalesce(func.sum(Media.size), 0),
            func.max(Media.created_at),
        )
        .join(Media, Media.wedding_id == Wedding.id)
        .group_by(Wedding.super_admin_id)
    )
    media_stats = {owner: (count, total, last) for owner, count, total, last in result.all()}

    rows = []
    for admin in admins:
        media_count, storage, last_upload = media_stats.get(admin.id, (0, 0, None))
        rows.append(
            SuperAdminStats(
                id=admin.id,
                name=admin.name,
                email=admin.email,
                created_at=admin.created_at,
                wedding_count=wedding_counts.get(admin.id, 0),
                total_storage_mb=_to_mb(storage or 0),
                total_media_count=media_count,
                last_activity=last_upload or admin.created_at,
            )
        )

    summary = SuperAdminSummary(
        total_super_admins=len(rows),
        total_weddings=sum(r.wedding_count for r in rows),
        total_storage_mb=round(sum(r.total_storage_mb for r in rows), 2),
        total_media_files=sum(r.total_media_count for r in rows),
    )
    return SuperAdminListData(super_admins=rows, summary=summary)


async def create_super_admin(
    req: SuperAdminCreateRequest,
    session: AsyncSession,
    identity: IdentityGateway,
    mailer: Mailer,
) -> User:
    existing = await session.execute(select(User.id).where(User.email == req.email))
    if existing.first() is not None:
        raise ValidationError("User with this email already exists")

    provider_user = await identity.create_user(
        req.email,
        req.password,
        email_confirm=True,
        metadata={"name": req.name, "role": Role.SUPER_ADMIN.value},
    )
    user = User(
        id=provider_user.id,
        email=req.email,
        name=req.name,
        role=Role.SUPER_ADMIN.value,
        is_active=True,
        email_confirmed=True,
    )
    try:
        session.add(user)
        await session.flush()
    except SQLAlchemyError as exc:
        log.error("admin.super_admin_store_failed", email=req.email, error=str(exc))
        await identity.delete_user(provider_user.id)
        raise UpstreamFailure("Failed to create super admin") from exc

    await notifications.send_best_effort(mailer, user.email, notifications.render_welcome(user.name))
    log.info("admin.super_admin_created", user_id=str(user.id), email=user.email)
    return user


async def direct_users(session: AsyncSession) -> tuple[list[DirectUser], DirectUserSummary]:
    """Admins who signed up on their own: not invited, and not on any guest list."""
    guest_emails = select(WeddingGuest.guest_email)
    result = await session.execute(
        select(User)
        .where(
            User.role == Role.ADMIN.value,
            User.invited == False,  # noqa: E712
            User.email.not_in(guest_emails),
        )
        .order_by(User.created_at.desc())
    )
    users = list(result.scalars().all())
    ids = [u.id for u in users]

    weddings: dict[uuid.UUID, int] = defaultdict(int)
    media: dict[uuid.UUID, tuple[int, int]] = {}
    if ids:
        result = await session.execute(
            select(Wedding.super_admin_id, func.count(Wedding.id))
            .where(Wedding.super_admin_id.in_(ids))
            .group_by(Wedding.super_admin_id)
        )
        for owner, count in result.all():
            weddings[owner] += count

        # Owners are also admin members of what they create, so only count other weddings.
        result = await session.execute(
            select(WeddingMember.user_id, func.count(WeddingMember.id))
            .join(Wedding, Wedding.id == WeddingMember.wedding_id)
            .where(
                WeddingMember.user_id.in_(ids),
                WeddingMember.role == MemberRole.ADMIN.value,
                WeddingMember.is_active == True,  # noqa: E712
                Wedding.super_admin_id != WeddingMember.user_id,
            )
            .group_by(WeddingMember.user_id)
        )
        for member, count in result.all():
            weddings[member] += count

        result = await session.execute(
            select(Media.uploaded_by, func.count(Media.id), func.coalesce(func.sum(Media.size), 0))
            .where(Media.uploaded_by.in_(ids))
            .group_by(Media.uploaded_by)
        )
        media = {uploader: (count, total) for uploader, count, total in result.all()}

    rows = []
    for user in users:
        media_count, storage = media.get(user.id, (0, 0))
        rows.append(
            DirectUser.model_validate(user).model_copy(
                update={
                    "wedding_count": weddings.get(user.id, 0),
                    "media_count": media_count,
                    "storage_used": int(storage or 0),
                    "storage_used_mb": _to_mb(storage or 0),
                }
            )
        )

    summary = DirectUserSummary(
        total_direct_users=len(rows),
        total_weddings=sum(r.wedding_count for r in rows),
        total_media=sum(r.media_count for r in rows),
        total_storage_mb=_to_mb(sum(r.storage_used for r in rows)),
        confirmed_users=sum(1 for r in rows if r.email_confirmed),
        unconfirmed_users=sum(1 for r in rows if not r.email_confirmed),
    )
    return rows, summary
