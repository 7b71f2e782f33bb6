"""
Wedding service — tenant CRUD, lifecycle, membership and invitations.
"""

from __future__ import annotations

import datetime as dt
import re
import secrets
import string
import time
import uuid
from typing import Optional

import structlog
from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Identity, WeddingScope, authorize_wedding, load_admin_ids
from app.core.config import get_settings
from app.core.errors import Conflict, NotFound, UpstreamFailure, ValidationError
from app.core.mailer import Mailer
from app.core.media import MediaGateway
from app.core.tenancy import generate_subdomain, validate_subdomain, wedding_url
from app.models.media import Media
from app.models.planning import Answer, Event, Notification, Question, WeddingGuest
from app.models.user import User
from app.models.wedding import InviteLink, Wedding, WeddingMember
from app.services import notifications
from weddingshare_shared.schemas.common import MemberRole, Role
from weddingshare_shared.schemas.weddings import (
    InviteError,
    InviteLinkResponse,
    InviteOutcome,
    InviteRequest,
    InviteResult,
    MemberResponse,
    MembersData,
    PublicWedding,
    WeddingCreateRequest,
    WeddingDetail,
    WeddingStatus,
    WeddingUpdateRequest,
    validate_transition,
)

log = structlog.get_logger()
settings = get_settings()

_CODE_ALPHABET = string.ascii_uppercase + string.digits


# ---------------------------------------------------------------------------
# Codes & subdomains
# ---------------------------------------------------------------------------

def generate_wedding_code(name: str, suffix: Optional[str] = None) -> str:
    """Join code: the name without whitespace, upper-cased, plus four digits."""
    base = re.sub(r"\s+", "", name).upper()
    if suffix is None:
        suffix = str(int(time.time() * 1000))[-4:]
    return f"{base}{suffix}"


def generate_invite_code(length: int = 8) -> str:
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


async def _unique_code(name: str, session: AsyncSession) -> str:
    code = generate_wedding_code(name)
    for _ in range(5):
        result = await session.execute(select(Wedding.id).where(Wedding.code == code))
        if result.scalar_one_or_none() is None:
            return code
        code = generate_wedding_code(name, suffix=f"{secrets.randbelow(10000):04d}")
    raise Conflict("Could not allocate a unique wedding code")


async def ensure_subdomain_available(
    subdomain: str,
    session: AsyncSession,
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    """Raise 400 for a malformed or reserved subdomain, 409 when another wedding has it."""
    check = validate_subdomain(subdomain)
    if not check.valid:
        raise ValidationError(check.error)

    query = select(Wedding.id).where(Wedding.subdomain == subdomain)
    if exclude_id is not None:
        query = query.where(Wedding.id != exclude_id)
    result = await session.execute(query)
    if result.first() is not None:
        raise Conflict("This subdomain is already taken")


async def _generated_subdomain(name: str, session: AsyncSession) -> Optional[str]:
    for _ in range(5):
        candidate = generate_subdomain(name[:40])
        if not validate_subdomain(candidate).valid:
            candidate = generate_subdomain("wedding")
        result = await session.execute(select(Wedding.id).where(Wedding.subdomain == candidate))
        if result.first() is None:
            return candidate
    return None


# ---------------------------------------------------------------------------
# Lookup & access
# ---------------------------------------------------------------------------

async def get_wedding(wedding_id: uuid.UUID, session: AsyncSession) -> Wedding:
    result = await session.execute(select(Wedding).where(Wedding.id == wedding_id))
    wedding = result.scalar_one_or_none()
    if not wedding:
        raise NotFound("Wedding not found")
    return wedding


async def authorize_wedding_access(
    identity: Identity,
    wedding_id: uuid.UUID,
    scope: WeddingScope,
    session: AsyncSession,
    message: Optional[str] = None,
) -> tuple[Wedding, set[WeddingScope]]:
    """Load a wedding (404) and check the caller holds ``scope`` on it (403)."""
    wedding = await get_wedding(wedding_id, session)
    admin_ids = await load_admin_ids(wedding.id, session)
    scopes = authorize_wedding(identity, wedding, admin_ids, scope, message)
    return wedding, scopes


async def wedding_counts(wedding_id: uuid.UUID, session: AsyncSession) -> tuple[int, int]:
    """(active members, approved media) for a wedding."""
    guests = await session.execute(
        select(func.count(WeddingMember.id)).where(
            WeddingMember.wedding_id == wedding_id,
            WeddingMember.is_active == True,  # noqa: E712
        )
    )
    photos = await session.execute(
        select(func.count(Media.id)).where(
            Media.wedding_id == wedding_id,
            Media.is_approved == True,  # noqa: E712
        )
    )
    return guests.scalar_one(), photos.scalar_one()


def _public_url(wedding: Wedding) -> Optional[str]:
    return wedding_url(wedding.subdomain, settings.base_domain) if wedding.subdomain else None


async def wedding_detail(wedding: Wedding, session: AsyncSession) -> WeddingDetail:
    guest_count, photo_count = await wedding_counts(wedding.id, session)
    admin_ids = await load_admin_ids(wedding.id, session)
    return WeddingDetail.model_validate(wedding).model_copy(
        update={
            "url": _public_url(wedding),
            "admin_ids": sorted(admin_ids, key=str),
            "guest_count": guest_count,
            "photo_count": photo_count,
        }
    )


async def list_weddings(identity: Identity, session: AsyncSession) -> list[Wedding]:
    """Weddings the caller manages: owned ones for super admins, admin memberships for admins."""
    if identity.role == Role.SUPER_ADMIN:
        query = select(Wedding).where(Wedding.super_admin_id == identity.id)
    elif identity.role == Role.ADMIN:
        query = (
            select(Wedding)
            .join(WeddingMember, WeddingMember.wedding_id == Wedding.id)
            .where(
                WeddingMember.user_id == identity.id,
                WeddingMember.role == MemberRole.ADMIN.value,
                WeddingMember.is_active == True,  # noqa: E712
            )
        )
    else:
        return []
    result = await session.execute(query.order_by(Wedding.date))
    return list(result.scalars().all())


async def get_public_wedding(subdomain: str, session: AsyncSession) -> PublicWedding:
    result = await session.execute(
        select(Wedding).where(
            Wedding.subdomain == subdomain,
            Wedding.is_active == True,  # noqa: E712
        )
    )
    wedding = result.scalar_one_or_none()
    if not wedding:
        raise NotFound("Wedding not found")
    guest_count, photo_count = await wedding_counts(wedding.id, session)
    return PublicWedding(
        id=wedding.id,
        name=wedding.name,
        subdomain=wedding.subdomain,
        date=wedding.date,
        location=wedding.location,
        description=wedding.description,
        url=_public_url(wedding),
        guest_count=guest_count,
        photo_count=photo_count,
    )


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------

async def get_membership(
    wedding_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> Optional[WeddingMember]:
    result = await session.execute(
        select(WeddingMember).where(
            WeddingMember.wedding_id == wedding_id,
            WeddingMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def add_member(
    wedding_id: uuid.UUID,
    user_id: uuid.UUID,
    role: MemberRole,
    session: AsyncSession,
) -> WeddingMember:
    """Add (or reactivate) a membership. Promotes an existing guest membership to admin."""
    member = await get_membership(wedding_id, user_id, session)
    if member is None:
        member = WeddingMember(wedding_id=wedding_id, user_id=user_id, role=role.value)
    else:
        member.is_active = True
        if role == MemberRole.ADMIN:
            member.role = role.value
    session.add(member)
    await session.flush()
    return member


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------

async def create_wedding_record(
    owner: User | Identity,
    *,
    name: str,
    date: dt.date,
    location: str,
    description: Optional[str],
    session: AsyncSession,
    subdomain: Optional[str] = None,
    subscription_plan_id: Optional[str] = None,
) -> Wedding:
    """Insert a draft wedding owned by ``owner``.

    Owners without the super admin role cannot hold the owner scope, so they
    are made admin members of what they create.
    """
    if subdomain:
        await ensure_subdomain_available(subdomain, session)
    else:
        subdomain = await _generated_subdomain(name, session)

    wedding = Wedding(
        name=name,
        code=await _unique_code(name, session),
        subdomain=subdomain,
        date=date,
        location=location,
        description=description,
        status=WeddingStatus.DRAFT.value,
        super_admin_id=owner.id,
        subscription_plan_id=subscription_plan_id,
    )
    session.add(wedding)
    await session.flush()

    if Role(owner.role) != Role.SUPER_ADMIN:
        await add_member(wedding.id, owner.id, MemberRole.ADMIN, session)

    log.info("wedding.created", wedding_id=str(wedding.id), code=wedding.code, owner=str(owner.id))
    return wedding


async def create_wedding(
    req: WeddingCreateRequest,
    creator: Identity,
    session: AsyncSession,
    mailer: Mailer,
) -> Wedding:
    wedding = await create_wedding_record(
        creator,
        name=req.name,
        date=req.date,
        location=req.location,
        description=req.description,
        subdomain=req.subdomain,
        subscription_plan_id=req.subscription_plan_id,
        session=session,
    )

    result = await session.execute(select(User).where(User.email == req.admin_email))
    admin_user = result.scalar_one_or_none()
    if admin_user is not None:
        await add_member(wedding.id, admin_user.id, MemberRole.ADMIN, session)
        log.info("wedding.admin_added", wedding_id=str(wedding.id), user_id=str(admin_user.id))

    signup_link = notifications.signup_url(wedding, req.admin_email)
    admin_name = admin_user.name if admin_user else f"Wedding Admin - {req.name}"
    await notifications.send_best_effort(
        mailer,
        req.admin_email,
        notifications.render_admin_invitation(
            wedding.name, wedding.date, wedding.location, admin_name,
            notifications.signin_url(), signup_link,
        ),
    )
    return wedding


async def update_wedding(
    wedding: Wedding,
    req: WeddingUpdateRequest,
    session: AsyncSession,
) -> Wedding:
    for field in ("name", "date", "location", "description"):
        value = getattr(req, field)
        if value is not None:
            setattr(wedding, field, value)

    if req.subdomain is not None:
        if req.subdomain == "":
            wedding.subdomain = None
        elif req.subdomain != wedding.subdomain:
            await ensure_subdomain_available(req.subdomain, session, exclude_id=wedding.id)
            wedding.subdomain = req.subdomain

    if req.status is not None:
        ok, error = validate_transition(WeddingStatus(wedding.status), req.status)
        if not ok:
            raise ValidationError(error)
        wedding.status = req.status.value
        wedding.is_active = req.status != WeddingStatus.ARCHIVED

    wedding.updated_at = dt.datetime.now(dt.timezone.utc)
    session.add(wedding)
    await session.flush()

    log.info("wedding.updated", wedding_id=str(wedding.id), status=wedding.status)
    return wedding


async def delete_wedding(
    wedding: Wedding,
    session: AsyncSession,
    media_gateway: MediaGateway,
) -> None:
    """Delete a wedding and everything scoped to it. Stored assets are removed best-effort."""
    result = await session.execute(select(Media).where(Media.wedding_id == wedding.id))
    assets = [(m.public_id, m.type) for m in result.scalars().all() if m.public_id]

    question_ids = select(Question.id).where(Question.wedding_id == wedding.id)
    await session.execute(delete(Answer).where(Answer.question_id.in_(question_ids)))
    for model in (Question, Event, WeddingGuest, Notification, InviteLink, WeddingMember, Media):
        await session.execute(delete(model).where(model.wedding_id == wedding.id))
    await session.execute(update(User).where(User.wedding_id == wedding.id).values(wedding_id=None))
    await session.delete(wedding)
    await session.flush()

    for public_id, media_type in assets:
        try:
            await media_gateway.destroy(public_id, resource_type="video" if media_type == "video" else "image")
        except UpstreamFailure:
            log.warning("wedding.asset_cleanup_failed", wedding_id=str(wedding.id), public_id=public_id)

    log.info("wedding.deleted", wedding_id=str(wedding.id), assets=len(assets))


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

async def _find_or_create_invitee(email: str, session: AsyncSession) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        user = User(email=email, name=email.split("@")[0], role=Role.GUEST.value, invited=True)
        session.add(user)
        await session.flush()
    return user


async def invite_members(
    wedding: Wedding,
    req: InviteRequest,
    session: AsyncSession,
) -> InviteOutcome:
    """Invite each address: find or create the user, add a membership, issue a link."""
    results: list[InviteResult] = []
    errors: list[InviteError] = []

    for email in dict.fromkeys(req.emails):
        user = await _find_or_create_invitee(email, session)
        if not user.is_active:
            errors.append(InviteError(email=email, error="Account is disabled"))
            continue

        if await get_membership(wedding.id, user.id, session):
            results.append(InviteResult(email=email, status="already_member", user_id=user.id))
            continue

        session.add(WeddingMember(wedding_id=wedding.id, user_id=user.id, role=req.role.value))
        code = generate_invite_code()
        session.add(
            InviteLink(
                wedding_id=wedding.id,
                code=code,
                max_uses=req.max_uses,
                expires_at=req.expires_at,
            )
        )
        await notifications.notify(
            user.id,
            "Wedding Invitation",
            req.message or "You've been invited to join a wedding celebration!",
            session,
            wedding_id=wedding.id,
        )
        results.append(
            InviteResult(
                email=email,
                status="invited",
                user_id=user.id,
                invite_code=code,
                invite_link=f"{settings.base_url}/join/{code}",
            )
        )

    log.info(
        "wedding.invitations_processed",
        wedding_id=str(wedding.id),
        invited=len(results),
        failed=len(errors),
    )
    return InviteOutcome(results=results, errors=errors)


async def list_members(wedding: Wedding, session: AsyncSession) -> MembersData:
    result = await session.execute(
        select(WeddingMember, User)
        .join(User, User.id == WeddingMember.user_id)
        .where(
            WeddingMember.wedding_id == wedding.id,
            WeddingMember.is_active == True,  # noqa: E712
        )
        .order_by(WeddingMember.invited_at.desc())
    )
    members = [
        MemberResponse(
            id=member.id,
            user_id=user.id,
            name=user.name,
            email=user.email,
            role=MemberRole(member.role),
            invited_at=member.invited_at,
        )
        for member, user in result.all()
    ]

    result = await session.execute(
        select(InviteLink)
        .where(
            InviteLink.wedding_id == wedding.id,
            InviteLink.is_active == True,  # noqa: E712
        )
        .order_by(InviteLink.created_at.desc())
    )
    links = [InviteLinkResponse.model_validate(link) for link in result.scalars().all()]
    return MembersData(members=members, invite_links=links)
