"""
Script to create a local account with a bcrypt password for development.

Local accounts log in without the identity provider:

    python -m app.scripts.create_local_user --email admin@example.com \
        --password secret123 --role application_admin
"""

import argparse
import asyncio
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import hash_password
from app.core.database import get_session_context, init_db
from app.models.user import User
from weddingshare_shared.schemas.common import Role


async def ensure_user(
    session: AsyncSession,
    email: str,
    password: str,
    role: Role,
    name: Optional[str] = None,
) -> tuple[User, bool]:
    """Create the account, or reset the password and role of an existing one.

    Returns (user, created).
    """
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    created = user is None
    if created:
        user = User(email=email, name=name or email.split("@")[0])
    elif name:
        user.name = name

    user.role = role.value
    user.password_hash = hash_password(password)
    user.is_active = True
    user.email_confirmed = True
    session.add(user)
    await session.flush()
    return user, created


async def create_user(email: str, password: str, role: Role, name: Optional[str], create_tables: bool):
    if create_tables:
        await init_db()
    async with get_session_context() as session:
        user, created = await ensure_user(session, email, password, role, name)
        print(f"{'Created' if created else 'Updated'} {role.value} user: {user.email} ({user.id})")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Create a local WeddingShare user.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--password", required=True, help="Password for the user")
    parser.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.APPLICATION_ADMIN.value,
        help="Platform role (default: application_admin)",
    )
    parser.add_argument("--name", help="Display name (default: the email's local part)")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")

    args = parser.parse_args(argv)
    if len(args.password) < 6:
        parser.error("password must be at least 6 characters")

    asyncio.run(create_user(args.email, args.password, Role(args.role), args.name, args.create_tables))


if __name__ == "__main__":
    main()
