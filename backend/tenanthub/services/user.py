# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select
from sqlmodel import col

from tenanthub.exceptions import ConflictError, ForbiddenError, NotFoundError
from tenanthub.models.auth_token import AuthToken
from tenanthub.models.enums import AuditAction, AuditEntity, UserRole
from tenanthub.models.user import User
from tenanthub.schemas.user import UserResponse
from tenanthub.security import hash_password
from tenanthub.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from tenanthub.schemas.auth import IdentityContext
    from tenanthub.schemas.user import CreateUserRequest, UpdateUserRequest


def to_user_response(user: User) -> UserResponse:
    """Build a sanitized UserResponse from a DB model."""
    return UserResponse(
        id=user.id,
        company_id=user.company_id,
        name=user.name,
        email=user.email,
        role=user.role,
        email_verified=user.email_verified_at is not None,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


async def find_user(session: AsyncSession, company_id: uuid.UUID, user_id: uuid.UUID) -> User | None:
    """Fetch a user by id, scoped to a company."""
    result = await session.execute(
        select(User).where(
            col(User.id) == user_id,
            col(User.company_id) == company_id,
        )
    )
    return result.scalar_one_or_none()


async def email_in_use(session: AsyncSession, email: str, exclude_user_id: uuid.UUID | None = None) -> bool:
    """Return True if any user, in any company, already has this email."""
    stmt = select(func.count()).select_from(User).where(col(User.email) == email.lower())
    if exclude_user_id is not None:
        stmt = stmt.where(col(User.id) != exclude_user_id)
    result = await session.execute(stmt)
    return result.scalar_one() > 0


async def list_users(
    session: AsyncSession,
    company_id: uuid.UUID,
    page: int = 1,
    limit: int = 10,
) -> list[UserResponse]:
    """List one page of a company's users in creation order."""
    result = await session.execute(
        select(User)
        .where(col(User.company_id) == company_id)
        .order_by(col(User.created_at), col(User.id))
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return [to_user_response(u) for u in result.scalars().all()]


async def get_user(
    session: AsyncSession,
    company_id: uuid.UUID,
    user_id: uuid.UUID,
) -> UserResponse:
    """Fetch a single user. Users of other companies are reported as not found."""
    user = await find_user(session, company_id, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return to_user_response(user)


async def create_user(
    session: AsyncSession,
    identity: IdentityContext,
    payload: CreateUserRequest,
) -> UserResponse:
    """Add a user to the caller's company. Role defaults to USER."""
    email = payload.email.lower()
    if await email_in_use(session, email):
        raise ConflictError("Email already in use")

    user = User(
        company_id=identity.company_id,
        name=payload.name,
        email=email,
        password_hash=hash_password(payload.password),
        role=UserRole(payload.role).value,
    )
    session.add(user)
    await session.flush()

    await write_audit_log(
        session,
        company_id=identity.company_id,
        user_id=identity.user_id,
        action=AuditAction.USER_CREATE,
        entity=AuditEntity.USER,
        entity_id=user.id,
        metadata={"after": model_to_audit_dict(user)},
    )

    await session.commit()
    await session.refresh(user)
    return to_user_response(user)


async def update_user(
    session: AsyncSession,
    identity: IdentityContext,
    user_id: uuid.UUID,
    payload: UpdateUserRequest,
) -> UserResponse:
    """Apply the provided fields to a user in the caller's company."""
    user = await find_user(session, identity.company_id, user_id)
    if user is None:
        raise NotFoundError("User not found")
    # Owner records are editable only by an owner.
    if user.role == UserRole.OWNER and identity.role != UserRole.OWNER:
        raise ForbiddenError("Forbidden - Only an owner may modify an owner account")

    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if "email" in changes:
        changes["email"] = changes["email"].lower()
        if changes["email"] != user.email and await email_in_use(session, changes["email"], exclude_user_id=user.id):
            raise ConflictError("Email already in use")

    before = model_to_audit_dict(user)
    for key, value in changes.items():
        setattr(user, key, value)
    session.add(user)
    await session.flush()

    await write_audit_log(
        session,
        company_id=identity.company_id,
        user_id=identity.user_id,
        action=AuditAction.USER_UPDATE,
        entity=AuditEntity.USER,
        entity_id=user.id,
        metadata={"before": before, "after": model_to_audit_dict(user), "fields": sorted(changes)},
    )

    await session.commit()
    await session.refresh(user)
    return to_user_response(user)


async def delete_user(
    session: AsyncSession,
    identity: IdentityContext,
    user_id: uuid.UUID,
) -> None:
    """Remove a user from the caller's company."""
    user = await find_user(session, identity.company_id, user_id)
    if user is None:
        raise NotFoundError("User not found")

    snapshot = model_to_audit_dict(user)
    await session.execute(delete(AuthToken).where(col(AuthToken.user_id) == user.id))
    await session.delete(user)

    await write_audit_log(
        session,
        company_id=identity.company_id,
        user_id=identity.user_id,
        action=AuditAction.USER_DELETE,
        entity=AuditEntity.USER,
        entity_id=user_id,
        metadata={"before": snapshot},
    )

    await session.commit()
