# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, or_, select, update
from sqlmodel import col

from tenanthub.config import get_settings
from tenanthub.exceptions import ConflictError, InputValidationError, NotFoundError, UnauthorizedError
from tenanthub.models.auth_token import AuthToken
from tenanthub.models.company import Company
from tenanthub.models.enums import AuditAction, AuditEntity, TokenPurpose, UserRole
from tenanthub.models.user import User
from tenanthub.schemas.auth import AccessTokenResponse, AuthResponse, CompanyResponse, RegisterResponse
from tenanthub.security import (
    OPAQUE_TOKEN_MIN_LENGTH,
    REFRESH_TOKEN_TYPE,
    InvalidTokenError,
    authenticate_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_opaque_token,
    hash_opaque_token,
    hash_password,
    identity_from_claims,
)
from tenanthub.services.audit import write_audit_log
from tenanthub.services.user import email_in_use, find_user, to_user_response

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from tenanthub.schemas.auth import IdentityContext, RegisterRequest
    from tenanthub.schemas.user import UserResponse
    from tenanthub.services.email import EmailSender

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"
FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a reset link has been sent"


def _now() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


# ---------------------------------------------------------------------------
# Token persistence helpers
# ---------------------------------------------------------------------------


def _issue_token_pair(session: AsyncSession, user: User) -> tuple[str, str]:
    access_token = create_access_token(user.id, user.company_id, user.role)
    refresh_token, jti, expires_at = create_refresh_token(user.id, user.company_id, user.role)
    session.add(
        AuthToken(
            user_id=user.id,
            purpose=TokenPurpose.REFRESH.value,
            token_hash=hash_opaque_token(jti),
            expires_at=expires_at,
        )
    )
    return access_token, refresh_token


def _issue_one_time_token(
    session: AsyncSession,
    user: User,
    purpose: TokenPurpose,
    lifetime: timedelta,
) -> str:
    raw = generate_opaque_token()
    session.add(
        AuthToken(
            user_id=user.id,
            purpose=purpose.value,
            token_hash=hash_opaque_token(raw),
            expires_at=_now() + lifetime,
        )
    )
    return raw


async def _find_token(session: AsyncSession, raw: str, purpose: TokenPurpose) -> AuthToken | None:
    result = await session.execute(
        select(AuthToken).where(
            col(AuthToken.token_hash) == hash_opaque_token(raw),
            col(AuthToken.purpose) == purpose.value,
        )
    )
    return result.scalar_one_or_none()


async def _redeem_one_time_token(session: AsyncSession, raw: str, purpose: TokenPurpose) -> User:
    """Resolve an emailed token to its user and mark it consumed.

    Malformed or expired tokens are a 400; unknown or already used ones a 404.
    """
    if len(raw) < OPAQUE_TOKEN_MIN_LENGTH:
        raise InputValidationError("Malformed token")

    token = await _find_token(session, raw, purpose)
    if token is None or token.consumed_at is not None:
        raise NotFoundError("Token not found")
    if _as_utc(token.expires_at) <= _now():
        raise InputValidationError("Token has expired")

    result = await session.execute(select(User).where(col(User.id) == token.user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("Token not found")

    token.consumed_at = _now()
    session.add(token)
    return user


async def _revoke_refresh_tokens(session: AsyncSession, user_id: uuid.UUID) -> int:
    result = await session.execute(
        update(AuthToken)
        .where(
            col(AuthToken.user_id) == user_id,
            col(AuthToken.purpose) == TokenPurpose.REFRESH.value,
            col(AuthToken.consumed_at).is_(None),
        )
        .values(consumed_at=_now())
    )
    return result.rowcount


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------


async def register(
    session: AsyncSession,
    payload: RegisterRequest,
    email_sender: EmailSender,
) -> RegisterResponse:
    """Create a company together with its OWNER and log the owner in."""
    settings = get_settings()
    email = payload.email.lower()
    if await email_in_use(session, email):
        raise ConflictError("Email already registered")

    company = Company(name=payload.company_name)
    session.add(company)
    await session.flush()

    user = User(
        company_id=company.id,
        name=payload.name,
        email=email,
        password_hash=hash_password(payload.password),
        role=UserRole.OWNER.value,
    )
    session.add(user)
    await session.flush()

    verification = _issue_one_time_token(
        session,
        user,
        TokenPurpose.EMAIL_VERIFICATION,
        timedelta(hours=settings.email_verification_expire_hours),
    )
    access_token, refresh_token = _issue_token_pair(session, user)

    await write_audit_log(
        session,
        company_id=company.id,
        user_id=user.id,
        action=AuditAction.USER_REGISTER,
        entity=AuditEntity.COMPANY,
        entity_id=company.id,
        metadata={"company_name": company.name},
    )

    await session.commit()
    await session.refresh(user)

    await email_sender.send(
        user.email,
        "Verify your email",
        f"Confirm your address: {settings.frontend_url}/verify-email/{verification}",
    )
    logger.info("Registered company=%s owner=%s", company.id, user.id)

    return RegisterResponse(
        user=to_user_response(user),
        company=CompanyResponse(id=company.id, name=company.name),
        access_token=access_token,
        refresh_token=refresh_token,
    )


async def login(session: AsyncSession, email: str, password: str) -> AuthResponse:
    """Check credentials and open a refresh session."""
    result = await session.execute(select(User).where(col(User.email) == email.lower()))
    user = result.scalar_one_or_none()

    # bcrypt runs before the existence check so both failure paths cost the same
    hashed = user.password_hash if user is not None else None
    if not authenticate_password(password, hashed) or user is None:
        logger.warning("Login failed for email=%s", email)
        raise UnauthorizedError(INVALID_CREDENTIALS)

    access_token, refresh_token = _issue_token_pair(session, user)
    await write_audit_log(
        session,
        company_id=user.company_id,
        user_id=user.id,
        action=AuditAction.USER_LOGIN,
        entity=AuditEntity.USER,
        entity_id=user.id,
    )
    await session.commit()
    logger.info("User %s logged in", user.id)

    return AuthResponse(user=to_user_response(user), access_token=access_token, refresh_token=refresh_token)


async def refresh(session: AsyncSession, refresh_token: str) -> AccessTokenResponse:
    """Exchange a live refresh token for a new access token."""
    try:
        claims = decode_token(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        claims_identity = identity_from_claims(claims)
    except InvalidTokenError as exc:
        logger.warning("Refresh failed: %s", exc.reason)
        raise UnauthorizedError(INVALID_REFRESH_TOKEN) from exc

    jti = str(claims["jti"])
    stored = await _find_token(session, jti, TokenPurpose.REFRESH)
    if stored is None or stored.consumed_at is not None or _as_utc(stored.expires_at) <= _now():
        logger.warning("Refresh failed: session revoked or unknown for user=%s", claims_identity.user_id)
        raise UnauthorizedError(INVALID_REFRESH_TOKEN)

    user = await find_user(session, claims_identity.company_id, claims_identity.user_id)
    if user is None or stored.user_id != user.id:
        logger.warning("Refresh failed: user %s no longer exists", claims_identity.user_id)
        raise UnauthorizedError(INVALID_REFRESH_TOKEN)

    return AccessTokenResponse(access_token=create_access_token(user.id, user.company_id, user.role))


async def me(session: AsyncSession, identity: IdentityContext) -> UserResponse:
    """Return the caller's own record."""
    user = await find_user(session, identity.company_id, identity.user_id)
    if user is None:
        raise UnauthorizedError("User no longer exists")
    return to_user_response(user)


async def logout(session: AsyncSession, identity: IdentityContext) -> None:
    """Revoke every open refresh session of the caller."""
    revoked = await _revoke_refresh_tokens(session, identity.user_id)
    await write_audit_log(
        session,
        company_id=identity.company_id,
        user_id=identity.user_id,
        action=AuditAction.USER_LOGOUT,
        entity=AuditEntity.USER,
        entity_id=identity.user_id,
        metadata={"revoked_sessions": revoked},
    )
    await session.commit()
    logger.info("User %s logged out, revoked %d session(s)", identity.user_id, revoked)


async def verify_email(session: AsyncSession, token: str) -> UserResponse:
    """Mark the owner of a verification token as verified."""
    user = await _redeem_one_time_token(session, token, TokenPurpose.EMAIL_VERIFICATION)
    if user.email_verified_at is None:
        user.email_verified_at = _now()
        session.add(user)

    await write_audit_log(
        session,
        company_id=user.company_id,
        user_id=user.id,
        action=AuditAction.EMAIL_VERIFY,
        entity=AuditEntity.USER,
        entity_id=user.id,
    )
    await session.commit()
    await session.refresh(user)
    return to_user_response(user)


async def forgot_password(session: AsyncSession, email: str, email_sender: EmailSender) -> None:
    """Send a reset link when the account exists. Silent otherwise."""
    settings = get_settings()
    result = await session.execute(select(User).where(col(User.email) == email.lower()))
    user = result.scalar_one_or_none()
    if user is None:
        logger.info("Password reset requested for unknown email")
        return

    raw = _issue_one_time_token(
        session,
        user,
        TokenPurpose.PASSWORD_RESET,
        timedelta(minutes=settings.password_reset_expire_minutes),
    )
    await write_audit_log(
        session,
        company_id=user.company_id,
        user_id=user.id,
        action=AuditAction.PASSWORD_RESET_REQUEST,
        entity=AuditEntity.USER,
        entity_id=user.id,
    )
    await session.commit()

    await email_sender.send(
        user.email,
        "Reset your password",
        f"Choose a new password: {settings.frontend_url}/reset-password/{raw}",
    )


async def reset_password(session: AsyncSession, token: str, password: str) -> None:
    """Set a new password from a reset token and end all refresh sessions."""
    user = await _redeem_one_time_token(session, token, TokenPurpose.PASSWORD_RESET)
    user.password_hash = hash_password(password)
    session.add(user)
    revoked = await _revoke_refresh_tokens(session, user.id)

    await write_audit_log(
        session,
        company_id=user.company_id,
        user_id=user.id,
        action=AuditAction.PASSWORD_RESET,
        entity=AuditEntity.USER,
        entity_id=user.id,
        metadata={"revoked_sessions": revoked},
    )
    await session.commit()
    logger.info("Password reset for user %s", user.id)


async def purge_expired_tokens(session: AsyncSession, now: datetime | None = None) -> int:
    """Delete auth tokens that have expired or were already consumed."""
    cutoff = now or _now()
    result = await session.execute(
        delete(AuthToken)
        .where(
            or_(
                col(AuthToken.expires_at) <= cutoff,
                col(AuthToken.consumed_at).is_not(None),
            )
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    return result.rowcount
