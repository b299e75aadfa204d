"""Token codec, password hashing and one-time token helpers.

Access and refresh tokens are HS256 JWTs signed with ``JWT_SECRET``. Both
carry the caller's user id (``sub``), company id and role; the ``type`` claim
keeps one kind from being accepted where the other is expected. Refresh tokens
also carry a ``jti`` whose digest is stored server-side so sessions can be
revoked on logout or password reset.

Verification failures of every kind raise :class:`InvalidTokenError`. The
reason is kept on the exception for server-side logs; callers must not surface
it, so a client cannot tell an expired token from a forged one.

Passwords use bcrypt directly. ``authenticate_password`` always runs one
bcrypt comparison, against a dummy hash when the account does not exist, so
response time does not reveal which emails are registered.

Email verification and password reset tokens are random url-safe strings.
Only ``HMAC-SHA256(JWT_SECRET, token)`` is persisted, which allows an indexed
lookup without keeping the raw value.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import uuid
from datetime import UTC, datetime, timedelta
from functools import lru_cache

import bcrypt
import jwt

from tenanthub.config import get_settings
from tenanthub.models.enums import UserRole
from tenanthub.schemas.auth import IdentityContext

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
_REQUIRED_CLAIMS = ["sub", "company_id", "role", "type", "exp", "iat"]


class InvalidTokenError(Exception):
    """A token failed verification. ``reason`` is for logs only."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def _encode(claims: dict[str, object]) -> str:
    settings = get_settings()
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _base_claims(user_id: uuid.UUID, company_id: uuid.UUID, role: UserRole | str, token_type: str) -> dict[str, object]:
    return {
        "sub": str(user_id),
        "company_id": str(company_id),
        "role": str(role),
        "type": token_type,
        "iat": datetime.now(UTC),
    }


def create_access_token(user_id: uuid.UUID, company_id: uuid.UUID, role: UserRole | str) -> str:
    """Encode a short-lived access token for the given identity."""
    claims = _base_claims(user_id, company_id, role, ACCESS_TOKEN_TYPE)
    claims["exp"] = datetime.now(UTC) + timedelta(minutes=get_settings().access_token_expire_minutes)
    return _encode(claims)


def create_refresh_token(
    user_id: uuid.UUID,
    company_id: uuid.UUID,
    role: UserRole | str,
) -> tuple[str, str, datetime]:
    """Encode a refresh token. Returns ``(token, jti, expires_at)``."""
    jti = secrets.token_urlsafe(24)
    expires_at = datetime.now(UTC) + timedelta(days=get_settings().refresh_token_expire_days)
    claims = _base_claims(user_id, company_id, role, REFRESH_TOKEN_TYPE)
    claims["jti"] = jti
    claims["exp"] = expires_at
    return _encode(claims), jti, expires_at


def decode_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> dict[str, object]:
    """Verify signature, expiry and token type, returning the raw claims."""
    settings = get_settings()
    required = [*_REQUIRED_CLAIMS, "jti"] if expected_type == REFRESH_TOKEN_TYPE else _REQUIRED_CLAIMS
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": required},
        )
    except jwt.ExpiredSignatureError as exc:
        raise InvalidTokenError("token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError(f"token rejected: {exc}") from exc

    if claims.get("type") != expected_type:
        raise InvalidTokenError(f"wrong token type {claims.get('type')!r}")
    return claims


def identity_from_claims(claims: dict[str, object]) -> IdentityContext:
    """Build the identity carried by already-verified claims."""
    try:
        return IdentityContext(
            user_id=uuid.UUID(str(claims["sub"])),
            company_id=uuid.UUID(str(claims["company_id"])),
            role=UserRole(claims["role"]),
        )
    except ValueError as exc:
        raise InvalidTokenError("malformed identity claims") from exc


def verify_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> IdentityContext:
    """Verify a token and return the identity it carries."""
    return identity_from_claims(decode_token(token, expected_type))


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("tenant-hub-timing-dummy")


def authenticate_password(plain: str, hashed: str | None) -> bool:
    """Check a password, spending one bcrypt round even when ``hashed`` is None."""
    if hashed is None:
        verify_password(plain, _dummy_hash())
        return False
    return verify_password(plain, hashed)


# ---------------------------------------------------------------------------
# One-time tokens
# ---------------------------------------------------------------------------

OPAQUE_TOKEN_MIN_LENGTH = 32


def generate_opaque_token() -> str:
    """Return a random url-safe token with 256 bits of entropy."""
    return secrets.token_urlsafe(32)


def hash_opaque_token(raw: str) -> str:
    """Return HMAC-SHA256(JWT_SECRET, raw) as a hex string."""
    return hmac.new(
        get_settings().jwt_secret.encode(),
        raw.encode(),
        hashlib.sha256,
    ).hexdigest()
