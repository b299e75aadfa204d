# ruff: noqa: B008, TC003
from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Header

from tenanthub.exceptions import ForbiddenError, UnauthorizedError
from tenanthub.models.enums import UserRole
from tenanthub.schemas.auth import IdentityContext
from tenanthub.security import InvalidTokenError, verify_token
from tenanthub.services.email import EmailSender, get_email_sender

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.OWNER})
OWNER_ROLES = frozenset({UserRole.OWNER})
INVALID_TOKEN_MESSAGE = "Unauthorized - Invalid or expired token"


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        raise UnauthorizedError("No token provided")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise UnauthorizedError("Malformed Authorization header")
    return parts[1]


async def get_identity(
    authorization: str | None = Header(default=None),
) -> IdentityContext:
    """Authenticate the request and return the caller's identity."""
    try:
        token = extract_bearer_token(authorization)
    except UnauthorizedError as exc:
        logger.warning("Authentication failed: %s", exc.message)
        raise UnauthorizedError(INVALID_TOKEN_MESSAGE) from exc

    try:
        return verify_token(token)
    except InvalidTokenError as exc:
        logger.warning("Authentication failed: %s", exc.reason)
        raise UnauthorizedError(INVALID_TOKEN_MESSAGE) from exc


IdentityDep = Annotated[IdentityContext, Depends(get_identity)]


def authorize(identity: IdentityContext | None, allowed_roles: frozenset[UserRole]) -> IdentityContext:
    """Require the identity's role to be one of ``allowed_roles``. No hierarchy is implied."""
    if identity is None:
        raise UnauthorizedError("Unauthorized")
    if identity.role not in allowed_roles:
        logger.warning(
            "Insufficient permissions: user=%s company=%s role=%s required=%s",
            identity.user_id,
            identity.company_id,
            identity.role,
            sorted(allowed_roles),
        )
        raise ForbiddenError("Forbidden - Insufficient permissions")
    return identity


def require_roles(*roles: UserRole) -> Callable[[IdentityContext], Awaitable[IdentityContext]]:
    """Build a dependency admitting only the given roles."""
    allowed = frozenset(roles)

    async def _require(identity: IdentityDep) -> IdentityContext:
        return authorize(identity, allowed)

    return _require


AdminDep = Annotated[IdentityContext, Depends(require_roles(*ADMIN_ROLES))]
OwnerDep = Annotated[IdentityContext, Depends(require_roles(*OWNER_ROLES))]
EmailSenderDep = Annotated[EmailSender, Depends(get_email_sender)]


async def require_self_or_admin(user_id: uuid.UUID, identity: IdentityDep) -> IdentityContext:
    """Any role may act on its own record; anyone else's needs ADMIN or OWNER."""
    if user_id != identity.user_id:
        authorize(identity, ADMIN_ROLES)
    return identity


SelfOrAdminDep = Annotated[IdentityContext, Depends(require_self_or_admin)]
