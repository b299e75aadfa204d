from sqlmodel import SQLModel

from tenanthub.models.audit import AuditLog
from tenanthub.models.auth_token import AuthToken
from tenanthub.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase
from tenanthub.models.company import Company
from tenanthub.models.enums import AuditAction, AuditEntity, TokenPurpose, UserRole
from tenanthub.models.user import User

__all__ = [
    "AuditAction",
    "AuditEntity",
    "AuditLog",
    "AuthToken",
    "Company",
    "SQLModel",
    "TimestampMixin",
    "TokenPurpose",
    "UUIDBase",
    "UpdatedAtMixin",
    "User",
    "UserRole",
]
