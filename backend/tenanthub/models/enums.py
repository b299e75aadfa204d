from __future__ import annotations

import enum


class UserRole(enum.StrEnum):
    """Role of a user within their company."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    USER = "USER"


class TokenPurpose(enum.StrEnum):
    """What a stored auth token may be redeemed for."""

    REFRESH = "REFRESH"
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    PASSWORD_RESET = "PASSWORD_RESET"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    USER_REGISTER = "USER_REGISTER"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    USER_CREATE = "USER_CREATE"
    USER_UPDATE = "USER_UPDATE"
    USER_DELETE = "USER_DELETE"
    EMAIL_VERIFY = "EMAIL_VERIFY"
    PASSWORD_RESET_REQUEST = "PASSWORD_RESET_REQUEST"
    PASSWORD_RESET = "PASSWORD_RESET"


class AuditEntity(enum.StrEnum):
    """Entity type recorded in the audit log."""

    USER = "user"
    COMPANY = "company"
