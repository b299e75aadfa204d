from __future__ import annotations

import re

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72  # bcrypt ignores anything past 72 bytes

_RULES = (
    (re.compile(r"[a-z]"), "one lowercase letter"),
    (re.compile(r"[A-Z]"), "one uppercase letter"),
    (re.compile(r"\d"), "one digit"),
)


def check_password_strength(value: str) -> str:
    """Validate password policy, raising ValueError naming the first unmet rule."""
    if len(value.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        msg = f"Password must be at most {PASSWORD_MAX_LENGTH} bytes"
        raise ValueError(msg)
    for pattern, rule in _RULES:
        if not pattern.search(value):
            msg = f"Password must contain at least {rule}"
            raise ValueError(msg)
    return value
