from __future__ import annotations

import logging
import re
from typing import NamedTuple, Protocol, runtime_checkable

from tenanthub.config import get_settings

logger = logging.getLogger(__name__)

# Matches the url-safe one-time tokens embedded in verification and reset links.
_TOKEN_RE = re.compile(r"[A-Za-z0-9_-]{32,}")


def redact_tokens(text: str) -> str:
    """Replace every one-time token in ``text`` with its first four characters."""
    return _TOKEN_RE.sub(lambda m: f"{m.group()[:4]}...[redacted]", text)


class EmailMessage(NamedTuple):
    to: str
    subject: str
    body: str


@runtime_checkable
class EmailSender(Protocol):
    """Interface for outbound email delivery."""

    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver a plain-text message."""
        ...


class LoggingEmailSender:
    """Sender that writes messages to the log instead of delivering them.

    Token links are redacted unless ``reveal_tokens`` is set, which only the
    development default does.
    """

    def __init__(self, *, reveal_tokens: bool = False) -> None:
        self.reveal_tokens = reveal_tokens

    async def send(self, to: str, subject: str, body: str) -> None:
        """Log the message."""
        logger.info("Email to=%s subject=%r\n%s", to, subject, body if self.reveal_tokens else redact_tokens(body))


class InMemoryEmailSender:
    """Sender that keeps every message in a list, for tests."""

    def __init__(self) -> None:
        self.outbox: list[EmailMessage] = []

    async def send(self, to: str, subject: str, body: str) -> None:
        """Record the message."""
        self.outbox.append(EmailMessage(to, subject, body))


_email_sender: EmailSender | None = None


def get_email_sender() -> EmailSender:
    """FastAPI dependency for the email sender.

    Defaults to a :class:`LoggingEmailSender` that shows full links only in development.
    """
    global _email_sender
    if _email_sender is None:
        _email_sender = LoggingEmailSender(reveal_tokens=get_settings().environment == "development")
    return _email_sender


def set_email_sender(sender: EmailSender | None) -> None:
    """Override the sender (for testing or production wiring). ``None`` restores the default."""
    global _email_sender
    _email_sender = sender
