from __future__ import annotations

import os

# Settings are read lazily on first use, so these must be set before any app import.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-only-jwt-secret-with-plenty-of-entropy-1234")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "development")

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from tenanthub.db import engine_options, get_session
from tenanthub.main import app
from tenanthub.models import Company, SQLModel, User, UserRole
from tenanthub.security import create_access_token, hash_password
from tenanthub.services.email import InMemoryEmailSender, set_email_sender

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

DEFAULT_PASSWORD = "StrongP@ss1"
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@dataclass
class Member:
    """A persisted user plus ready-made auth headers."""

    user: User
    password: str = DEFAULT_PASSWORD

    @property
    def id(self) -> uuid.UUID:
        return self.user.id

    @property
    def headers(self) -> dict[str, str]:
        token = create_access_token(self.user.id, self.user.company_id, self.user.role)
        return {"Authorization": f"Bearer {token}"}


@dataclass
class Tenant:
    """A company seeded with one OWNER, one ADMIN and one USER."""

    company: Company
    owner: Member
    admin: Member
    user: Member
    extra: list[Member] = field(default_factory=list)

    @property
    def id(self) -> uuid.UUID:
        return self.company.id


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Fresh in-memory SQLite database per test; StaticPool keeps a single shared connection."""
    _engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool, **engine_options(TEST_DATABASE_URL))
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Session shared between the test body and the app under test."""
    session = AsyncSession(bind=engine, expire_on_commit=False)
    yield session
    await session.close()


@pytest.fixture(autouse=True)
def email_outbox() -> Iterator[InMemoryEmailSender]:
    """Capture outbound email instead of logging it."""
    sender = InMemoryEmailSender()
    set_email_sender(sender)
    yield sender
    set_email_sender(None)


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


_clock = datetime(2026, 1, 1, tzinfo=UTC)


def _next_created_at() -> datetime:
    # Strictly increasing timestamps keep creation order deterministic.
    global _clock
    _clock += timedelta(seconds=1)
    return _clock


async def add_user(
    session: AsyncSession,
    company: Company,
    role: UserRole = UserRole.USER,
    *,
    name: str | None = None,
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
) -> Member:
    """Persist a user directly and return it wrapped as a Member."""
    created_at = _next_created_at()
    user = User(
        company_id=company.id,
        name=name or f"{role.value.title()} {uuid.uuid4().hex[:6]}",
        email=email or f"{uuid.uuid4().hex[:10]}@example.com",
        password_hash=hash_password(password),
        role=role.value,
        created_at=created_at,
        updated_at=created_at,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return Member(user=user, password=password)


async def add_tenant(session: AsyncSession, name: str) -> Tenant:
    """Persist a company with an OWNER, an ADMIN and a USER."""
    company = Company(name=name)
    session.add(company)
    await session.commit()
    await session.refresh(company)
    owner = await add_user(session, company, UserRole.OWNER, name=f"{name} Owner")
    admin = await add_user(session, company, UserRole.ADMIN, name=f"{name} Admin")
    user = await add_user(session, company, UserRole.USER, name=f"{name} User")
    return Tenant(company=company, owner=owner, admin=admin, user=user)


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[Member]]:
    """Factory fixture: ``await make_user(company, role, name=..., email=...)``."""

    async def _make(company: Company, role: UserRole = UserRole.USER, **kwargs: str) -> Member:
        return await add_user(db_session, company, role, **kwargs)

    return _make


@pytest.fixture
async def tenant_a(db_session: AsyncSession) -> Tenant:
    return await add_tenant(db_session, "Acme")


@pytest.fixture
async def tenant_b(db_session: AsyncSession) -> Tenant:
    return await add_tenant(db_session, "Globex")
