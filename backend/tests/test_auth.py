"""Integration tests for the register/login/refresh/verify/reset flows."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from tenanthub.models import AuditLog, AuthToken, Company, TokenPurpose, User
from tenanthub.security import generate_opaque_token, hash_opaque_token
from tenanthub.services.auth import FORGOT_PASSWORD_MESSAGE, INVALID_CREDENTIALS, purge_expired_tokens

if TYPE_CHECKING:
    from conftest import Tenant
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from tenanthub.services.email import InMemoryEmailSender

REGISTER_URL = "/auth/register"
LOGIN_URL = "/auth/login"
REFRESH_URL = "/auth/refresh"
ME_URL = "/auth/me"
LOGOUT_URL = "/auth/logout"
FORGOT_URL = "/auth/forgot-password"

PASSWORD = "StrongP@ss1"


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _token_from_email(body: str) -> str:
    return body.rsplit("/", 1)[1]


async def _register(
    client: AsyncClient,
    email: str = "founder@initech.com",
    password: str = PASSWORD,
    company_name: str = "Initech",
) -> dict:
    resp = await client.post(
        REGISTER_URL,
        json={"email": email, "name": "Founder", "password": password, "companyName": company_name},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def _login(client: AsyncClient, email: str, password: str = PASSWORD) -> dict:
    resp = await client.post(LOGIN_URL, json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------


class TestRegister:
    async def test_creates_company_and_owner(self, async_client: AsyncClient, db_session: AsyncSession) -> None:
        data = await _register(async_client)
        assert data["user"]["role"] == "OWNER"
        assert data["user"]["emailVerified"] is False
        assert data["company"]["name"] == "Initech"
        assert data["user"]["companyId"] == data["company"]["id"]
        assert data["accessToken"]
        assert data["refreshToken"]
        assert "password" not in data["user"]

        companies = (await db_session.execute(select(Company))).scalars().all()
        assert [c.name for c in companies] == ["Initech"]

    async def test_sends_verification_email(
        self,
        async_client: AsyncClient,
        email_outbox: InMemoryEmailSender,
    ) -> None:
        await _register(async_client)
        assert len(email_outbox.outbox) == 1
        message = email_outbox.outbox[0]
        assert message.to == "founder@initech.com"
        assert "/verify-email/" in message.body

    async def test_access_token_authenticates(self, async_client: AsyncClient) -> None:
        data = await _register(async_client)
        resp = await async_client.get(ME_URL, headers=_bearer(data["accessToken"]))
        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == data["user"]["id"]

    async def test_email_is_normalized(self, async_client: AsyncClient) -> None:
        data = await _register(async_client, email="Founder@Initech.COM")
        assert data["user"]["email"] == "founder@initech.com"

    async def test_duplicate_email(self, async_client: AsyncClient, tenant_a: Tenant) -> None:
        resp = await async_client.post(
            REGISTER_URL,
            json={
                "email": tenant_a.owner.user.email,
                "name": "Copycat",
                "password": PASSWORD,
                "companyName": "Copy Inc",
            },
        )
        assert resp.status_code == 409
        assert resp.json()["error"] == "ConflictError"

    async def test_weak_password(self, async_client: AsyncClient, email_outbox: InMemoryEmailSender) -> None:
        resp = await async_client.post(
            REGISTER_URL,
            json={"email": "a@b.com", "name": "A", "password": "alllowercase1", "companyName": "C"},
        )
        assert resp.status_code == 400
        assert [d["field"] for d in resp.json()["details"]] == ["password"]
        assert email_outbox.outbox == []

    async def test_writes_audit_entry(self, async_client: AsyncClient, db_session: AsyncSession) -> None:
        data = await _register(async_client)
        result = await db_session.execute(select(AuditLog).where(col(AuditLog.action) == "USER_REGISTER"))
        entry = result.scalar_one()
        assert str(entry.company_id) == data["company"]["id"]
        assert str(entry.user_id) == data["user"]["id"]


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class TestLogin:
    async def test_success(self, async_client: AsyncClient, tenant_a: Tenant) -> None:
        data = await _login(async_client, tenant_a.admin.user.email)
        assert data["user"]["id"] == str(tenant_a.admin.id)
        assert data["user"]["role"] == "ADMIN"
        assert data["accessToken"]
        assert data["refreshToken"]

    async def test_email_is_case_insensitive(self, async_client: AsyncClient, tenant_a: Tenant) -> None:
        data = await _login(async_client, tenant_a.user.user.email.upper())
        assert data["user"]["id"] == str(tenant_a.user.id)

    async def test_wrong_password_and_unknown_email_look_the_same(
        self,
        async_client: AsyncClient,
        tenant_a: Tenant,
    ) -> None:
        wrong = await async_client.post(
            LOGIN_URL, json={"email": tenant_a.user.user.email, "password": "WrongPass1"}
        )
        unknown = await async_client.post(LOGIN_URL, json={"email": "ghost@nowhere.com", "password": PASSWORD})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert wrong.json()["message"] == INVALID_CREDENTIALS

    async def test_missing_fields(self, async_client: AsyncClient) -> None:
        resp = await async_client.post(LOGIN_URL, json={})
        assert resp.status_code == 400
        assert {d["field"] for d in resp.json()["details"]} == {"email", "password"}

    async def test_unverified_user_can_login(self, async_client: AsyncClient) -> None:
        await _register(async_client)
        data = await _login(async_client, "founder@initech.com")
        assert data["user"]["emailVerified"] is False


# ---------------------------------------------------------------------------
# Refresh / me / logout
# ---------------------------------------------------------------------------


class TestSession:
    async def test_refresh_returns_new_access_token(self, async_client: AsyncClient, tenant_a: Tenant) -> None:
        tokens = await _login(async_client, tenant_a.user.user.email)
        resp = await async_client.post(REFRESH_URL, json={"refreshToken": tokens["refreshToken"]})
        assert resp.status_code == 200
        access = resp.json()["data"]["accessToken"]
        me = await async_client.get(ME_URL, headers=_bearer(access))
        assert me.json()["data"]["id"] == str(tenant_a.user.id)

    async def test_refresh_rejects_access_token(self, async_client: AsyncClient, tenant_a: Tenant) -> None:
        tokens = await _login(async_client, tenant_a.user.user.email)
        resp = await async_client.post(REFRESH_URL, json={"refreshToken": tokens["accessToken"]})
        assert resp.status_code == 401

    async def test_refresh_rejects_garbage(self, async_client: AsyncClient) -> None:
        resp = await async_client.post(REFRESH_URL, json={"refreshToken": "not.a.jwt"})
        assert resp.status_code == 401

    async def test_refresh_requires_body(self, async_client: AsyncClient) -> None:
        resp = await async_client.post(REFRESH_URL, json={})
        assert resp.status_code == 400

    async def test_logout_revokes_refresh_tokens(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        tenant_a: Tenant,
    ) -> None:
        first = await _login(async_client, tenant_a.user.user.email)
        second = await _login(async_client, tenant_a.user.user.email)

        resp = await async_client.post(LOGOUT_URL, headers=_bearer(first["accessToken"]))
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        for tokens in (first, second):
            refreshed = await async_client.post(REFRESH_URL, json={"refreshToken": tokens["refreshToken"]})
            assert refreshed.status_code == 401

        entry = (
            await db_session.execute(select(AuditLog).where(col(AuditLog.action) == "USER_LOGOUT"))
        ).scalar_one()
        assert entry.details == {"revoked_sessions": 2}

    async def test_logout_requires_authentication(self, async_client: AsyncClient) -> None:
        resp = await async_client.post(LOGOUT_URL)
        assert resp.status_code == 401

    async def test_me_returns_caller(self, async_client: AsyncClient, tenant_a: Tenant) -> None:
        resp = await async_client.get(ME_URL, headers=tenant_a.admin.headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["email"] == tenant_a.admin.user.email
        assert data["companyId"] == str(tenant_a.id)

    async def test_me_after_deletion(self, async_client: AsyncClient, tenant_a: Tenant) -> None:
        headers = tenant_a.user.headers
        deleted = await async_client.delete(f"/users/{tenant_a.user.id}", headers=tenant_a.owner.headers)
        assert deleted.status_code == 204
        resp = await async_client.get(ME_URL, headers=headers)
        assert resp.status_code == 401

    async def test_refresh_after_deletion(self, async_client: AsyncClient, tenant_a: Tenant) -> None:
        tokens = await _login(async_client, tenant_a.user.user.email)
        await async_client.delete(f"/users/{tenant_a.user.id}", headers=tenant_a.owner.headers)
        resp = await async_client.post(REFRESH_URL, json={"refreshToken": tokens["refreshToken"]})
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------


class TestVerifyEmail:
    async def test_verifies_user(self, async_client: AsyncClient, email_outbox: InMemoryEmailSender) -> None:
        registered = await _register(async_client)
        token = _token_from_email(email_outbox.outbox[0].body)

        resp = await async_client.get(f"/auth/verify-email/{token}")
        assert resp.status_code == 200
        assert resp.json()["data"]["emailVerified"] is True

        me = await async_client.get(ME_URL, headers=_bearer(registered["accessToken"]))
        assert me.json()["data"]["emailVerified"] is True

    async def test_token_is_single_use(self, async_client: AsyncClient, email_outbox: InMemoryEmailSender) -> None:
        await _register(async_client)
        token = _token_from_email(email_outbox.outbox[0].body)
        assert (await async_client.get(f"/auth/verify-email/{token}")).status_code == 200
        assert (await async_client.get(f"/auth/verify-email/{token}")).status_code == 404

    async def test_unknown_token(self, async_client: AsyncClient) -> None:
        resp = await async_client.get(f"/auth/verify-email/{generate_opaque_token()}")
        assert resp.status_code == 404

    async def test_malformed_token(self, async_client: AsyncClient) -> None:
        resp = await async_client.get("/auth/verify-email/short")
        assert resp.status_code == 400

    async def test_expired_token(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        email_outbox: InMemoryEmailSender,
    ) -> None:
        await _register(async_client)
        token = _token_from_email(email_outbox.outbox[0].body)
        stored = (
            await db_session.execute(select(AuthToken).where(col(AuthToken.token_hash) == hash_opaque_token(token)))
        ).scalar_one()
        stored.expires_at = datetime.now(UTC) - timedelta(minutes=1)
        db_session.add(stored)
        await db_session.commit()

        resp = await async_client.get(f"/auth/verify-email/{token}")
        assert resp.status_code == 400

    async def test_reset_token_cannot_verify_email(
        self,
        async_client: AsyncClient,
        tenant_a: Tenant,
        email_outbox: InMemoryEmailSender,
    ) -> None:
        await async_client.post(FORGOT_URL, json={"email": tenant_a.user.user.email})
        token = _token_from_email(email_outbox.outbox[0].body)
        resp = await async_client.get(f"/auth/verify-email/{token}")
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Forgot / reset password
# ---------------------------------------------------------------------------


class TestPasswordReset:
    async def test_forgot_password_known_email(
        self,
        async_client: AsyncClient,
        tenant_a: Tenant,
        email_outbox: InMemoryEmailSender,
    ) -> None:
        resp = await async_client.post(FORGOT_URL, json={"email": tenant_a.user.user.email})
        assert resp.status_code == 200
        assert resp.json()["message"] == FORGOT_PASSWORD_MESSAGE
        assert len(email_outbox.outbox) == 1
        assert email_outbox.outbox[0].to == tenant_a.user.user.email
        assert "/reset-password/" in email_outbox.outbox[0].body

    async def test_forgot_password_unknown_email(
        self,
        async_client: AsyncClient,
        email_outbox: InMemoryEmailSender,
    ) -> None:
        resp = await async_client.post(FORGOT_URL, json={"email": "ghost@nowhere.com"})
        assert resp.status_code == 200
        assert resp.json()["message"] == FORGOT_PASSWORD_MESSAGE
        assert email_outbox.outbox == []

    async def test_reset_password_flow(
        self,
        async_client: AsyncClient,
        tenant_a: Tenant,
        email_outbox: InMemoryEmailSender,
    ) -> None:
        email = tenant_a.user.user.email
        old_session = await _login(async_client, email)
        await async_client.post(FORGOT_URL, json={"email": email})
        token = _token_from_email(email_outbox.outbox[0].body)

        resp = await async_client.post(f"/auth/reset-password/{token}", json={"password": "BrandN3wPass"})
        assert resp.status_code == 200

        await _login(async_client, email, "BrandN3wPass")
        old = await async_client.post(LOGIN_URL, json={"email": email, "password": PASSWORD})
        assert old.status_code == 401

        refreshed = await async_client.post(REFRESH_URL, json={"refreshToken": old_session["refreshToken"]})
        assert refreshed.status_code == 401

    async def test_reset_token_is_single_use(
        self,
        async_client: AsyncClient,
        tenant_a: Tenant,
        email_outbox: InMemoryEmailSender,
    ) -> None:
        await async_client.post(FORGOT_URL, json={"email": tenant_a.user.user.email})
        token = _token_from_email(email_outbox.outbox[0].body)
        url = f"/auth/reset-password/{token}"
        assert (await async_client.post(url, json={"password": "BrandN3wPass"})).status_code == 200
        assert (await async_client.post(url, json={"password": "AnotherN3w"})).status_code == 404

    async def test_reset_unknown_token(self, async_client: AsyncClient) -> None:
        resp = await async_client.post(
            f"/auth/reset-password/{generate_opaque_token()}",
            json={"password": "BrandN3wPass"},
        )
        assert resp.status_code == 404

    async def test_reset_malformed_token(self, async_client: AsyncClient) -> None:
        resp = await async_client.post("/auth/reset-password/abc", json={"password": "BrandN3wPass"})
        assert resp.status_code == 400

    async def test_reset_weak_password(
        self,
        async_client: AsyncClient,
        tenant_a: Tenant,
        email_outbox: InMemoryEmailSender,
    ) -> None:
        await async_client.post(FORGOT_URL, json={"email": tenant_a.user.user.email})
        token = _token_from_email(email_outbox.outbox[0].body)
        resp = await async_client.post(f"/auth/reset-password/{token}", json={"password": "short"})
        assert resp.status_code == 400
        assert resp.json()["details"][0]["field"] == "password"


# ---------------------------------------------------------------------------
# Token purge
# ---------------------------------------------------------------------------


async def test_purge_expired_tokens(db_session: AsyncSession, tenant_a: Tenant) -> None:
    now = datetime.now(UTC)
    user_id = tenant_a.user.id

    def _token(expires_at: datetime, consumed_at: datetime | None = None) -> AuthToken:
        return AuthToken(
            user_id=user_id,
            purpose=TokenPurpose.PASSWORD_RESET.value,
            token_hash=hash_opaque_token(generate_opaque_token()),
            expires_at=expires_at,
            consumed_at=consumed_at,
        )

    live = _token(now + timedelta(hours=1))
    db_session.add_all(
        [
            live,
            _token(now - timedelta(hours=1)),
            _token(now + timedelta(hours=1), consumed_at=now - timedelta(minutes=5)),
        ]
    )
    await db_session.commit()

    purged = await purge_expired_tokens(db_session, now=now)
    assert purged == 2

    remaining = (await db_session.execute(select(AuthToken.id))).scalars().all()
    assert remaining == [live.id]
    assert await db_session.get(User, user_id) is not None
