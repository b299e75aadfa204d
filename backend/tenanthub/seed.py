"""Seed script for development data.

Run against a local API:  python -m tenanthub.seed

Registers two companies through the public API, then adds an admin and a few
plain users to each. Safe to re-run: existing accounts are reported as
skipped and the script logs in with the known password instead.
"""

from __future__ import annotations

import asyncio
import sys

import httpx

BASE_URL = "http://localhost:8000"
PASSWORD = "DevPassw0rd!"

COMPANIES = [
    {
        "company_name": "Acme Corp",
        "owner": {"name": "Olivia Owner", "email": "olivia@acme.example.com"},
        "members": [
            {"name": "Adam Admin", "email": "adam@acme.example.com", "role": "ADMIN"},
            {"name": "Uma User", "email": "uma@acme.example.com", "role": "USER"},
            {"name": "Umar User", "email": "umar@acme.example.com"},
        ],
    },
    {
        "company_name": "Globex",
        "owner": {"name": "Greta Owner", "email": "greta@globex.example.com"},
        "members": [
            {"name": "Gus Admin", "email": "gus@globex.example.com", "role": "ADMIN"},
            {"name": "Gina User", "email": "gina@globex.example.com", "role": "USER"},
        ],
    },
]


async def _safe_post(
    client: httpx.AsyncClient,
    url: str,
    json: dict,
    label: str,
    headers: dict[str, str] | None = None,
) -> dict | None:
    """POST with 409-conflict tolerance so the script can be re-run."""
    resp = await client.post(url, json=json, headers=headers)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()["data"]
    if resp.status_code == 409:
        print(f"  [SKIP] {label} (already exists)")
        return None
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def _owner_token(client: httpx.AsyncClient, company: dict) -> str | None:
    """Register the company, or log its owner in if it already exists."""
    owner = company["owner"]
    registered = await _safe_post(
        client,
        f"{BASE_URL}/auth/register",
        {
            "companyName": company["company_name"],
            "name": owner["name"],
            "email": owner["email"],
            "password": PASSWORD,
        },
        f"Register {company['company_name']} (owner {owner['email']})",
    )
    if registered is not None:
        return registered["accessToken"]

    resp = await client.post(f"{BASE_URL}/auth/login", json={"email": owner["email"], "password": PASSWORD})
    if resp.status_code != 200:
        print(f"  [ERROR] Login as {owner['email']}: {resp.status_code}")
        return None
    return resp.json()["data"]["accessToken"]


async def seed_company(client: httpx.AsyncClient, company: dict) -> None:
    """Seed one company and its members."""
    print(f"\n--- Seeding {company['company_name']} ---")
    token = await _owner_token(client, company)
    if token is None:
        return

    headers = {"Authorization": f"Bearer {token}"}
    for member in company["members"]:
        payload = {"name": member["name"], "email": member["email"], "password": PASSWORD}
        if "role" in member:
            payload["role"] = member["role"]
        await _safe_post(
            client,
            f"{BASE_URL}/users",
            payload,
            f"User {member['email']} ({member.get('role', 'USER')})",
            headers=headers,
        )


async def main() -> None:
    print("=" * 60)
    print("  Tenant Hub - Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            print("Make sure the API is running (uvicorn tenanthub.main:app)")
            sys.exit(1)

        for company in COMPANIES:
            await seed_company(client, company)

    print(f"\nAll seeded accounts use the password {PASSWORD!r}")
    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
