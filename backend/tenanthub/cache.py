"""Advisory HTTP cache headers.

Nothing is stored server-side. Responses are either ``no-store`` or, for GET
requests in production, ``private`` with ``Vary: Authorization`` so that a
shared cache can never serve one caller's response to another.
"""

# ruff: noqa: TC002, TC003
from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Request, Response

from tenanthub.config import get_settings

NO_STORE = "no-store"


def cache_headers(method: str, environment: str, max_age: int) -> dict[str, str]:
    """Return the cache headers for a response to ``method`` in ``environment``."""
    if method.upper() != "GET" or environment != "production" or max_age <= 0:
        return {"Cache-Control": NO_STORE}
    return {
        "Cache-Control": f"private, max-age={max_age}",
        "Vary": "Authorization",
    }


def apply_cache_headers(request: Request, response: Response) -> None:
    """Stamp the headers chosen by :func:`cache_control` for this request onto ``response``.

    Requests whose route never opted in are left untouched.
    """
    max_age = getattr(request.state, "cache_max_age", None)
    if max_age is None:
        return
    for name, value in cache_headers(request.method, get_settings().environment, max_age).items():
        response.headers[name] = value


def cache_control(max_age: int | None = None) -> Callable[[Request, Response], Awaitable[None]]:
    """Build a dependency that stamps cache headers onto the outgoing response.

    ``max_age`` defaults to ``CACHE_MAX_AGE_SECONDS``; zero always means no-store.
    The choice is kept on ``request.state`` so the exception handlers can put
    the same headers on error responses. List it before any dependency that
    may raise.
    """

    async def _apply(request: Request, response: Response) -> None:
        request.state.cache_max_age = get_settings().cache_max_age_seconds if max_age is None else max_age
        apply_cache_headers(request, response)

    return _apply
