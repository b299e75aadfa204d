# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from tenanthub.api.deps import AdminDep, OwnerDep, SelfOrAdminDep, get_identity
from tenanthub.cache import cache_control
from tenanthub.db import SessionDep
from tenanthub.exceptions import ForbiddenError
from tenanthub.schemas.common import ApiResponse, ok
from tenanthub.schemas.user import CreateUserRequest, UpdateUserRequest, UserResponse
from tenanthub.services import user as user_service

users_router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(cache_control()), Depends(get_identity)],
)


@users_router.get("", response_model=ApiResponse[list[UserResponse]])
async def list_users(
    session: SessionDep,
    identity: AdminDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> ApiResponse[list[UserResponse]]:
    """List users in the caller's company (admin or owner)."""
    users = await user_service.list_users(session, identity.company_id, page, limit)
    return ok("Users retrieved successfully", users)


@users_router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(
    user_id: uuid.UUID,
    session: SessionDep,
    identity: SelfOrAdminDep,
) -> ApiResponse[UserResponse]:
    """Get a user. Plain users may only fetch themselves."""
    user = await user_service.get_user(session, identity.company_id, user_id)
    return ok("User retrieved successfully", user)


@users_router.post("", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: CreateUserRequest,
    session: SessionDep,
    identity: AdminDep,
) -> ApiResponse[UserResponse]:
    """Add a user to the caller's company (admin or owner)."""
    user = await user_service.create_user(session, identity, payload)
    return ok("User created successfully", user)


@users_router.patch("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    user_id: uuid.UUID,
    payload: UpdateUserRequest,
    session: SessionDep,
    identity: SelfOrAdminDep,
) -> ApiResponse[UserResponse]:
    """Update a user. Anyone may edit their own profile but not their own role."""
    if user_id == identity.user_id and payload.role is not None:
        raise ForbiddenError("Forbidden - You cannot change your own role")
    user = await user_service.update_user(session, identity, user_id, payload)
    return ok("User updated successfully", user)


@users_router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_user(
    user_id: uuid.UUID,
    session: SessionDep,
    identity: OwnerDep,
) -> None:
    """Delete a user from the caller's company (owner only)."""
    await user_service.delete_user(session, identity, user_id)
