from fastapi import APIRouter

from tenanthub.api.audit import audit_router
from tenanthub.api.auth import auth_router
from tenanthub.api.users import users_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(audit_router)
