"""
v1 API: public donation endpoints plus the admin ledger endpoints.
"""
from fastapi import APIRouter

from donorledger.api.v1.donations import router as donations_router
from donorledger.api.v1.admin import admin_router

api_router = APIRouter()
api_router.include_router(donations_router)
api_router.include_router(admin_router)

__all__ = [
    "api_router",
]
