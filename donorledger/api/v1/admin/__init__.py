"""
Admin module - ledger management behind the manage capability.

Routes: /api/v1/campaigns, /api/v1/transactions, /api/v1/subscriptions,
/api/v1/donors, /api/v1/settings, /api/v1/stripe
"""
from fastapi import APIRouter, Depends

from donorledger.core.deps import get_current_admin
from donorledger.schemas.common import ErrorResponse
from donorledger.api.v1.admin.campaigns import router as campaigns_router
from donorledger.api.v1.admin.transactions import router as transactions_router
from donorledger.api.v1.admin.subscriptions import router as subscriptions_router
from donorledger.api.v1.admin.donors import router as donors_router
from donorledger.api.v1.admin.settings import router as settings_router
from donorledger.api.v1.admin.stripe import router as stripe_router

admin_router = APIRouter(
    dependencies=[Depends(get_current_admin)],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)

admin_router.include_router(campaigns_router)
admin_router.include_router(transactions_router)
admin_router.include_router(subscriptions_router)
admin_router.include_router(donors_router)
admin_router.include_router(settings_router)
admin_router.include_router(stripe_router)

__all__ = [
    "admin_router",
]
