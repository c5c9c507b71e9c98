"""
Admin subscription endpoints.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status

from donorledger.api.v1.admin.campaigns import set_total_headers
from donorledger.core.deps import get_renewal_service, get_subscription_store
from donorledger.core.exceptions import LedgerError
from donorledger.models.subscription import SubscriptionStatus
from donorledger.schemas.records import SubscriptionRecord, TransactionRecord
from donorledger.schemas.subscription import RenewalCreate, SubscriptionStatusUpdate
from donorledger.services.renewals import RenewalService
from donorledger.stores.subscription import SubscriptionStore

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get("", response_model=list[SubscriptionRecord])
async def list_subscriptions(
    response: Response,
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100, alias="perPage"),
    orderby: Optional[str] = None,
    order: str = Query("desc", pattern="^(asc|desc)$"),
    search: Optional[str] = None,
    status_filter: Optional[SubscriptionStatus] = Query(None, alias="status"),
    donor_id: Optional[int] = Query(None, alias="donorId"),
    campaign_id: Optional[int] = Query(None, alias="campaignId"),
    subscriptions: SubscriptionStore = Depends(get_subscription_store),
):
    filters = {"status": status_filter, "donor_id": donor_id, "campaign_id": campaign_id}
    items = await subscriptions.query(
        page=page, per_page=per_page, orderby=orderby, order=order,
        search=search, **filters
    )
    total = await subscriptions.count(search=search, **filters)
    set_total_headers(response, total, per_page)
    return items


@router.get("/{subscription_id}", response_model=SubscriptionRecord)
async def get_subscription(
    subscription_id: int,
    subscriptions: SubscriptionStore = Depends(get_subscription_store),
):
    return await subscriptions.get(subscription_id)


@router.patch("/{subscription_id}", response_model=SubscriptionRecord)
async def update_subscription_status(
    subscription_id: int,
    data: SubscriptionStatusUpdate,
    subscriptions: SubscriptionStore = Depends(get_subscription_store),
):
    """Pause, resume, cancel or expire a subscription."""
    record = await subscriptions.get(subscription_id)
    record.status = data.status
    if not await subscriptions.update(record):
        raise LedgerError(
            f"Subscription {subscription_id} was modified concurrently; reload and retry.",
            code="status_conflict",
            status_code=409
        )
    return await subscriptions.get(subscription_id)


@router.post(
    "/{subscription_id}/renewals",
    response_model=TransactionRecord,
    status_code=status.HTTP_201_CREATED,
)
async def record_renewal(
    subscription_id: int,
    data: RenewalCreate,
    renewals: RenewalService = Depends(get_renewal_service),
):
    """Record a renewal period the gateway has charged. Repeats are idempotent."""
    return await renewals.record_renewal(subscription_id, data.gateway_transaction_id)
