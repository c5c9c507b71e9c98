"""
Admin transaction endpoints.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response

from donorledger.api.v1.admin.campaigns import set_total_headers
from donorledger.core.deps import get_transaction_store
from donorledger.core.exceptions import LedgerError
from donorledger.models.transaction import TransactionStatus
from donorledger.schemas.records import TransactionRecord
from donorledger.schemas.transaction import TransactionStatusUpdate
from donorledger.stores.transaction import TransactionStore

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=list[TransactionRecord])
async def list_transactions(
    response: Response,
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100, alias="perPage"),
    orderby: Optional[str] = None,
    order: str = Query("desc", pattern="^(asc|desc)$"),
    search: Optional[str] = None,
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    donor_id: Optional[int] = Query(None, alias="donorId"),
    campaign_id: Optional[int] = Query(None, alias="campaignId"),
    subscription_id: Optional[int] = Query(None, alias="subscriptionId"),
    transactions: TransactionStore = Depends(get_transaction_store),
):
    filters = {
        "status": status_filter,
        "donor_id": donor_id,
        "campaign_id": campaign_id,
        "subscription_id": subscription_id,
    }
    items = await transactions.query(
        page=page, per_page=per_page, orderby=orderby, order=order,
        search=search, **filters
    )
    total = await transactions.count(search=search, **filters)
    set_total_headers(response, total, per_page)
    return items


@router.get("/{transaction_id}", response_model=TransactionRecord)
async def get_transaction(
    transaction_id: int,
    transactions: TransactionStore = Depends(get_transaction_store),
):
    return await transactions.get(transaction_id)


@router.patch("/{transaction_id}", response_model=TransactionRecord)
async def update_transaction_status(
    transaction_id: int,
    data: TransactionStatusUpdate,
    transactions: TransactionStore = Depends(get_transaction_store),
):
    """
    Move a transaction to a new status.

    Refunds, cancellations and failures of completed transactions reverse
    their contribution to donor and campaign totals.
    """
    record = await transactions.get(transaction_id)
    record.status = data.status
    if not await transactions.update(record):
        raise LedgerError(
            f"Transaction {transaction_id} was modified concurrently; reload and retry.",
            code="status_conflict",
            status_code=409
        )
    return await transactions.get(transaction_id)
