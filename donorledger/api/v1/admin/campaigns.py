"""
Admin campaign endpoints.
"""
from math import ceil
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status

from donorledger.core.deps import get_campaign_store
from donorledger.core.exceptions import NotFoundError
from donorledger.models.campaign import CampaignStatus
from donorledger.schemas.campaign import (
    BatchDeleteRequest,
    BatchDeleteResponse,
    CampaignCreate,
    CampaignUpdate,
)
from donorledger.schemas.records import CampaignRecord
from donorledger.stores.campaign import CampaignStore

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


def set_total_headers(response: Response, total: int, per_page: int) -> None:
    response.headers["X-Total"] = str(total)
    response.headers["X-TotalPages"] = str(ceil(total / per_page) if per_page else 0)


@router.get("", response_model=list[CampaignRecord])
async def list_campaigns(
    response: Response,
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100, alias="perPage"),
    orderby: Optional[str] = None,
    order: str = Query("desc", pattern="^(asc|desc)$"),
    search: Optional[str] = None,
    status_filter: Optional[CampaignStatus] = Query(None, alias="status"),
    campaigns: CampaignStore = Depends(get_campaign_store),
):
    """List campaigns. Totals are returned in the X-Total/X-TotalPages headers."""
    filters = {"status": status_filter} if status_filter else {}
    items = await campaigns.query(
        page=page, per_page=per_page, orderby=orderby, order=order,
        search=search, **filters
    )
    total = await campaigns.count(search=search, **filters)
    set_total_headers(response, total, per_page)
    return items


@router.post("", response_model=CampaignRecord, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    data: CampaignCreate,
    campaigns: CampaignStore = Depends(get_campaign_store),
):
    """Create a campaign and its content entry."""
    record = CampaignRecord(**data.model_dump())
    await campaigns.create(record)
    return await campaigns.get(record.id)


@router.get("/{campaign_id}", response_model=CampaignRecord)
async def get_campaign(
    campaign_id: int,
    campaigns: CampaignStore = Depends(get_campaign_store),
):
    return await campaigns.get(campaign_id)


@router.patch("/{campaign_id}", response_model=CampaignRecord)
async def update_campaign(
    campaign_id: int,
    data: CampaignUpdate,
    campaigns: CampaignStore = Depends(get_campaign_store),
):
    record = await campaigns.get(campaign_id)
    updated = record.model_copy(update=data.model_dump(exclude_unset=True))
    if not await campaigns.update(updated):
        raise NotFoundError(f"Campaign {campaign_id} not found")
    return await campaigns.get(campaign_id)


@router.delete("/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_campaign(
    campaign_id: int,
    campaigns: CampaignStore = Depends(get_campaign_store),
):
    if not await campaigns.delete(campaign_id):
        raise NotFoundError(f"Campaign {campaign_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/batch-delete", response_model=BatchDeleteResponse)
async def batch_delete_campaigns(
    data: BatchDeleteRequest,
    campaigns: CampaignStore = Depends(get_campaign_store),
):
    deleted, not_found = [], []
    for campaign_id in dict.fromkeys(data.ids):
        if await campaigns.delete(campaign_id):
            deleted.append(campaign_id)
        else:
            not_found.append(campaign_id)
    return BatchDeleteResponse(deleted=deleted, not_found=not_found)
