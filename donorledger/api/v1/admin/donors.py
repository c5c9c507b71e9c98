"""
Admin donor endpoints.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response

from donorledger.api.v1.admin.campaigns import set_total_headers
from donorledger.core.deps import get_donor_store
from donorledger.schemas.records import DonorRecord
from donorledger.stores.donor import DonorStore

router = APIRouter(prefix="/donors", tags=["donors"])


@router.get("", response_model=list[DonorRecord])
async def list_donors(
    response: Response,
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100, alias="perPage"),
    orderby: Optional[str] = None,
    order: str = Query("desc", pattern="^(asc|desc)$"),
    search: Optional[str] = None,
    donors: DonorStore = Depends(get_donor_store),
):
    items = await donors.query(
        page=page, per_page=per_page, orderby=orderby, order=order, search=search
    )
    total = await donors.count(search=search)
    set_total_headers(response, total, per_page)
    return items


@router.get("/{donor_id}", response_model=DonorRecord)
async def get_donor(
    donor_id: int,
    donors: DonorStore = Depends(get_donor_store),
):
    return await donors.get(donor_id)
