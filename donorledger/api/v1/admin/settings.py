"""
Admin settings endpoints. Secrets are masked in every response.
"""
from fastapi import APIRouter, Depends

from donorledger.core.deps import get_settings_service
from donorledger.schemas.settings import LedgerSettings, SettingsUpdate, masked
from donorledger.services.settings import SettingsService

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=LedgerSettings)
async def get_settings(
    settings_service: SettingsService = Depends(get_settings_service),
):
    return masked(await settings_service.get_all())


@router.patch("", response_model=LedgerSettings)
async def update_settings(
    data: SettingsUpdate,
    settings_service: SettingsService = Depends(get_settings_service),
):
    """Partial update; a masked secret sent back leaves the stored one unchanged."""
    updated = await settings_service.update(data.model_dump(exclude_unset=True))
    return masked(updated)
