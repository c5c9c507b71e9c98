"""
FastAPI dependencies: sessions, event bus, gateway, stores and admin auth.
"""
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from donorledger.core.config import settings
from donorledger.core.exceptions import PermissionDeniedError
from donorledger.core.security import decode_token, has_capability
from donorledger.db.base import get_db
from donorledger.services.events import EventBus
from donorledger.services.gateway import GatewayClient
from donorledger.services.payments import PaymentService
from donorledger.services.renewals import RenewalService
from donorledger.services.settings import SettingsService
from donorledger.stores.campaign import CampaignStore
from donorledger.stores.donor import DonorStore
from donorledger.stores.subscription import SubscriptionStore
from donorledger.stores.transaction import TransactionStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.events


async def get_gateway_client() -> AsyncGenerator[GatewayClient, None]:
    async with GatewayClient() as client:
        yield client


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)
) -> dict:
    """Decode the bearer token and require the admin capability."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != "auth":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not has_capability(payload, settings.ADMIN_CAPABILITY):
        raise PermissionDeniedError("You do not have permission to manage donations.")
    return payload


def get_payment_service(
    db: AsyncSession = Depends(get_db),
    gateway: GatewayClient = Depends(get_gateway_client),
    events: EventBus = Depends(get_event_bus),
) -> PaymentService:
    return PaymentService(db, gateway, events)


def get_settings_service(
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> SettingsService:
    return SettingsService(db, events)


def get_campaign_store(
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> CampaignStore:
    return CampaignStore(db, events)


def get_transaction_store(
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> TransactionStore:
    return TransactionStore(db, events)


def get_donor_store(
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> DonorStore:
    return DonorStore(db, events)


def get_subscription_store(
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> SubscriptionStore:
    return SubscriptionStore(db, events)


def get_renewal_service(
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> RenewalService:
    return RenewalService(db, events)
