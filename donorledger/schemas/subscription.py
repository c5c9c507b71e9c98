"""
Pydantic schemas for the admin subscription endpoints.
"""
from pydantic import Field

from donorledger.models.subscription import SubscriptionStatus
from donorledger.schemas.common import CamelModel


class SubscriptionStatusUpdate(CamelModel):
    status: SubscriptionStatus


class RenewalCreate(CamelModel):
    """A renewal period the gateway has charged."""
    gateway_transaction_id: str = Field(..., min_length=1, max_length=255)
