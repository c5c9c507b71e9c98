"""
Pydantic schemas for the public donation endpoints.
"""
from typing import Optional
from decimal import Decimal
from pydantic import Field

from donorledger.models.transaction import TransactionType
from donorledger.schemas.common import CamelModel


class PaymentIntentRequest(CamelModel):
    """Create a payment intent for a donation about to be charged."""
    donation_amount: int = Field(..., ge=0)
    tip_amount: int = Field(default=0, ge=0)
    # Donor-paid fee recovery, charged on the donation side
    fee_amount: int = Field(default=0, ge=0)


class PaymentIntentResponse(CamelModel):
    """Client secret plus the amounts after tip-fee absorption."""
    client_secret: str
    connected_account_id: str
    donation_amount: int
    tip_amount: int
    fee_amount: int = 0


class PaymentConfigResponse(CamelModel):
    connected_account_id: str = ""


class QuoteRequest(CamelModel):
    amount: int = Field(..., ge=0)
    tip_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    cover_fees: bool = False


class QuoteResponse(CamelModel):
    amount: int
    fee_amount: int
    tip_amount: int
    total_amount: int


class ConfirmDonationRequest(CamelModel):
    """Record a donation the gateway has already charged."""
    gateway_transaction_id: str = Field(..., max_length=255)
    donor_email: str = Field(..., max_length=255)
    donor_first_name: str = Field(default="", max_length=100)
    donor_last_name: str = Field(default="", max_length=100)

    donation_amount: int = Field(..., ge=0)
    fee_amount: int = Field(default=0, ge=0)
    tip_amount: int = Field(default=0, ge=0)
    currency: str = Field(default="usd", max_length=3)
    frequency: TransactionType = TransactionType.ONE_TIME

    campaign_id: Optional[int] = None
    source_id: Optional[int] = None
    is_anonymous: bool = False


class ConfirmDonationResponse(CamelModel):
    success: bool = True
    transaction_id: int
