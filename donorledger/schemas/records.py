"""
Ledger records.

Plain pydantic records the record stores read and write. They carry
constructor-time defaults and shape validation only; lifecycle rules live
in the stores and the aggregation engine.
"""
from typing import Callable, Optional
from datetime import datetime, date
from pydantic import Field, PrivateAttr, field_validator, model_validator, computed_field

from donorledger.models.campaign import CampaignStatus, compute_campaign_status
from donorledger.models.transaction import TransactionStatus, TransactionType
from donorledger.models.subscription import SubscriptionStatus
from donorledger.schemas.common import CamelModel


class LedgerRecord(CamelModel):
    """Fields every stored record has."""
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None


class MoneyRecord(LedgerRecord):
    """Records that carry a currency."""
    currency: str = "usd"

    @field_validator("currency")
    @classmethod
    def lower_currency(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("currency must be a three-letter ISO code")
        return v


class DonorRecord(LedgerRecord):
    user_id: Optional[int] = None
    email: str
    first_name: str = ""
    last_name: str = ""
    name_prefix: str = ""
    phone: str = ""

    total_donated: int = Field(default=0, ge=0)
    total_tip: int = Field(default=0, ge=0)
    transaction_count: int = Field(default=0, ge=0)
    first_transaction_at: Optional[datetime] = None
    last_transaction_at: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.name_prefix, self.first_name, self.last_name) if p)


class CampaignRecord(MoneyRecord):
    """
    A campaign with its content entry flattened in.

    ``status`` is computed from the date window and publish flag at read
    time and is never written. The store that loads a record sets the
    clock it is computed against, the same one its status filter uses.
    """
    _today: Callable[[], date] = PrivateAttr(default_factory=lambda: date.today)

    content_id: Optional[int] = None
    title: str
    slug: str = ""
    description: str = ""
    is_published: bool = True

    goal_amount: int = Field(default=0, ge=0)
    total_raised: int = Field(default=0, ge=0)
    transaction_count: int = Field(default=0, ge=0)
    date_start: Optional[date] = None
    date_end: Optional[date] = None

    @computed_field
    @property
    def status(self) -> CampaignStatus:
        return compute_campaign_status(
            self.date_start, self.date_end, self._today(), self.is_published
        )

    @computed_field
    @property
    def progress(self) -> float:
        """Percent of the goal raised, capped at 100."""
        if self.goal_amount <= 0:
            return 0.0
        return round(min(100.0, self.total_raised * 100 / self.goal_amount), 2)


class TransactionRecord(MoneyRecord):
    """
    One money movement.

    ``total_amount`` defaults to ``amount + fee_amount + tip_amount``;
    an explicit total that disagrees is rejected.
    """
    status: TransactionStatus = TransactionStatus.PENDING
    type: TransactionType = TransactionType.ONE_TIME

    donor_id: Optional[int] = None
    subscription_id: Optional[int] = None
    parent_id: Optional[int] = None
    campaign_id: Optional[int] = None
    source_id: Optional[int] = None

    amount: int = Field(default=0, ge=0)
    fee_amount: int = Field(default=0, ge=0)
    tip_amount: int = Field(default=0, ge=0)
    total_amount: Optional[int] = Field(default=None, ge=0)

    completed_amount: Optional[int] = None
    completed_tip_amount: Optional[int] = None

    payment_gateway: str = ""
    gateway_transaction_id: Optional[str] = None
    gateway_subscription_id: Optional[str] = None
    is_anonymous: bool = False
    donor_ip: str = ""

    completed_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_total(self) -> "TransactionRecord":
        expected = self.amount + self.fee_amount + self.tip_amount
        if self.total_amount is None:
            self.total_amount = expected
        elif self.total_amount != expected:
            raise ValueError(
                f"total_amount {self.total_amount} != amount + fee_amount + tip_amount ({expected})"
            )
        return self


class SubscriptionRecord(MoneyRecord):
    status: SubscriptionStatus = SubscriptionStatus.PENDING

    donor_id: Optional[int] = None
    campaign_id: Optional[int] = None
    source_id: Optional[int] = None
    initial_transaction_id: Optional[int] = None

    amount: int = Field(default=0, ge=0)
    fee_amount: int = Field(default=0, ge=0)
    tip_amount: int = Field(default=0, ge=0)
    total_amount: Optional[int] = Field(default=None, ge=0)
    frequency: TransactionType = TransactionType.MONTHLY

    payment_gateway: str = ""
    gateway_subscription_id: Optional[str] = None
    gateway_customer_id: Optional[str] = None

    renewal_count: int = Field(default=0, ge=0)
    total_renewed: int = Field(default=0, ge=0)

    date_next_renewal: Optional[datetime] = None
    date_cancelled: Optional[datetime] = None
    date_expired: Optional[datetime] = None

    @field_validator("frequency")
    @classmethod
    def recurring_only(cls, v: TransactionType) -> TransactionType:
        if v == TransactionType.ONE_TIME:
            raise ValueError("a subscription needs a recurring frequency")
        return v

    @model_validator(mode="after")
    def fill_total(self) -> "SubscriptionRecord":
        expected = self.amount + self.fee_amount + self.tip_amount
        if self.total_amount is None:
            self.total_amount = expected
        elif self.total_amount != expected:
            raise ValueError(
                f"total_amount {self.total_amount} != amount + fee_amount + tip_amount ({expected})"
            )
        return self
