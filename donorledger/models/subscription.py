"""
Subscription model - a recurring-donation agreement.
"""
from typing import Optional
from datetime import datetime
from enum import Enum
from sqlalchemy import String, Integer, BigInteger, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from donorledger.models.base import BaseModel, MetaModel


class SubscriptionStatus(str, Enum):
    """Lifecycle status of a subscription."""
    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    FAILED = "failed"


VALID_SUBSCRIPTION_TRANSITIONS = {
    SubscriptionStatus.PENDING: [
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.CANCELLED,
        SubscriptionStatus.FAILED,
    ],
    SubscriptionStatus.ACTIVE: [
        SubscriptionStatus.PAUSED,
        SubscriptionStatus.CANCELLED,
        SubscriptionStatus.EXPIRED,
        SubscriptionStatus.FAILED,
    ],
    SubscriptionStatus.PAUSED: [
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.CANCELLED,
        SubscriptionStatus.EXPIRED,
    ],
    SubscriptionStatus.CANCELLED: [],  # Terminal state
    SubscriptionStatus.EXPIRED: [],  # Terminal state
    SubscriptionStatus.FAILED: [],  # Terminal state
}


class Subscription(BaseModel):
    """
    Subscription model.

    Mirrors a transaction's financial fields. ``renewal_count`` and
    ``total_renewed`` are advanced atomically by the renewal service.
    """
    __tablename__ = "subscriptions"

    status: Mapped[SubscriptionStatus] = mapped_column(
        SQLEnum(
            SubscriptionStatus,
            name="subscriptionstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=SubscriptionStatus.PENDING,
        nullable=False,
        index=True
    )

    donor_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("donors.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    campaign_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("campaigns.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    source_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # Plain column; transactions already reference subscriptions.
    initial_transaction_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    fee_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    tip_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="usd", nullable=False)
    frequency: Mapped[str] = mapped_column(String(20), default="monthly", nullable=False)

    payment_gateway: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    gateway_subscription_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    gateway_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    renewal_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_renewed: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    date_next_renewal: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    date_cancelled: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    date_expired: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Subscription {self.total_amount} {self.currency}/{self.frequency} ({self.status.value})>"


class SubscriptionMeta(MetaModel):
    __tablename__ = "subscription_meta"
    __owner_table__ = "subscriptions"
