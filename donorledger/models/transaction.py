"""
Transaction model - one atomic money movement.
"""
from typing import Optional
from datetime import datetime
from enum import Enum
from sqlalchemy import String, Integer, BigInteger, Boolean, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from donorledger.models.base import BaseModel, MetaModel


class TransactionStatus(str, Enum):
    """Lifecycle status of a transaction."""
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"
    FAILED = "failed"


class TransactionType(str, Enum):
    """Donation frequency a transaction was made under."""
    ONE_TIME = "one_time"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


# Statuses that undo a completed transaction's contribution to aggregates.
REVERSAL_STATUSES = (
    TransactionStatus.REFUNDED,
    TransactionStatus.CANCELLED,
    TransactionStatus.FAILED,
)

VALID_STATUS_TRANSITIONS = {
    TransactionStatus.PENDING: [
        TransactionStatus.COMPLETED,
        TransactionStatus.FAILED,
        TransactionStatus.CANCELLED,
    ],
    TransactionStatus.COMPLETED: list(REVERSAL_STATUSES),
    TransactionStatus.REFUNDED: [],  # Terminal state
    TransactionStatus.CANCELLED: [],  # Terminal state
    TransactionStatus.FAILED: [],  # Terminal state
}


class Transaction(BaseModel):
    """
    Transaction model.

    ``total_amount`` is always ``amount + fee_amount + tip_amount``.
    ``completed_amount`` and ``completed_tip_amount`` are snapshotted by the
    aggregation engine when the transaction reaches ``completed`` and are
    what a later reversal subtracts.
    """
    __tablename__ = "transactions"

    status: Mapped[TransactionStatus] = mapped_column(
        SQLEnum(
            TransactionStatus,
            name="transactionstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=TransactionStatus.PENDING,
        nullable=False,
        index=True
    )
    type: Mapped[TransactionType] = mapped_column(
        SQLEnum(
            TransactionType,
            name="transactiontype",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=TransactionType.ONE_TIME,
        nullable=False
    )

    # Relations
    donor_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("donors.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    subscription_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("subscriptions.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True
    )
    campaign_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("campaigns.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    source_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    # Amounts (minor currency units)
    amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    fee_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    tip_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="usd", nullable=False)

    # Snapshot taken on completion
    completed_amount: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    completed_tip_amount: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    # Gateway
    payment_gateway: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    gateway_transaction_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, unique=True
    )
    gateway_subscription_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    donor_ip: Mapped[str] = mapped_column(String(45), default="", nullable=False)

    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    refunded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Transaction {self.total_amount} {self.currency} ({self.status.value})>"


class TransactionMeta(MetaModel):
    __tablename__ = "transaction_meta"
    __owner_table__ = "transactions"
