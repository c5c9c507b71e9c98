"""
Campaign models.

Financial aggregates live in ``campaigns``; display fields live in
``campaign_contents`` so the money ledger can be audited or migrated
independently of editorial content.
"""
from typing import Optional
from datetime import date
from enum import Enum
from sqlalchemy import String, Text, Integer, BigInteger, Boolean, Date, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from donorledger.models.base import BaseModel, MetaModel


class CampaignStatus(str, Enum):
    """Computed status of a campaign. Never stored."""
    DRAFT = "draft"
    ACTIVE = "active"
    SCHEDULED = "scheduled"
    ENDED = "ended"


def compute_campaign_status(
    date_start: Optional[date],
    date_end: Optional[date],
    today: date,
    is_published: bool = True
) -> CampaignStatus:
    """Derive a campaign's status from its date window."""
    if not is_published:
        return CampaignStatus.DRAFT
    if date_end and date_end < today:
        return CampaignStatus.ENDED
    if date_start and date_start > today:
        return CampaignStatus.SCHEDULED
    return CampaignStatus.ACTIVE


class CampaignContent(BaseModel):
    """Editorial content entry a campaign is created alongside."""
    __tablename__ = "campaign_contents"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<CampaignContent {self.slug}>"


class Campaign(BaseModel):
    """
    Campaign ledger row.

    ``total_raised`` and ``transaction_count`` mirror completed transactions
    referencing this campaign and are maintained by the aggregation engine.
    """
    __tablename__ = "campaigns"

    content_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("campaign_contents.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    goal_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_raised: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    transaction_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="usd", nullable=False)
    date_start: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    date_end: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Campaign {self.id} raised={self.total_raised}>"


class CampaignMeta(MetaModel):
    __tablename__ = "campaign_meta"
    __owner_table__ = "campaigns"
