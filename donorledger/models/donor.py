"""
Donor model - identity plus lifetime aggregates.
"""
from typing import Optional
from datetime import datetime
from sqlalchemy import String, Integer, BigInteger, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from donorledger.models.base import BaseModel, MetaModel


class Donor(BaseModel):
    """
    Donor model.

    A person identified by email. ``total_donated``, ``total_tip``,
    ``transaction_count`` and the first/last transaction dates are
    maintained by the aggregation engine only.
    """
    __tablename__ = "donors"

    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    name_prefix: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    phone: Mapped[str] = mapped_column(String(50), default="", nullable=False)

    # Aggregates
    total_donated: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_tip: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    transaction_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    first_transaction_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_transaction_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Donor {self.email}>"


class DonorMeta(MetaModel):
    __tablename__ = "donor_meta"
    __owner_table__ = "donors"
