"""
Base model with common fields.
"""
from datetime import datetime, timezone
from typing import Any, Optional
from sqlalchemy import DateTime, Integer, String, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, declared_attr
from donorledger.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Mixin for created/modified timestamps."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )
    modified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )


class BaseModel(Base, TimestampMixin):
    """Abstract base model with an integer id and timestamps."""
    __abstract__ = True

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )


class MetaModel(Base):
    """
    Abstract key/value annotation row attached to a ledger record.

    Subclasses set ``__tablename__`` and ``__owner_table__``; the owner
    foreign key is always named ``owner_id``. Keys are not unique per owner.
    """
    __abstract__ = True
    __owner_table__: str = ""

    meta_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    meta_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    meta_value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)

    @declared_attr
    def owner_id(cls) -> Mapped[int]:
        return mapped_column(
            Integer,
            ForeignKey(f"{cls.__owner_table__}.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )
