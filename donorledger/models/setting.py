"""
Setting model - persisted plugin settings.
"""
from typing import Optional
from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column
from donorledger.models.base import BaseModel


class Setting(BaseModel):
    """
    A named JSON settings document.

    The ledger stores its whole typed settings struct under a single key.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    value: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<Setting {self.key}>"
