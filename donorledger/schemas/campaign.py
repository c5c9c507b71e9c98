"""
Pydantic schemas for the admin campaign endpoints.
"""
from typing import Optional
from datetime import date
from pydantic import Field, model_validator

from donorledger.schemas.common import CamelModel


class CampaignCreate(CamelModel):
    """Create a campaign together with its content entry."""
    title: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(default="", max_length=255)
    description: str = ""
    is_published: bool = True
    goal_amount: int = Field(default=0, ge=0)
    currency: str = Field(default="usd", max_length=3)
    date_start: Optional[date] = None
    date_end: Optional[date] = None

    @model_validator(mode="after")
    def check_window(self) -> "CampaignCreate":
        if self.date_start and self.date_end and self.date_end < self.date_start:
            raise ValueError("date_end must not be before date_start")
        return self


class CampaignUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    is_published: Optional[bool] = None
    goal_amount: Optional[int] = Field(default=None, ge=0)
    date_start: Optional[date] = None
    date_end: Optional[date] = None


class BatchDeleteRequest(CamelModel):
    ids: list[int] = Field(..., min_length=1, max_length=100)


class BatchDeleteResponse(CamelModel):
    deleted: list[int]
    not_found: list[int]
