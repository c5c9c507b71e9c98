"""
Pydantic schemas for the ledger records and the REST API.
"""
from donorledger.schemas.common import CamelModel, HealthResponse, ErrorResponse
from donorledger.schemas.records import (
    LedgerRecord,
    DonorRecord,
    CampaignRecord,
    TransactionRecord,
    SubscriptionRecord,
)
from donorledger.schemas.settings import LedgerSettings, SettingsUpdate

__all__ = [
    "CamelModel",
    "HealthResponse",
    "ErrorResponse",
    "LedgerRecord",
    "DonorRecord",
    "CampaignRecord",
    "TransactionRecord",
    "SubscriptionRecord",
    "LedgerSettings",
    "SettingsUpdate",
]
