"""
SQLAlchemy models for the donation ledger.

- Donors: identity plus lifetime aggregates
- Campaigns: ledger aggregates plus a separate content entry
- Transactions: atomic money movements
- Subscriptions: recurring-donation agreements
- Settings: persisted plugin settings
"""
from donorledger.models.donor import Donor, DonorMeta
from donorledger.models.campaign import (
    Campaign,
    CampaignContent,
    CampaignMeta,
    CampaignStatus,
    compute_campaign_status,
)
from donorledger.models.transaction import (
    Transaction,
    TransactionMeta,
    TransactionStatus,
    TransactionType,
    REVERSAL_STATUSES,
    VALID_STATUS_TRANSITIONS,
)
from donorledger.models.subscription import (
    Subscription,
    SubscriptionMeta,
    SubscriptionStatus,
    VALID_SUBSCRIPTION_TRANSITIONS,
)
from donorledger.models.setting import Setting

__all__ = [
    "Donor",
    "DonorMeta",
    "Campaign",
    "CampaignContent",
    "CampaignMeta",
    "CampaignStatus",
    "compute_campaign_status",
    "Transaction",
    "TransactionMeta",
    "TransactionStatus",
    "TransactionType",
    "REVERSAL_STATUSES",
    "VALID_STATUS_TRANSITIONS",
    "Subscription",
    "SubscriptionMeta",
    "SubscriptionStatus",
    "VALID_SUBSCRIPTION_TRANSITIONS",
    "Setting",
]
