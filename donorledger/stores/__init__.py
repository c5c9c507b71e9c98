"""
Record stores for the ledger entities.
"""
from donorledger.stores.base import RecordStore
from donorledger.stores.meta import MetaStore
from donorledger.stores.donor import DonorStore
from donorledger.stores.campaign import CampaignStore
from donorledger.stores.transaction import TransactionStore
from donorledger.stores.subscription import SubscriptionStore

__all__ = [
    "RecordStore",
    "MetaStore",
    "DonorStore",
    "CampaignStore",
    "TransactionStore",
    "SubscriptionStore",
]
