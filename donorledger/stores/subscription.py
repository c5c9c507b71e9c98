"""
Subscription store.
"""
from typing import Optional

from donorledger.models.subscription import (
    Subscription,
    SubscriptionMeta,
    VALID_SUBSCRIPTION_TRANSITIONS,
)
from donorledger.schemas.records import SubscriptionRecord
from donorledger.stores.base import RecordStore


class SubscriptionStore(RecordStore[SubscriptionRecord]):
    model = Subscription
    record_type = SubscriptionRecord
    meta_model = SubscriptionMeta
    name = "subscription"

    filterable = (
        "status", "donor_id", "campaign_id", "source_id", "frequency",
        "payment_gateway", "initial_transaction_id",
    )
    searchable = ("gateway_subscription_id", "gateway_customer_id")
    sortable = (
        "id", "created_at", "modified_at", "amount", "total_amount",
        "date_next_renewal", "renewal_count",
    )
    readonly_fields = (
        "renewal_count", "total_renewed", "date_cancelled", "date_expired",
    )
    transitions = VALID_SUBSCRIPTION_TRANSITIONS

    async def find_by_gateway_id(self, gateway_subscription_id: str) -> Optional[SubscriptionRecord]:
        result = await self.session.execute(
            self._select().where(
                self.table.c.gateway_subscription_id == gateway_subscription_id
            )
        )
        row = result.first()
        return self._to_record(row) if row is not None else None

    async def _status_changed(self, record, old, new) -> None:
        await self.aggregation.subscription_status_changed(record, old, new)
