"""
Transaction store.
"""
from typing import Optional

from donorledger.core.exceptions import ValidationError
from donorledger.models.transaction import (
    Transaction,
    TransactionMeta,
    TransactionStatus,
    VALID_STATUS_TRANSITIONS,
)
from donorledger.schemas.records import TransactionRecord
from donorledger.stores.base import RecordStore


class TransactionStore(RecordStore[TransactionRecord]):
    model = Transaction
    record_type = TransactionRecord
    meta_model = TransactionMeta
    name = "transaction"

    filterable = (
        "status", "type", "donor_id", "subscription_id", "parent_id",
        "campaign_id", "source_id", "currency", "payment_gateway", "is_anonymous",
    )
    searchable = ("gateway_transaction_id",)
    sortable = (
        "id", "created_at", "modified_at", "completed_at",
        "amount", "total_amount", "status",
    )
    readonly_fields = (
        "completed_amount", "completed_tip_amount", "completed_at", "refunded_at",
    )
    transitions = VALID_STATUS_TRANSITIONS

    async def create(self, record: TransactionRecord) -> int:
        """New transactions start pending; later statuses are reached through update()."""
        if TransactionStatus(record.status) != TransactionStatus.PENDING:
            raise ValidationError(
                f"New transactions must be pending, not {TransactionStatus(record.status).value}",
                code="invalid_status"
            )
        return await super().create(record)

    async def find_by_gateway_id(self, gateway_transaction_id: str) -> Optional[TransactionRecord]:
        result = await self.session.execute(
            self._select().where(
                self.table.c.gateway_transaction_id == gateway_transaction_id
            )
        )
        row = result.first()
        return self._to_record(row) if row is not None else None

    async def _status_changed(self, record, old, new) -> None:
        await self.aggregation.transaction_status_changed(record, old, new)
