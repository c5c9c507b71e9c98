"""
Donor store.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from donorledger.models.donor import Donor, DonorMeta
from donorledger.schemas.records import DonorRecord
from donorledger.stores.base import RecordStore

logger = logging.getLogger(__name__)


class DonorStore(RecordStore[DonorRecord]):
    model = Donor
    record_type = DonorRecord
    meta_model = DonorMeta
    name = "donor"

    filterable = ("email", "user_id")
    searchable = ("email", "first_name", "last_name")
    sortable = (
        "id", "created_at", "modified_at", "email", "first_name", "last_name",
        "total_donated", "transaction_count", "last_transaction_at",
    )
    readonly_fields = (
        "total_donated", "total_tip", "transaction_count",
        "first_transaction_at", "last_transaction_at",
    )

    async def find_by_email(self, email: str) -> Optional[DonorRecord]:
        result = await self.session.execute(
            self._select().where(self.table.c.email == email.strip().lower())
        )
        row = result.first()
        return self._to_record(row) if row is not None else None

    async def find_or_create_by_email(self, record: DonorRecord) -> DonorRecord:
        """
        Return the donor with ``record.email``, creating it when absent.

        A concurrent insert of the same email surfaces as a unique
        violation; the savepoint is rolled back and the winner is returned.
        """
        existing = await self.find_by_email(record.email)
        if existing is not None:
            return existing

        try:
            async with self.session.begin_nested():
                await self.create(record)
            return record
        except IntegrityError:
            logger.info("Donor %s created concurrently; reusing existing row", record.email)
            existing = await self.find_by_email(record.email)
            if existing is None:
                raise
            return existing
