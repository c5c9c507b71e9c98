"""
Aggregation engine.

Keeps donor and campaign running totals in step with transaction status
transitions. Every adjustment is a single UPDATE whose new value is
computed by the database from the current column value, so concurrent
completions never lose an increment. Decrements are floored at zero in
the same statement.
"""
import logging
from datetime import datetime
from typing import Callable, Optional, TYPE_CHECKING

from sqlalchemy import update, select, case, func
from sqlalchemy.ext.asyncio import AsyncSession

from donorledger.models.base import utcnow
from donorledger.models.donor import Donor
from donorledger.models.campaign import Campaign
from donorledger.models.transaction import Transaction, TransactionStatus, REVERSAL_STATUSES
from donorledger.models.subscription import Subscription, SubscriptionStatus
from donorledger.services.events import EventBus

if TYPE_CHECKING:
    from donorledger.schemas.records import TransactionRecord, SubscriptionRecord

logger = logging.getLogger(__name__)


def _floored(column, delta: int):
    """``column - delta`` clamped at zero, evaluated by the database."""
    return case((column > delta, column - delta), else_=0)


class AggregationEngine:
    """Applies the aggregate side effects of status transitions."""

    def __init__(
        self,
        session: AsyncSession,
        events: Optional[EventBus] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.session = session
        self.events = events or EventBus()
        self.clock = clock

    async def transaction_status_changed(
        self,
        record: "TransactionRecord",
        old: TransactionStatus,
        new: TransactionStatus
    ) -> None:
        old = TransactionStatus(old)
        new = TransactionStatus(new)

        if new == TransactionStatus.COMPLETED:
            await self._apply_completion(record)
        elif old == TransactionStatus.COMPLETED and new in REVERSAL_STATUSES:
            await self._apply_reversal(record, new)

        await self._emit("transaction", record, old, new)

    async def subscription_status_changed(
        self,
        record: "SubscriptionRecord",
        old: SubscriptionStatus,
        new: SubscriptionStatus
    ) -> None:
        old = SubscriptionStatus(old)
        new = SubscriptionStatus(new)
        now = self.clock()
        table = Subscription.__table__

        if new == SubscriptionStatus.CANCELLED:
            await self.session.execute(
                update(table).where(table.c.id == record.id).values(date_cancelled=now)
            )
            record.date_cancelled = now
        elif new == SubscriptionStatus.EXPIRED:
            await self.session.execute(
                update(table).where(table.c.id == record.id).values(date_expired=now)
            )
            record.date_expired = now

        await self._emit("subscription", record, old, new)

    async def _apply_completion(self, record: "TransactionRecord") -> None:
        now = self.clock()
        amount = record.amount
        tip = record.tip_amount
        tx = Transaction.__table__

        await self.session.execute(
            update(tx)
            .where(tx.c.id == record.id)
            .values(
                completed_amount=amount,
                completed_tip_amount=tip,
                completed_at=func.coalesce(tx.c.completed_at, now),
            )
        )
        record.completed_amount = amount
        record.completed_tip_amount = tip
        record.completed_at = record.completed_at or now

        if record.donor_id:
            donors = Donor.__table__
            await self.session.execute(
                update(donors)
                .where(donors.c.id == record.donor_id)
                .values(
                    total_donated=donors.c.total_donated + amount,
                    total_tip=donors.c.total_tip + tip,
                    transaction_count=donors.c.transaction_count + 1,
                    first_transaction_at=func.coalesce(donors.c.first_transaction_at, now),
                    last_transaction_at=now,
                    modified_at=now,
                )
            )

        if record.campaign_id:
            campaigns = Campaign.__table__
            await self.session.execute(
                update(campaigns)
                .where(campaigns.c.id == record.campaign_id)
                .values(
                    total_raised=campaigns.c.total_raised + amount,
                    transaction_count=campaigns.c.transaction_count + 1,
                    modified_at=now,
                )
            )

        logger.info(
            "Transaction %s completed: +%s (tip %s) donor=%s campaign=%s",
            record.id, amount, tip, record.donor_id, record.campaign_id
        )

    async def _apply_reversal(self, record: "TransactionRecord", new: TransactionStatus) -> None:
        now = self.clock()
        tx = Transaction.__table__

        if new == TransactionStatus.REFUNDED:
            await self.session.execute(
                update(tx).where(tx.c.id == record.id).values(refunded_at=now)
            )
            record.refunded_at = now

        # Reverse exactly what was added on completion.
        snapshot = (
            await self.session.execute(
                select(tx.c.completed_amount, tx.c.completed_tip_amount)
                .where(tx.c.id == record.id)
            )
        ).first()
        if snapshot is None or snapshot.completed_amount is None:
            logger.warning(
                "Transaction %s left completed without a completion snapshot; totals unchanged",
                record.id
            )
            return

        amount = snapshot.completed_amount
        tip = snapshot.completed_tip_amount or 0

        if record.donor_id:
            donors = Donor.__table__
            await self.session.execute(
                update(donors)
                .where(donors.c.id == record.donor_id)
                .values(
                    total_donated=_floored(donors.c.total_donated, amount),
                    total_tip=_floored(donors.c.total_tip, tip),
                    transaction_count=_floored(donors.c.transaction_count, 1),
                    modified_at=now,
                )
            )

        if record.campaign_id:
            campaigns = Campaign.__table__
            await self.session.execute(
                update(campaigns)
                .where(campaigns.c.id == record.campaign_id)
                .values(
                    total_raised=_floored(campaigns.c.total_raised, amount),
                    transaction_count=_floored(campaigns.c.transaction_count, 1),
                    modified_at=now,
                )
            )

        logger.info(
            "Transaction %s %s: -%s (tip %s) donor=%s campaign=%s",
            record.id, new.value, amount, tip, record.donor_id, record.campaign_id
        )

    async def _emit(self, entity: str, record, old, new) -> None:
        await self.events.emit(f"{entity}.status_changed", record=record, old=old, new=new)
        await self.events.emit(f"{entity}.status.{old.value}_to_{new.value}", record=record)
