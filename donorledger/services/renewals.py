"""
Subscription renewals.

A renewal is a child transaction of the subscription's initial
transaction, completed through the transaction store so the donor and
campaign totals move with it.
"""
import logging
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from donorledger.core.exceptions import ValidationError
from donorledger.models.base import utcnow
from donorledger.models.subscription import Subscription, SubscriptionStatus
from donorledger.models.transaction import TransactionStatus, TransactionType
from donorledger.schemas.records import TransactionRecord
from donorledger.services.events import EventBus
from donorledger.stores.subscription import SubscriptionStore
from donorledger.stores.transaction import TransactionStore

logger = logging.getLogger(__name__)

RENEWAL_INTERVALS = {
    TransactionType.WEEKLY: relativedelta(weeks=1),
    TransactionType.MONTHLY: relativedelta(months=1),
    TransactionType.QUARTERLY: relativedelta(months=3),
    TransactionType.ANNUALLY: relativedelta(years=1),
}


def next_renewal(start: datetime, frequency) -> Optional[datetime]:
    """The renewal date one period after ``start``; None for one-time gifts."""
    interval = RENEWAL_INTERVALS.get(TransactionType(frequency))
    if interval is None:
        return None
    return start + interval


class RenewalService:
    def __init__(
        self,
        session: AsyncSession,
        events: Optional[EventBus] = None,
        transactions: Optional[TransactionStore] = None,
        subscriptions: Optional[SubscriptionStore] = None
    ):
        self.session = session
        self.events = events or EventBus()
        self.transactions = transactions or TransactionStore(session, self.events)
        self.subscriptions = subscriptions or SubscriptionStore(session, self.events)

    async def record_renewal(self, subscription_id: int, gateway_transaction_id: str) -> TransactionRecord:
        """
        Record one charged renewal period.

        Idempotent on ``gateway_transaction_id``: a renewal already recorded
        for that id is returned unchanged.
        """
        existing = await self.transactions.find_by_gateway_id(gateway_transaction_id)
        if existing is not None:
            logger.warning(
                "Renewal %s already recorded as transaction %s",
                gateway_transaction_id, existing.id
            )
            return existing

        subscription = await self.subscriptions.get(subscription_id)
        if subscription.status != SubscriptionStatus.ACTIVE:
            raise ValidationError(
                f"Subscription {subscription_id} is {subscription.status.value}; only active subscriptions renew",
                code="subscription_inactive"
            )

        renewal = TransactionRecord(
            type=subscription.frequency,
            donor_id=subscription.donor_id,
            subscription_id=subscription.id,
            parent_id=subscription.initial_transaction_id,
            campaign_id=subscription.campaign_id,
            source_id=subscription.source_id,
            amount=subscription.amount,
            fee_amount=subscription.fee_amount,
            tip_amount=subscription.tip_amount,
            currency=subscription.currency,
            payment_gateway=subscription.payment_gateway,
            gateway_transaction_id=gateway_transaction_id,
            gateway_subscription_id=subscription.gateway_subscription_id,
        )
        try:
            async with self.session.begin_nested():
                await self.transactions.create(renewal)
        except IntegrityError:
            existing = await self.transactions.find_by_gateway_id(gateway_transaction_id)
            if existing is None:
                raise
            return existing

        renewal.status = TransactionStatus.COMPLETED
        await self.transactions.update(renewal)

        now = utcnow()
        base = subscription.date_next_renewal or now
        table = Subscription.__table__
        await self.session.execute(
            update(table)
            .where(table.c.id == subscription.id)
            .values(
                renewal_count=table.c.renewal_count + 1,
                total_renewed=table.c.total_renewed + renewal.total_amount,
                date_next_renewal=next_renewal(base, subscription.frequency),
                modified_at=now,
            )
        )

        logger.info(
            "Subscription %s renewed: transaction %s for %s",
            subscription.id, renewal.id, renewal.total_amount
        )
        await self.events.emit("subscription.renewed", subscription=subscription, transaction=renewal)
        return renewal
