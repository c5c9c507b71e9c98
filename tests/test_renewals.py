"""
Tests for subscription renewals.
"""
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import AsyncClient

from donorledger.core.exceptions import ValidationError
from donorledger.models.subscription import SubscriptionStatus
from donorledger.models.transaction import TransactionStatus, TransactionType
from donorledger.schemas.records import SubscriptionRecord, TransactionRecord
from donorledger.services.renewals import RenewalService, next_renewal


@pytest_asyncio.fixture
async def subscription(transaction_store, subscription_store, test_donor, test_campaign) -> SubscriptionRecord:
    """Active monthly subscription backed by a completed first payment."""
    initial = TransactionRecord(
        type=TransactionType.MONTHLY,
        donor_id=test_donor.id,
        campaign_id=test_campaign.id,
        amount=2000,
        tip_amount=300,
        gateway_transaction_id="pi_first",
    )
    await transaction_store.create(initial)
    initial.status = TransactionStatus.COMPLETED
    await transaction_store.update(initial)

    sub = SubscriptionRecord(
        status=SubscriptionStatus.ACTIVE,
        donor_id=test_donor.id,
        campaign_id=test_campaign.id,
        initial_transaction_id=initial.id,
        amount=2000,
        tip_amount=300,
        frequency=TransactionType.MONTHLY,
        payment_gateway="stripe",
        date_next_renewal=datetime(2026, 1, 31, 12, 0),
    )
    await subscription_store.create(sub)
    return sub


@pytest.fixture
def renewals(db_session, events, transaction_store, subscription_store) -> RenewalService:
    return RenewalService(db_session, events, transaction_store, subscription_store)


class TestNextRenewal:
    @pytest.mark.parametrize("frequency, expected", [
        (TransactionType.WEEKLY, datetime(2026, 2, 7)),
        (TransactionType.MONTHLY, datetime(2026, 2, 28)),
        (TransactionType.QUARTERLY, datetime(2026, 4, 30)),
        (TransactionType.ANNUALLY, datetime(2027, 1, 31)),
    ])
    def test_intervals(self, frequency, expected):
        assert next_renewal(datetime(2026, 1, 31), frequency) == expected

    def test_one_time_has_no_renewal(self):
        assert next_renewal(datetime(2026, 1, 31), TransactionType.ONE_TIME) is None

    def test_accepts_string_frequency(self):
        assert next_renewal(datetime(2026, 1, 1), "weekly") == datetime(2026, 1, 8)


class TestRecordRenewal:
    @pytest.mark.asyncio
    async def test_renewal_creates_completed_child(
        self, renewals, subscription, transaction_store, subscription_store,
        donor_store, campaign_store, test_donor, test_campaign
    ):
        renewal = await renewals.record_renewal(subscription.id, "pi_renew_1")

        stored = await transaction_store.get(renewal.id)
        assert stored.status == TransactionStatus.COMPLETED
        assert stored.parent_id == subscription.initial_transaction_id
        assert stored.subscription_id == subscription.id
        assert stored.type == TransactionType.MONTHLY
        assert stored.total_amount == 2300

        sub = await subscription_store.get(subscription.id)
        assert sub.renewal_count == 1
        assert sub.total_renewed == 2300
        assert sub.date_next_renewal.replace(tzinfo=None) == datetime(2026, 2, 28, 12, 0)

        donor = await donor_store.get(test_donor.id)
        assert (donor.total_donated, donor.total_tip, donor.transaction_count) == (4000, 600, 2)
        assert (await campaign_store.get(test_campaign.id)).total_raised == 4000

    @pytest.mark.asyncio
    async def test_renewal_is_idempotent(self, renewals, subscription, subscription_store, donor_store, test_donor):
        first = await renewals.record_renewal(subscription.id, "pi_renew_1")
        again = await renewals.record_renewal(subscription.id, "pi_renew_1")

        assert first.id == again.id
        assert (await subscription_store.get(subscription.id)).renewal_count == 1
        assert (await donor_store.get(test_donor.id)).transaction_count == 2

    @pytest.mark.asyncio
    async def test_paused_subscription_does_not_renew(self, renewals, subscription, subscription_store):
        subscription.status = SubscriptionStatus.PAUSED
        await subscription_store.update(subscription)

        with pytest.raises(ValidationError) as exc_info:
            await renewals.record_renewal(subscription.id, "pi_renew_1")
        assert exc_info.value.code == "subscription_inactive"

    @pytest.mark.asyncio
    async def test_renewal_emits_event(self, renewals, subscription, events):
        seen = []
        events.subscribe("subscription.renewed", lambda **payload: seen.append(payload))

        renewal = await renewals.record_renewal(subscription.id, "pi_renew_1")
        assert seen[0]["transaction"].id == renewal.id
        assert seen[0]["subscription"].id == subscription.id


class TestSubscriptionEndpoints:
    @pytest.mark.asyncio
    async def test_list_and_get(self, client: AsyncClient, admin_headers, subscription):
        response = await client.get(
            "/api/v1/subscriptions", params={"status": "active"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.headers["X-Total"] == "1"
        assert response.json()[0]["frequency"] == "monthly"

        response = await client.get(f"/api/v1/subscriptions/{subscription.id}", headers=admin_headers)
        assert response.json()["initialTransactionId"] == subscription.initial_transaction_id

    @pytest.mark.asyncio
    async def test_cancel_stamps_date(self, client: AsyncClient, admin_headers, subscription):
        response = await client.patch(
            f"/api/v1/subscriptions/{subscription.id}", json={"status": "cancelled"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["dateCancelled"] is not None

        response = await client.patch(
            f"/api/v1/subscriptions/{subscription.id}", json={"status": "active"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_transition"

    @pytest.mark.asyncio
    async def test_record_renewal(self, client: AsyncClient, admin_headers, subscription):
        response = await client.post(
            f"/api/v1/subscriptions/{subscription.id}/renewals",
            json={"gatewayTransactionId": "pi_renew_api"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["status"] == "completed"
        assert response.json()["subscriptionId"] == subscription.id

    @pytest.mark.asyncio
    async def test_renewal_of_missing_subscription(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/v1/subscriptions/9999/renewals",
            json={"gatewayTransactionId": "pi_renew_api"},
            headers=admin_headers,
        )
        assert response.status_code == 404
