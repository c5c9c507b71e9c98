"""
Tests for the generic record store: CRUD, metadata and queries.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from donorledger.core.exceptions import NotFoundError, ValidationError
from donorledger.models.campaign import CampaignStatus
from donorledger.models.transaction import TransactionStatus
from donorledger.schemas.records import CampaignRecord, DonorRecord, TransactionRecord
from donorledger.stores.campaign import CampaignStore
from donorledger.stores.donor import DonorStore
from donorledger.stores.transaction import TransactionStore


class TestCrud:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self, donor_store: DonorStore, events):
        created = []
        events.subscribe("donor.created", lambda record: created.append(record.id))

        donor = DonorRecord(email="new@example.org", first_name="New")
        donor_id = await donor_store.create(donor)

        assert donor_id == donor.id
        assert donor.created_at is not None
        assert donor.modified_at is not None
        assert created == [donor_id]

    @pytest.mark.asyncio
    async def test_read_and_get(self, donor_store: DonorStore, test_donor):
        found = await donor_store.read(test_donor.id)
        assert found.email == "jane@example.com"
        assert found.first_name == "Jane"

        assert await donor_store.read(99999) is None
        with pytest.raises(NotFoundError):
            await donor_store.get(99999)

    @pytest.mark.asyncio
    async def test_update_missing_record_returns_false(self, donor_store: DonorStore):
        ghost = DonorRecord(id=4242, email="ghost@example.org")
        assert await donor_store.update(ghost) is False
        assert await donor_store.update(DonorRecord(email="unsaved@example.org")) is False

    @pytest.mark.asyncio
    async def test_update_writes_fields_but_never_aggregates(self, donor_store: DonorStore, test_donor):
        test_donor.phone = "555-0100"
        test_donor.total_donated = 999999
        assert await donor_store.update(test_donor) is True

        stored = await donor_store.get(test_donor.id)
        assert stored.phone == "555-0100"
        assert stored.total_donated == 0

    @pytest.mark.asyncio
    async def test_delete_removes_meta_first(self, donor_store: DonorStore, test_donor):
        await donor_store.add_meta(test_donor.id, "source", "gala")
        assert await donor_store.delete(test_donor.id) is True
        assert await donor_store.read(test_donor.id) is None
        assert await donor_store.get_meta(test_donor.id, "source") is None
        assert await donor_store.delete(test_donor.id) is False


class TestMeta:
    @pytest.mark.asyncio
    async def test_meta_single_and_multiple(self, transaction_store: TransactionStore):
        tx = TransactionRecord(amount=100)
        await transaction_store.create(tx)

        first = await transaction_store.add_meta(tx.id, "note", {"text": "first"})
        second = await transaction_store.add_meta(tx.id, "note", {"text": "second"})
        assert first != second

        assert await transaction_store.get_meta(tx.id, "note") == {"text": "first"}
        assert await transaction_store.get_meta(tx.id, "note", single=False) == [
            {"text": "first"}, {"text": "second"}
        ]
        assert await transaction_store.get_meta(tx.id, "missing") is None
        assert await transaction_store.get_meta(tx.id, "missing", single=False) == []

    @pytest.mark.asyncio
    async def test_update_meta_upserts(self, donor_store: DonorStore, test_donor):
        inserted = await donor_store.update_meta(test_donor.id, "tier", "gold")
        assert inserted is not None
        assert await donor_store.update_meta(test_donor.id, "tier", "platinum") is None
        assert await donor_store.get_meta(test_donor.id, "tier") == "platinum"

        assert await donor_store.delete_meta(test_donor.id, "tier") is True
        assert await donor_store.delete_meta(test_donor.id, "tier") is False


class TestQuery:
    @pytest.mark.asyncio
    async def test_filters_pagination_and_order(self, transaction_store: TransactionStore, test_donor):
        for amount in (100, 200, 300, 400, 500):
            await transaction_store.create(TransactionRecord(amount=amount, donor_id=test_donor.id))
        await transaction_store.create(TransactionRecord(amount=999))

        page = await transaction_store.query(
            per_page=2, page=1, orderby="amount", order="asc", donor_id=test_donor.id
        )
        assert [t.amount for t in page] == [100, 200]

        page3 = await transaction_store.query(
            per_page=2, page=3, orderby="amount", order="asc", donor_id=test_donor.id
        )
        assert [t.amount for t in page3] == [500]

        assert await transaction_store.count(donor_id=test_donor.id) == 5
        assert await transaction_store.count() == 6

    @pytest.mark.asyncio
    async def test_unknown_filter_rejected(self, transaction_store: TransactionStore):
        with pytest.raises(ValidationError):
            await transaction_store.query(donor_email="x@y.org")

    @pytest.mark.asyncio
    async def test_unknown_orderby_falls_back(self, transaction_store: TransactionStore):
        await transaction_store.create(TransactionRecord(amount=1))
        result = await transaction_store.query(orderby="amount; DROP TABLE transactions")
        assert len(result) == 1

    @pytest.mark.asyncio
    async def test_per_page_is_clamped(self, transaction_store: TransactionStore):
        for i in range(3):
            await transaction_store.create(TransactionRecord(amount=i + 1))
        assert len(await transaction_store.query(per_page=0)) == 1
        assert len(await transaction_store.query(per_page=1000)) == 3

    @pytest.mark.asyncio
    async def test_status_filter_and_date_range(self, transaction_store: TransactionStore):
        await transaction_store.create(TransactionRecord(amount=10))
        tx = TransactionRecord(amount=20)
        await transaction_store.create(tx)
        tx.status = TransactionStatus.COMPLETED
        await transaction_store.update(tx)

        completed = await transaction_store.query(status="completed")
        assert [t.amount for t in completed] == [20]

        future = datetime.now(timezone.utc) + timedelta(days=1)
        assert await transaction_store.count(date_after=future) == 0
        assert await transaction_store.count(date_before=future) == 2

    @pytest.mark.asyncio
    async def test_donor_search(self, donor_store: DonorStore, test_donor):
        await donor_store.create(DonorRecord(email="bob@example.org", first_name="Bob"))
        found = await donor_store.query(search="smi")
        assert [d.id for d in found] == [test_donor.id]


class TestTransitions:
    @pytest.mark.asyncio
    async def test_illegal_transition_raises(self, transaction_store: TransactionStore):
        tx = TransactionRecord(amount=100)
        await transaction_store.create(tx)
        tx.status = TransactionStatus.REFUNDED
        with pytest.raises(ValidationError) as exc:
            await transaction_store.update(tx)
        assert exc.value.code == "invalid_transition"

    @pytest.mark.asyncio
    async def test_terminal_states_are_final(self, transaction_store: TransactionStore):
        tx = TransactionRecord(amount=100)
        await transaction_store.create(tx)
        tx.status = TransactionStatus.FAILED
        assert await transaction_store.update(tx) is True
        tx.status = TransactionStatus.COMPLETED
        with pytest.raises(ValidationError):
            await transaction_store.update(tx)

    @pytest.mark.asyncio
    async def test_find_by_gateway_id(self, transaction_store: TransactionStore):
        tx = TransactionRecord(amount=100, gateway_transaction_id="pi_abc")
        await transaction_store.create(tx)
        assert (await transaction_store.find_by_gateway_id("pi_abc")).id == tx.id
        assert await transaction_store.find_by_gateway_id("pi_none") is None

    @pytest.mark.asyncio
    async def test_create_requires_pending(self, transaction_store: TransactionStore, test_donor, donor_store):
        tx = TransactionRecord(amount=100, donor_id=test_donor.id, status=TransactionStatus.COMPLETED)
        with pytest.raises(ValidationError) as exc:
            await transaction_store.create(tx)
        assert exc.value.code == "invalid_status"
        assert tx.id is None
        assert await transaction_store.count() == 0
        assert (await donor_store.get(test_donor.id)).total_donated == 0


class TestDonorStore:
    @pytest.mark.asyncio
    async def test_find_by_email_is_case_insensitive(self, donor_store: DonorStore, test_donor):
        assert (await donor_store.find_by_email(" JANE@example.COM ")).id == test_donor.id

    @pytest.mark.asyncio
    async def test_find_or_create_reuses_existing(self, donor_store: DonorStore, test_donor):
        again = await donor_store.find_or_create_by_email(DonorRecord(email="jane@example.com"))
        assert again.id == test_donor.id
        assert await donor_store.count() == 1

        fresh = await donor_store.find_or_create_by_email(DonorRecord(email="sam@example.org"))
        assert fresh.id is not None
        assert await donor_store.count() == 2

    @pytest.mark.asyncio
    async def test_find_or_create_survives_concurrent_insert(self, donor_store: DonorStore, test_donor, monkeypatch):
        original = donor_store.find_by_email
        calls = {"n": 0}

        async def stale_first_lookup(email):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await original(email)

        monkeypatch.setattr(donor_store, "find_by_email", stale_first_lookup)
        winner = await donor_store.find_or_create_by_email(DonorRecord(email="jane@example.com"))
        assert winner.id == test_donor.id


class TestCampaignStore:
    @pytest.mark.asyncio
    async def test_create_writes_both_tables(self, campaign_store: CampaignStore):
        campaign = CampaignRecord(title="Food Bank Drive", description="Winter meals", goal_amount=50000)
        await campaign_store.create(campaign)

        stored = await campaign_store.get(campaign.id)
        assert stored.content_id is not None
        assert stored.slug == "food-bank-drive"
        assert stored.description == "Winter meals"
        assert (await campaign_store.find_by_slug("food-bank-drive")).id == campaign.id

    @pytest.mark.asyncio
    async def test_slugs_are_unique(self, campaign_store: CampaignStore):
        a = CampaignRecord(title="Spring Appeal")
        b = CampaignRecord(title="Spring Appeal")
        await campaign_store.create(a)
        await campaign_store.create(b)
        assert (a.slug, b.slug) == ("spring-appeal", "spring-appeal-2")

    @pytest.mark.asyncio
    async def test_update_content_and_ledger(self, campaign_store: CampaignStore, test_campaign):
        test_campaign.title = "Clean Water 2026"
        test_campaign.goal_amount = 200000
        test_campaign.total_raised = 123
        assert await campaign_store.update(test_campaign) is True

        stored = await campaign_store.get(test_campaign.id)
        assert stored.title == "Clean Water 2026"
        assert stored.goal_amount == 200000
        assert stored.total_raised == 0

    @pytest.mark.asyncio
    async def test_search_title_and_description(self, campaign_store: CampaignStore, test_campaign):
        await campaign_store.create(CampaignRecord(title="Library", description="Books for kids"))
        assert [c.title for c in await campaign_store.query(search="water")] == ["Clean Water"]
        assert [c.title for c in await campaign_store.query(search="books")] == ["Library"]

    @pytest.mark.asyncio
    async def test_order_by_title(self, campaign_store: CampaignStore):
        for title in ("Bravo", "Alpha", "Charlie"):
            await campaign_store.create(CampaignRecord(title=title))
        result = await campaign_store.query(orderby="title", order="asc")
        assert [c.title for c in result] == ["Alpha", "Bravo", "Charlie"]

    @pytest.mark.asyncio
    async def test_status_filter(self, db_session, events):
        today = date(2026, 6, 15)
        store = CampaignStore(db_session, events, today=lambda: today)
        await store.create(CampaignRecord(title="Open"))
        await store.create(CampaignRecord(title="Past", date_end=today - timedelta(days=1)))
        await store.create(CampaignRecord(title="Soon", date_start=today + timedelta(days=3)))
        await store.create(CampaignRecord(title="Hidden", is_published=False))

        async def titles(status):
            return sorted(c.title for c in await store.query(status=status))

        assert await titles(CampaignStatus.ACTIVE) == ["Open"]
        assert await titles("ended") == ["Past"]
        assert await titles("scheduled") == ["Soon"]
        assert await titles("draft") == ["Hidden"]
        assert await store.count(status="active") == 1

        with pytest.raises(ValidationError):
            await store.query(status="archived")

    @pytest.mark.asyncio
    async def test_loaded_status_uses_store_clock(self, db_session, events):
        # Far from the real date, so date.today() would disagree.
        today = date(2000, 1, 1)
        store = CampaignStore(db_session, events, today=lambda: today)
        await store.create(CampaignRecord(title="Next Year", date_start=date(2000, 6, 1)))
        await store.create(CampaignRecord(title="Last Year", date_end=date(1999, 12, 31)))

        for status in CampaignStatus:
            for record in await store.query(status=status):
                assert record.status == status

        [scheduled] = await store.query(status="scheduled")
        assert scheduled.title == "Next Year"
        assert scheduled.model_dump()["status"] == CampaignStatus.SCHEDULED

    @pytest.mark.asyncio
    async def test_delete_removes_content(self, campaign_store: CampaignStore, test_campaign):
        assert await campaign_store.delete(test_campaign.id) is True
        assert await campaign_store.find_by_slug(test_campaign.slug) is None
