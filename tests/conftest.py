"""
Test configuration and fixtures for the donation ledger tests.
"""
import json
from typing import AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from donorledger.main import app
from donorledger.core.deps import get_gateway_client
from donorledger.core.security import create_access_token
from donorledger.db.base import Base, get_db
from donorledger.schemas.records import CampaignRecord, DonorRecord
from donorledger.services.events import EventBus
from donorledger.services.gateway import GatewayClient
from donorledger.services.settings import SettingsService
from donorledger.stores.campaign import CampaignStore
from donorledger.stores.donor import DonorStore
from donorledger.stores.subscription import SubscriptionStore
from donorledger.stores.transaction import TransactionStore


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a per-test SQLite database engine."""
    # File-based so every connection sees the same database.
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        echo=False,
        poolclass=NullPool,
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs nest correctly under aiosqlite.
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def recorded_events(events: EventBus) -> list:
    """Every status event emitted during the test, as (name, payload)."""
    seen = []
    names = [
        "transaction.status_changed",
        "transaction.status.pending_to_completed",
        "transaction.status.completed_to_refunded",
        "subscription.status_changed",
        "donation.recorded",
        "settings.updated",
    ]
    for name in names:
        events.subscribe(name, lambda _name=name, **payload: seen.append((_name, payload)))
    return seen


@pytest.fixture
def donor_store(db_session, events) -> DonorStore:
    return DonorStore(db_session, events)


@pytest.fixture
def campaign_store(db_session, events) -> CampaignStore:
    return CampaignStore(db_session, events)


@pytest.fixture
def transaction_store(db_session, events) -> TransactionStore:
    return TransactionStore(db_session, events)


@pytest.fixture
def subscription_store(db_session, events) -> SubscriptionStore:
    return SubscriptionStore(db_session, events)


@pytest_asyncio.fixture
async def test_donor(donor_store: DonorStore) -> DonorRecord:
    donor = DonorRecord(email="Jane@Example.com", first_name="Jane", last_name="Smith")
    await donor_store.create(donor)
    return donor


@pytest_asyncio.fixture
async def test_campaign(campaign_store: CampaignStore) -> CampaignRecord:
    campaign = CampaignRecord(title="Clean Water", goal_amount=100000)
    await campaign_store.create(campaign)
    return campaign


class GatewayStub:
    """Programmable handler behind an httpx.MockTransport."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: dict = {"client_secret": "pi_secret_123", "connected_account_id": "acct_123"}
        self.raise_error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last_payload(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def gateway() -> GatewayStub:
    return GatewayStub()


@pytest.fixture
def gateway_client_factory(gateway: GatewayStub) -> Callable[[], GatewayClient]:
    def factory() -> GatewayClient:
        return GatewayClient(base_url="https://gateway.test", transport=httpx.MockTransport(gateway))
    return factory


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    events: EventBus,
    gateway_client_factory
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session and gateway overrides."""
    async def override_get_db():
        yield db_session

    async def override_get_gateway_client():
        async with gateway_client_factory() as gateway_client:
            yield gateway_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway_client] = override_get_gateway_client
    previous_events = app.state.events
    app.state.events = events
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    app.state.events = previous_events


@pytest.fixture
def admin_headers() -> dict:
    token = create_access_token(subject="1", capabilities=["manage_options"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def editor_headers() -> dict:
    token = create_access_token(subject="2", capabilities=["edit_posts"])
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def connected(db_session, events):
    """Configure a gateway site token."""
    await SettingsService(db_session, events).update({"stripe_site_token": "site_tok_abc"})
