"""
Tests for plugin settings storage and the admin settings endpoints.
"""
from decimal import Decimal

import pytest
from httpx import AsyncClient

from donorledger.core.exceptions import ValidationError
from donorledger.schemas.settings import MASK_CHAR, ConnectionStatus, is_masked, mask_secret
from donorledger.services.settings import SettingsService


@pytest.fixture
def settings_service(db_session, events) -> SettingsService:
    return SettingsService(db_session, events)


class TestMasking:
    def test_keeps_last_four(self):
        assert mask_secret("sk_live_abcdef1234") == MASK_CHAR * 14 + "1234"

    def test_short_and_empty(self):
        assert mask_secret("abc") == MASK_CHAR * 4
        assert mask_secret("") == ""

    def test_is_masked(self):
        assert is_masked(MASK_CHAR * 4 + "1234")
        assert not is_masked("sk_live_1234")
        assert not is_masked(None)


class TestSettingsService:
    @pytest.mark.asyncio
    async def test_defaults_without_stored_row(self, settings_service):
        current = await settings_service.get_all()
        assert current.currency == "USD"
        assert current.tip_enabled is True
        assert current.tip_default_percentage == 15
        assert current.processor_fee_rate == Decimal("0.029")
        assert current.processor_fee_fixed == 30
        assert current.stripe_connection_status == ConnectionStatus.DISCONNECTED

    @pytest.mark.asyncio
    async def test_update_persists(self, settings_service, db_session, events):
        await settings_service.update({"currency": "eur", "tip_default_percentage": 10})
        await settings_service.update({"email_from_name": "Friends of the Park"})

        reloaded = await SettingsService(db_session, events).get_all()
        assert reloaded.currency == "EUR"
        assert reloaded.tip_default_percentage == 10
        assert reloaded.email_from_name == "Friends of the Park"

    @pytest.mark.asyncio
    async def test_unknown_key(self, settings_service):
        with pytest.raises(KeyError):
            await settings_service.get("favourite_colour")
        with pytest.raises(KeyError):
            await settings_service.update({"favourite_colour": "green"})

    @pytest.mark.asyncio
    async def test_invalid_value(self, settings_service):
        with pytest.raises(ValidationError) as exc_info:
            await settings_service.update({"currency": "dollars"})
        assert exc_info.value.code == "invalid_setting"

    @pytest.mark.asyncio
    async def test_masked_secret_is_not_written(self, settings_service):
        await settings_service.update({"stripe_secret_key": "sk_live_abcdef1234"})
        await settings_service.update({"stripe_secret_key": mask_secret("sk_live_abcdef1234")})
        assert await settings_service.get("stripe_secret_key") == "sk_live_abcdef1234"

    @pytest.mark.asyncio
    async def test_clearing_secret_disconnects(self, settings_service):
        await settings_service.update({
            "stripe_secret_key": "sk_live_abcdef1234",
            "stripe_account_id": "acct_123",
            "stripe_connection_status": ConnectionStatus.CONNECTED,
        })
        updated = await settings_service.update({"stripe_secret_key": ""})
        assert updated.stripe_account_id == ""
        assert updated.stripe_connection_status == ConnectionStatus.DISCONNECTED

    @pytest.mark.asyncio
    async def test_update_emits_event(self, settings_service, recorded_events):
        await settings_service.update({"tip_enabled": False})
        name, payload = recorded_events[-1]
        assert name == "settings.updated"
        assert payload["changes"] == {"tip_enabled": False}
        assert payload["previous"].tip_enabled is True
        assert payload["settings"].tip_enabled is False

    @pytest.mark.asyncio
    async def test_fee_schedule_follows_settings(self, settings_service):
        await settings_service.update({"processor_fee_rate": Decimal("0.022"), "processor_fee_fixed": 0})
        schedule = await settings_service.fee_schedule()
        assert schedule.rate == Decimal("0.022")
        assert schedule.fixed == 0


class TestSettingsEndpoints:
    @pytest.mark.asyncio
    async def test_requires_admin(self, client: AsyncClient, editor_headers):
        response = await client.get("/api/v1/settings", headers=editor_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_get_masks_secrets(self, client: AsyncClient, admin_headers, connected):
        response = await client.get("/api/v1/settings", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["stripeSiteToken"] == MASK_CHAR * 8 + "_abc"
        assert data["currency"] == "USD"

    @pytest.mark.asyncio
    async def test_patch_round_trip_keeps_secret(
        self, client: AsyncClient, admin_headers, connected, settings_service
    ):
        response = await client.get("/api/v1/settings", headers=admin_headers)
        document = response.json()
        document["tipDefaultPercentage"] = 20

        response = await client.patch("/api/v1/settings", json=document, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["tipDefaultPercentage"] == 20
        assert await settings_service.get("stripe_site_token") == "site_tok_abc"

    @pytest.mark.asyncio
    async def test_patch_rejects_bad_currency(self, client: AsyncClient, admin_headers):
        response = await client.patch(
            "/api/v1/settings", json={"currency": "dollars"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_setting"
