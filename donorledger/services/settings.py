"""
Settings service.

Persists the typed ``LedgerSettings`` document as JSON under one key in
the ``settings`` table.
"""
import logging
from typing import Any, Optional

from pydantic import ValidationError as SchemaError
from sqlalchemy import select, insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from donorledger.core.exceptions import ValidationError
from donorledger.models.base import utcnow
from donorledger.models.setting import Setting
from donorledger.schemas.settings import LedgerSettings, ConnectionStatus, SECRET_KEYS, is_masked
from donorledger.services.events import EventBus
from donorledger.services.fees import FeeSchedule

logger = logging.getLogger(__name__)

SETTINGS_KEY = "ledger_settings"


class SettingsService:
    """Read and write the ledger's plugin settings."""

    def __init__(self, session: AsyncSession, events: Optional[EventBus] = None):
        self.session = session
        self.events = events or EventBus()
        self.table = Setting.__table__

    async def _stored(self) -> Optional[dict]:
        result = await self.session.execute(
            select(self.table.c.value).where(self.table.c.key == SETTINGS_KEY)
        )
        row = result.first()
        if row is None:
            return None
        return row.value if isinstance(row.value, dict) else {}

    async def get_all(self) -> LedgerSettings:
        """Stored values merged over the defaults."""
        stored = await self._stored() or {}
        known = {k: v for k, v in stored.items() if k in LedgerSettings.model_fields}
        return LedgerSettings.model_validate(known)

    async def get(self, key: str) -> Any:
        if key not in LedgerSettings.model_fields:
            raise KeyError(f"Unknown setting: {key}")
        return getattr(await self.get_all(), key)

    async def update(self, values: dict[str, Any]) -> LedgerSettings:
        """
        Validate and persist a partial update.

        Masked secrets are treated as unchanged. Clearing the processor
        secret key also resets the connection.
        """
        current = await self.get_all()
        changes = {}
        for key, value in values.items():
            if key not in LedgerSettings.model_fields:
                raise KeyError(f"Unknown setting: {key}")
            if key in SECRET_KEYS and is_masked(value):
                continue
            changes[key] = value

        if changes.get("stripe_secret_key") == "" and current.stripe_secret_key:
            changes["stripe_account_id"] = ""
            changes["stripe_display_name"] = ""
            changes["stripe_connection_status"] = ConnectionStatus.DISCONNECTED

        merged = current.model_dump()
        merged.update(changes)
        try:
            updated = LedgerSettings.model_validate(merged)
        except SchemaError as e:
            raise ValidationError(
                f"Invalid settings: {e.errors()[0]['msg']}", code="invalid_setting"
            ) from e
        document = updated.model_dump(mode="json")

        now = utcnow()
        if await self._stored() is None:
            await self.session.execute(
                insert(self.table).values(
                    key=SETTINGS_KEY, value=document, created_at=now, modified_at=now
                )
            )
        else:
            await self.session.execute(
                update(self.table)
                .where(self.table.c.key == SETTINGS_KEY)
                .values(value=document, modified_at=now)
            )

        logger.info("Settings updated: %s", sorted(changes))
        await self.events.emit(
            "settings.updated", settings=updated, changes=changes, previous=current
        )
        return updated

    async def fee_schedule(self) -> FeeSchedule:
        current = await self.get_all()
        return FeeSchedule(rate=current.processor_fee_rate, fixed=current.processor_fee_fixed)
