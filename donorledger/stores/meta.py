"""
Key/value metadata attached to ledger records.
"""
from typing import Any, Optional

from sqlalchemy import select, insert, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from donorledger.models.base import MetaModel


class MetaStore:
    """
    Metadata rows for one owner table.

    Keys are not unique per owner: ``add`` always inserts, ``update``
    rewrites every row under the key (inserting one if none exist).
    """

    def __init__(self, session: AsyncSession, meta_model: type[MetaModel]):
        self.session = session
        self.table = meta_model.__table__

    async def add(self, owner_id: int, key: str, value: Any) -> int:
        result = await self.session.execute(
            insert(self.table).values(owner_id=owner_id, meta_key=key, meta_value=value)
        )
        return result.inserted_primary_key[0]

    async def get(self, owner_id: int, key: str, single: bool = True) -> Any:
        result = await self.session.execute(
            select(self.table.c.meta_value)
            .where(self.table.c.owner_id == owner_id, self.table.c.meta_key == key)
            .order_by(self.table.c.meta_id)
        )
        values = list(result.scalars().all())
        if single:
            return values[0] if values else None
        return values

    async def update(self, owner_id: int, key: str, value: Any) -> Optional[int]:
        """Upsert. Returns the new meta id when a row was inserted."""
        result = await self.session.execute(
            update(self.table)
            .where(self.table.c.owner_id == owner_id, self.table.c.meta_key == key)
            .values(meta_value=value)
        )
        if result.rowcount:
            return None
        return await self.add(owner_id, key, value)

    async def delete(self, owner_id: int, key: str) -> bool:
        result = await self.session.execute(
            delete(self.table)
            .where(self.table.c.owner_id == owner_id, self.table.c.meta_key == key)
        )
        return result.rowcount > 0

    async def delete_all(self, owner_id: int) -> int:
        result = await self.session.execute(
            delete(self.table).where(self.table.c.owner_id == owner_id)
        )
        return result.rowcount
