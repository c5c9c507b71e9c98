"""
Campaign store.

A campaign spans two tables: ledger fields in ``campaigns`` and editorial
fields in ``campaign_contents``. Reads join them into one record; writes
touch both.
"""
import re
from datetime import date
from typing import Any, Callable, Optional

from sqlalchemy import select, insert, update, delete, and_, or_, Select

from donorledger.core.exceptions import ValidationError
from donorledger.models.base import utcnow
from donorledger.models.campaign import Campaign, CampaignContent, CampaignMeta, CampaignStatus
from donorledger.schemas.records import CampaignRecord
from donorledger.stores.base import RecordStore

CONTENT_FIELDS = ("title", "slug", "description", "is_published")


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "campaign"


class CampaignStore(RecordStore[CampaignRecord]):
    model = Campaign
    record_type = CampaignRecord
    meta_model = CampaignMeta
    name = "campaign"

    filterable = ("status", "currency", "is_published")
    searchable = ("title", "description")
    sortable = (
        "id", "created_at", "modified_at", "title", "date_start", "date_end",
        "goal_amount", "total_raised", "transaction_count",
    )
    readonly_fields = ("total_raised", "transaction_count", "content_id")

    def __init__(self, *args, today: Callable[[], date] = date.today, **kwargs):
        super().__init__(*args, **kwargs)
        self.today = today

    @property
    def contents(self):
        return CampaignContent.__table__

    def _select(self) -> Select:
        c = self.contents
        return (
            select(self.table, c.c.title, c.c.slug, c.c.description, c.c.is_published)
            .join(c, c.c.id == self.table.c.content_id)
        )

    def _to_record(self, row) -> CampaignRecord:
        record = super()._to_record(row)
        record._today = self.today
        return record

    def _column(self, name: str):
        if name in CONTENT_FIELDS:
            return self.contents.c[name]
        return self.table.c[name]

    def _search_columns(self) -> list:
        return [self._column(name) for name in self.searchable]

    def _sort_column(self, orderby: Optional[str]):
        if orderby not in self.sortable:
            orderby = self.default_orderby
        return self._column(orderby)

    def _filter_clause(self, field: str, value: Any):
        if field != "status":
            return self._column(field) == value
        return self._status_clause(value)

    def _status_clause(self, value: Any):
        try:
            status = CampaignStatus(value)
        except ValueError:
            raise ValidationError(f"Unknown campaign status: {value}", code="invalid_filter") from None

        today = self.today()
        published = self.contents.c.is_published.is_(True)
        start, end = self.table.c.date_start, self.table.c.date_end
        not_ended = or_(end.is_(None), end >= today)

        if status == CampaignStatus.DRAFT:
            return self.contents.c.is_published.is_(False)
        if status == CampaignStatus.ENDED:
            return and_(published, end.is_not(None), end < today)
        if status == CampaignStatus.SCHEDULED:
            return and_(published, not_ended, start.is_not(None), start > today)
        return and_(published, not_ended, or_(start.is_(None), start <= today))

    async def _unique_slug(self, base: str, exclude_id: Optional[int] = None) -> str:
        slug, n = base, 1
        while True:
            stmt = select(self.contents.c.id).where(self.contents.c.slug == slug)
            if exclude_id is not None:
                stmt = stmt.where(self.contents.c.id != exclude_id)
            if (await self.session.execute(stmt)).first() is None:
                return slug
            n += 1
            slug = f"{base}-{n}"

    def _content_values(self, record: CampaignRecord) -> dict[str, Any]:
        return {field: getattr(record, field) for field in CONTENT_FIELDS}

    async def create(self, record: CampaignRecord) -> int:
        now = utcnow()
        record.slug = await self._unique_slug(slugify(record.slug or record.title))
        result = await self.session.execute(
            insert(self.contents).values(
                **self._content_values(record), created_at=now, modified_at=now
            )
        )
        record.content_id = result.inserted_primary_key[0]
        return await super().create(record)

    async def find_by_slug(self, slug: str) -> Optional[CampaignRecord]:
        result = await self.session.execute(
            self._select().where(self.contents.c.slug == slug)
        )
        row = result.first()
        return self._to_record(row) if row is not None else None

    async def _after_update(self, record: CampaignRecord) -> None:
        content_id = (
            await self.session.execute(
                select(self.table.c.content_id).where(self.table.c.id == record.id)
            )
        ).scalar_one()
        record.content_id = content_id
        record.slug = await self._unique_slug(
            slugify(record.slug or record.title), exclude_id=content_id
        )
        await self.session.execute(
            update(self.contents)
            .where(self.contents.c.id == content_id)
            .values(**self._content_values(record), modified_at=record.modified_at)
        )

    async def delete(self, record_id: int) -> bool:
        content_id = (
            await self.session.execute(
                select(self.table.c.content_id).where(self.table.c.id == record_id)
            )
        ).scalar_one_or_none()
        deleted = await super().delete(record_id)
        if content_id is not None:
            await self.session.execute(
                delete(self.contents).where(self.contents.c.id == content_id)
            )
        return deleted
