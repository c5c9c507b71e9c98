"""
Generic record store.

One store per entity, bound to an injected session. Reads and writes go
through Core statements against the entity table and come back as
pydantic records, so a store never serves a cached ORM instance.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Generic, Optional, TypeVar

from sqlalchemy import select, insert, update, delete, func, or_, Select
from sqlalchemy.ext.asyncio import AsyncSession

from donorledger.core.config import settings
from donorledger.core.exceptions import NotFoundError, ValidationError
from donorledger.models.base import BaseModel, MetaModel, utcnow
from donorledger.schemas.records import LedgerRecord
from donorledger.services.aggregation import AggregationEngine
from donorledger.services.events import EventBus
from donorledger.stores.meta import MetaStore

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=LedgerRecord)


def _db_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class RecordStore(Generic[RecordT]):
    """
    CRUD, query and metadata for one ledger entity.

    Subclasses bind ``model``, ``record_type``, ``meta_model`` and ``name``
    and declare which columns may be filtered, searched and sorted on.
    Stores with a ``transitions`` map validate status changes on update
    and hand them to the aggregation engine.
    """
    model: ClassVar[type[BaseModel]]
    record_type: ClassVar[type[LedgerRecord]]
    meta_model: ClassVar[type[MetaModel]]
    name: ClassVar[str]

    filterable: ClassVar[tuple[str, ...]] = ()
    searchable: ClassVar[tuple[str, ...]] = ()
    sortable: ClassVar[tuple[str, ...]] = ("id", "created_at", "modified_at")
    default_orderby: ClassVar[str] = "created_at"
    # Maintained outside update(); never written from a record.
    readonly_fields: ClassVar[tuple[str, ...]] = ()
    transitions: ClassVar[Optional[dict]] = None

    def __init__(
        self,
        session: AsyncSession,
        events: Optional[EventBus] = None,
        aggregation: Optional[AggregationEngine] = None
    ):
        self.session = session
        self.events = events or EventBus()
        self.aggregation = aggregation or AggregationEngine(session, self.events)
        self.meta = MetaStore(session, self.meta_model)

    @property
    def table(self):
        return self.model.__table__

    # ------------------------------------------------------------------
    # Row <-> record
    # ------------------------------------------------------------------

    def _to_record(self, row) -> RecordT:
        return self.record_type.model_validate(dict(row._mapping))

    def _values(self, record: RecordT, exclude: tuple[str, ...] = ()) -> dict[str, Any]:
        data = record.model_dump()
        return {
            column.name: _db_value(data[column.name])
            for column in self.table.columns
            if column.name in data and column.name not in exclude
        }

    def _select(self) -> Select:
        return select(self.table)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create(self, record: RecordT) -> int:
        now = utcnow()
        if record.created_at is None:
            record.created_at = now
        record.modified_at = now

        values = self._values(record, exclude=("id",))
        result = await self.session.execute(insert(self.table).values(**values))
        record.id = result.inserted_primary_key[0]

        await self.events.emit(f"{self.name}.created", record=record)
        return record.id

    async def read(self, record_id: int) -> Optional[RecordT]:
        result = await self.session.execute(
            self._select().where(self.table.c.id == record_id)
        )
        row = result.first()
        return self._to_record(row) if row is not None else None

    async def get(self, record_id: int) -> RecordT:
        record = await self.read(record_id)
        if record is None:
            raise NotFoundError(f"{self.name.capitalize()} {record_id} not found")
        return record

    def validate_transition(self, old: Any, new: Any) -> None:
        allowed = (self.transitions or {}).get(old, [])
        if new not in allowed:
            raise ValidationError(
                f"Cannot change {self.name} status from {_db_value(old)} to {_db_value(new)}",
                code="invalid_transition"
            )

    async def update(self, record: RecordT) -> bool:
        """
        Write a record back.

        Returns False when the record does not exist, or when its stored
        status changed since it was read (another writer won the
        transition). A status change is validated first and applied to the
        aggregates before this returns.
        """
        if record.id is None:
            return False

        table = self.table
        tracks_status = self.transitions is not None
        column = table.c.status if tracks_status else table.c.id
        stored = (
            await self.session.execute(select(column).where(table.c.id == record.id))
        ).first()
        if stored is None:
            return False

        old_status = new_status = None
        stmt = update(table).where(table.c.id == record.id)
        if tracks_status:
            old_status = stored[0]
            new_status = type(old_status)(record.status)
            if old_status != new_status:
                self.validate_transition(old_status, new_status)
            # Applies only if no other writer moved the status since the read above.
            stmt = stmt.where(table.c.status == old_status)

        record.modified_at = utcnow()
        values = self._values(
            record, exclude=("id", "created_at") + self.readonly_fields
        )
        result = await self.session.execute(stmt.values(**values))
        if result.rowcount == 0:
            logger.warning(
                "%s %s status moved away from %s before update; not applied",
                self.name, record.id, _db_value(old_status)
            )
            return False

        await self._after_update(record)
        if old_status != new_status:
            await self._status_changed(record, old_status, new_status)
        await self.events.emit(f"{self.name}.updated", record=record)
        return True

    async def _after_update(self, record: RecordT) -> None:
        """Hook for stores that span more than one table."""

    async def _status_changed(self, record: RecordT, old: Any, new: Any) -> None:
        """Hook invoked after a validated status transition was written."""

    async def delete(self, record_id: int) -> bool:
        await self.meta.delete_all(record_id)
        result = await self.session.execute(
            delete(self.table).where(self.table.c.id == record_id)
        )
        deleted = result.rowcount > 0
        if deleted:
            await self.events.emit(f"{self.name}.deleted", record_id=record_id)
        return deleted

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def _filter_clause(self, field: str, value: Any):
        return self.table.c[field] == _db_value(value)

    def _search_columns(self) -> list:
        return [self.table.c[name] for name in self.searchable]

    def _sort_column(self, orderby: Optional[str]):
        if orderby not in self.sortable:
            orderby = self.default_orderby
        return self.table.c[orderby]

    def _apply_filters(
        self,
        stmt: Select,
        search: Optional[str],
        date_after: Optional[datetime],
        date_before: Optional[datetime],
        filters: dict[str, Any]
    ) -> Select:
        for field, value in filters.items():
            if field not in self.filterable:
                raise ValidationError(
                    f"Unknown {self.name} filter: {field}", code="invalid_filter"
                )
            if value is None:
                continue
            stmt = stmt.where(self._filter_clause(field, value))

        if search:
            pattern = f"%{search.strip()}%"
            columns = self._search_columns()
            if columns:
                stmt = stmt.where(or_(*[c.ilike(pattern) for c in columns]))

        if date_after is not None:
            stmt = stmt.where(self.table.c.created_at >= date_after)
        if date_before is not None:
            stmt = stmt.where(self.table.c.created_at <= date_before)
        return stmt

    async def query(
        self,
        *,
        page: int = 1,
        per_page: int = settings.DEFAULT_PER_PAGE,
        orderby: Optional[str] = None,
        order: str = "desc",
        search: Optional[str] = None,
        date_after: Optional[datetime] = None,
        date_before: Optional[datetime] = None,
        **filters: Any
    ) -> list[RecordT]:
        per_page = max(1, min(int(per_page), settings.MAX_PER_PAGE))
        page = max(1, int(page))

        stmt = self._apply_filters(self._select(), search, date_after, date_before, filters)
        column = self._sort_column(orderby)
        if str(order).lower() == "asc":
            stmt = stmt.order_by(column.asc(), self.table.c.id.asc())
        else:
            stmt = stmt.order_by(column.desc(), self.table.c.id.desc())
        stmt = stmt.offset((page - 1) * per_page).limit(per_page)

        result = await self.session.execute(stmt)
        return [self._to_record(row) for row in result.all()]

    async def count(
        self,
        *,
        search: Optional[str] = None,
        date_after: Optional[datetime] = None,
        date_before: Optional[datetime] = None,
        **filters: Any
    ) -> int:
        inner = self._apply_filters(self._select(), search, date_after, date_before, filters)
        result = await self.session.execute(
            select(func.count()).select_from(inner.subquery())
        )
        return result.scalar_one()

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def add_meta(self, owner_id: int, key: str, value: Any) -> int:
        return await self.meta.add(owner_id, key, value)

    async def get_meta(self, owner_id: int, key: str, single: bool = True) -> Any:
        return await self.meta.get(owner_id, key, single)

    async def update_meta(self, owner_id: int, key: str, value: Any) -> Optional[int]:
        return await self.meta.update(owner_id, key, value)

    async def delete_meta(self, owner_id: int, key: str) -> bool:
        return await self.meta.delete(owner_id, key)
