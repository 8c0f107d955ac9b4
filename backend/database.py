import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from supabase import AsyncClient, acreate_client

from exceptions import ConfigurationError
from settings import get_settings

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Filters = Dict[str, Any]


class RecordStore(ABC):
    """
    Minimal record store the pipeline talks to.

    Filters map a column to a value; list/tuple/set values mean "column IN values".
    Every method is a suspension point.
    """

    @abstractmethod
    async def find(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        ...

    @abstractmethod
    async def insert(self, table: str, rows: Union[Row, List[Row]]) -> List[Row]:
        ...

    @abstractmethod
    async def update_where(self, table: str, filters: Filters, values: Row) -> List[Row]:
        ...

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> bool:
        """Operator removal only; the reply pipeline never deletes rows."""

    @abstractmethod
    async def count(self, table: str, filters: Optional[Filters] = None) -> int:
        ...

    async def find_one(self, table: str, record_id: str) -> Optional[Row]:
        rows = await self.find(table, {"id": record_id}, limit=1)
        return rows[0] if rows else None

    async def update(self, table: str, record_id: str, values: Row) -> Optional[Row]:
        rows = await self.update_where(table, {"id": record_id}, values)
        return rows[0] if rows else None


def _apply_filters(query, filters: Optional[Filters]):
    for column, value in (filters or {}).items():
        if isinstance(value, (list, tuple, set)):
            query = query.in_(column, list(value))
        elif value is None:
            query = query.is_(column, "null")
        else:
            query = query.eq(column, value)
    return query


class SupabaseStore(RecordStore):
    def __init__(self, client: AsyncClient):
        self.client = client

    async def find(self, table, filters=None, order_by=None, desc=False, limit=None):
        query = _apply_filters(self.client.table(table).select("*"), filters)
        if order_by:
            query = query.order(order_by, desc=desc)
        if limit:
            query = query.limit(limit)
        result = await query.execute()
        return result.data or []

    async def insert(self, table, rows):
        result = await self.client.table(table).insert(rows).execute()
        return result.data or []

    async def update_where(self, table, filters, values):
        query = _apply_filters(self.client.table(table).update(values), filters)
        result = await query.execute()
        return result.data or []

    async def delete(self, table, record_id):
        result = await self.client.table(table).delete().eq("id", record_id).execute()
        return bool(result.data)

    async def count(self, table, filters=None):
        query = _apply_filters(self.client.table(table).select("id", count="exact"), filters)
        result = await query.execute()
        return result.count or 0


_store: Optional[RecordStore] = None


async def get_store() -> RecordStore:
    global _store
    if _store is None:
        settings = get_settings()
        if not settings.supabase_url or not settings.supabase_service_role_key:
            if not settings.supabase_url:
                logger.warning("SUPABASE_URL not set")
            if not settings.supabase_service_role_key:
                logger.warning("SUPABASE_SERVICE_ROLE_KEY not set")
            raise ConfigurationError("Supabase is not configured. Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY.")
        client = await acreate_client(settings.supabase_url, settings.supabase_service_role_key)
        _store = SupabaseStore(client)
    return _store
